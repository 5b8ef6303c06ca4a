from typing import Optional

from .config import TraderConfig
from .models import PriorityConfig, Quote, SwapRequest

DEFAULT_MAX_PRIORITY_FEE_LAMPORTS = 10_000_000
DEFAULT_PRIORITY_LEVEL = "veryHigh"


def priority_from_config(config: TraderConfig) -> PriorityConfig:
    return PriorityConfig(
        max_lamports=config.priority_fee_lamports or DEFAULT_MAX_PRIORITY_FEE_LAMPORTS,
        priority_level=config.priority_level or DEFAULT_PRIORITY_LEVEL,
        compute_unit_limit=config.compute_unit_limit,
        compute_unit_price_micro_lamports=config.compute_unit_price_micro_lamports,
    )


class SwapRequestBuilder:
    """Turns a quote into a swap-build request.

    Dynamic compute-unit sizing is always on, dynamic slippage always off (the
    quote's own slippage is reused), and SOL is wrapped/unwrapped
    automatically. Built fresh on every attempt.
    """

    def __init__(self, priority: PriorityConfig) -> None:
        self.priority = priority

    def build_swap_request(self, user_public_key: str, quote: Quote, priority: Optional[PriorityConfig] = None) -> SwapRequest:
        return SwapRequest(
            quote=quote,
            user_public_key=user_public_key,
            priority=priority or self.priority,
            dynamic_compute_unit_limit=True,
            dynamic_slippage=False,
            wrap_and_unwrap_sol=True,
        )
