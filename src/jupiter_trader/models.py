from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RouteSegment:
    label: str
    amm_key: str
    percent: int


@dataclass(frozen=True)
class Quote:
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    slippage_bps: int
    price_impact_pct: Decimal
    route_plan: Tuple[RouteSegment, ...]
    # Verbatim quote response; the swap-build service expects it back unchanged.
    raw: Dict[str, Any] = field(compare=False, repr=False)

    def describe_route(self) -> str:
        return " -> ".join(f"{segment.label} ({segment.percent}%)" for segment in self.route_plan)


@dataclass(frozen=True)
class PriorityConfig:
    max_lamports: int
    priority_level: str = "veryHigh"
    compute_unit_limit: Optional[int] = None
    compute_unit_price_micro_lamports: Optional[int] = None


@dataclass(frozen=True)
class SwapRequest:
    quote: Quote
    user_public_key: str
    priority: PriorityConfig
    dynamic_compute_unit_limit: bool = True
    dynamic_slippage: bool = False
    wrap_and_unwrap_sol: bool = True

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "quoteResponse": self.quote.raw,
            "userPublicKey": self.user_public_key,
            "dynamicComputeUnitLimit": self.dynamic_compute_unit_limit,
            "dynamicSlippage": self.dynamic_slippage,
            "asLegacyTransaction": False,
            "wrapAndUnwrapSol": self.wrap_and_unwrap_sol,
            "prioritizationFeeLamports": {
                "priorityLevelWithMaxLamports": {
                    "maxLamports": self.priority.max_lamports,
                    "priorityLevel": self.priority.priority_level,
                }
            },
        }
        if self.priority.compute_unit_limit is not None:
            payload["computeUnitLimit"] = self.priority.compute_unit_limit
        if self.priority.compute_unit_price_micro_lamports is not None:
            payload["computeUnitPriceMicroLamports"] = self.priority.compute_unit_price_micro_lamports
        return payload


@dataclass(frozen=True)
class SwapTransaction:
    """Unsigned transaction template returned by the swap-build service."""

    swap_transaction: str
    last_valid_block_height: int


@dataclass(frozen=True)
class SignedTransaction:
    payload: bytes = field(repr=False)
    signature: str
    recent_blockhash: str
    last_valid_block_height: int


class ConfirmationStatus(Enum):
    CONFIRMED = "confirmed"
    CONFIRMED_WITH_ERROR = "confirmed_with_error"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ConfirmationResult:
    status: ConfirmationStatus
    signature: str
    transaction: Optional[Dict[str, Any]] = None
    error: Any = None
    # Only set for NOT_FOUND: True when the block-height window closed,
    # False when the wall-clock timeout was the backstop.
    expired: bool = False
    block_height: Optional[int] = None

    @property
    def confirmed(self) -> bool:
        return self.status is ConfirmationStatus.CONFIRMED


@dataclass(frozen=True)
class RetryAttempt:
    attempt_index: int
    max_attempts: int
    delay_before_next: Optional[float]
    error: Optional[BaseException] = None


@dataclass
class RetryOutcome(Generic[T]):
    label: str
    attempts: List[RetryAttempt] = field(default_factory=list)
    value: Optional[T] = None
    succeeded: bool = False

    @property
    def last_error(self) -> Optional[BaseException]:
        for attempt in reversed(self.attempts):
            if attempt.error is not None:
                return attempt.error
        return None

    @property
    def errors(self) -> List[BaseException]:
        return [attempt.error for attempt in self.attempts if attempt.error is not None]

    def unwrap(self) -> T:
        if self.succeeded:
            return self.value  # type: ignore[return-value]
        error = self.last_error
        if error is None:
            raise RuntimeError(f"{self.label} failed with unknown error")
        raise error


@dataclass(frozen=True)
class BalanceSample:
    mint: str
    owner: str
    amount: Decimal


@dataclass(frozen=True)
class SwapResult:
    signature: str
    quote: Quote
    attempts: int
