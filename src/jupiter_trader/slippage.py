from .config import TraderConfig


class SlippagePolicy:
    """Allowed slippage in basis points (1 bps = 0.01%)."""

    def __init__(self, config: TraderConfig) -> None:
        self.config = config

    def compute_slippage_bps(self, is_new_token: bool = False) -> int:
        # Flat mode is passed through unbounded; only new-token mode is clamped.
        if not is_new_token:
            return self.config.slippage_bps

        calculated = self.config.base_slippage_bps * self.config.new_token_slippage_multiplier
        calculated = min(calculated, self.config.max_slippage_bps)
        calculated = max(calculated, self.config.min_slippage_bps)
        return calculated
