import logging
from decimal import Decimal
from typing import List, Optional

from .cancellation import CancellationToken, ensure_token
from .errors import HttpRequestError, SolanaRPCError
from .models import BalanceSample
from .rpc import SolanaRPCClient

log = logging.getLogger(__name__)


class BalanceWatcher:
    """Polls a token balance until it moves or attempts run out. Never raises on RPC errors."""

    def __init__(self, rpc: SolanaRPCClient) -> None:
        self.rpc = rpc
        self.samples: List[BalanceSample] = []

    def sample(self, owner: str, mint: str) -> BalanceSample:
        sample = BalanceSample(mint=mint, owner=owner, amount=self.rpc.get_token_balance(owner, mint))
        self.samples.append(sample)
        return sample

    def _try_sample(self, owner: str, mint: str) -> Optional[Decimal]:
        try:
            return self.sample(owner, mint).amount
        except (SolanaRPCError, HttpRequestError) as exc:
            log.warning(f"Error getting {mint} balance: {exc}")
            return None

    def wait_for_change(
        self,
        owner: str,
        mint: str,
        max_attempts: int = 5,
        interval: float = 2.0,
        cancel: Optional[CancellationToken] = None,
    ) -> Decimal:
        token = ensure_token(cancel)
        attempts = 0

        # The baseline must be a real reading; retries here share the attempt budget.
        initial = self._try_sample(owner, mint)
        while initial is None and attempts < max_attempts:
            token.sleep(interval)
            initial = self._try_sample(owner, mint)
            attempts += 1
        if initial is None:
            log.warning(f"Could not read {mint} balance after {attempts} attempts")
            return Decimal(0)

        current = initial
        log.info(f"Initial {mint} balance: {initial}")

        while attempts < max_attempts and current == initial:
            log.info(f"Waiting for balance change (attempt {attempts + 1}/{max_attempts})...")
            token.sleep(interval)
            amount = self._try_sample(owner, mint)
            # An unreadable balance counts as unchanged.
            if amount is not None:
                current = amount
            log.info(f"Current balance: {current}")
            attempts += 1

        if current == initial:
            log.warning(f"No balance change detected after {attempts} attempts; purchase may have failed")
        elif current > initial:
            log.info(f"Balance increased by {current - initial} tokens")
        return current
