"""Simulate, broadcast and confirm signed transactions."""

from __future__ import annotations

import logging
from typing import Optional

from .cancellation import CancellationToken, ensure_token
from .errors import HttpRequestError, SimulationRejected, SolanaRPCError
from .models import ConfirmationResult, ConfirmationStatus, SignedTransaction
from .rpc import SolanaRPCClient

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 2.0


class TransactionSubmitter:
    def __init__(
        self,
        rpc: SolanaRPCClient,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.rpc = rpc
        self.timeout = timeout
        self.poll_interval = poll_interval

    def simulate(self, signed: SignedTransaction) -> None:
        """Raise SimulationRejected if the ledger says the transaction cannot succeed."""
        result = self.rpc.simulate_transaction(signed.payload)
        if result.get("err"):
            logs = result.get("logs") or []
            log.error(f"Simulation error: {result['err']}")
            for line in logs:
                log.debug(f"  simulation log: {line}")
            raise SimulationRejected(result["err"], logs)
        log.info("Transaction simulation successful")

    def submit(
        self,
        signed: SignedTransaction,
        timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ConfirmationResult:
        """Broadcast once, then poll until confirmed, expired or timed out.

        Poll failures are logged and retried; only a failed broadcast raises.
        """
        token = ensure_token(cancel)
        timeout = self.timeout if timeout is None else timeout
        last_valid = signed.last_valid_block_height

        token.raise_if_cancelled()
        signature = self.rpc.send_transaction(signed.payload, skip_preflight=True)
        log.info(f"Transaction sent: {signature}; waiting for confirmation")

        timeout_at = token.now() + timeout
        block_height: Optional[int] = None
        while token.now() < timeout_at:
            try:
                transaction = self.rpc.get_transaction(signature)
                if transaction is not None:
                    error = (transaction.get("meta") or {}).get("err")
                    if error:
                        log.error(f"Transaction {signature} confirmed with error: {error}")
                        return ConfirmationResult(
                            ConfirmationStatus.CONFIRMED_WITH_ERROR, signature, transaction=transaction, error=error
                        )
                    log.info(f"Transaction confirmed: {signature}")
                    return ConfirmationResult(ConfirmationStatus.CONFIRMED, signature, transaction=transaction)

                block_height = self.rpc.get_block_height()
                if block_height > last_valid:
                    log.warning(
                        f"Transaction {signature} expired: block height {block_height} "
                        f"exceeds last valid height {last_valid}"
                    )
                    return ConfirmationResult(
                        ConfirmationStatus.NOT_FOUND, signature, expired=True, block_height=block_height
                    )
            except (SolanaRPCError, HttpRequestError) as exc:
                log.warning(f"Error checking transaction {signature}: {exc}")

            token.sleep(min(self.poll_interval, max(0.0, timeout_at - token.now())))

        log.warning(f"Transaction not confirmed within {timeout:g}s: {signature}")
        return ConfirmationResult(ConfirmationStatus.NOT_FOUND, signature, expired=False, block_height=block_height)
