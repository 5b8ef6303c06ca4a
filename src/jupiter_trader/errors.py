"""Error taxonomy for quoting, submission, settlement and flow control."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional


class TraderError(Exception):
    """Base class for every error raised by the trader."""


class ConfigError(TraderError):
    """Raised when a configured value is present but cannot be parsed."""


@dataclass(eq=False)
class HttpRequestError(TraderError):
    """Transport failure that carries HTTP context."""

    message: str
    url: Optional[str] = None
    http_status: Optional[int] = None
    body: Optional[str] = None
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        suffix = []
        if self.url:
            suffix.append(f"url={self.url}")
        if self.http_status is not None:
            suffix.append(f"status={self.http_status}")
        if self.body:
            suffix.append(f"body={self.body[:200]}")
        if self.cause:
            suffix.append(f"cause={self.cause}")
        detail = ", ".join(suffix)
        return f"{self.message} ({detail})" if detail else self.message


class SolanaRPCError(TraderError):
    """Raised when the ledger RPC returns an error payload or an unusable result."""

    def __init__(self, method: str, error: Any) -> None:
        self.method = method
        self.error = error
        super().__init__(f"{method} failed: {error}")


class InvalidAssetIdentity(TraderError):
    def __init__(self, mint: str) -> None:
        self.mint = mint
        super().__init__(f"Invalid token mint address: {mint}")


class QuoteUnavailable(TraderError):
    """No route was returned, or the quoted output amount is not positive."""

    def __init__(self, input_mint: str, output_mint: str, reason: str) -> None:
        self.input_mint = input_mint
        self.output_mint = output_mint
        self.reason = reason
        super().__init__(f"no usable quote {input_mint} -> {output_mint}: {reason}")


class SimulationRejected(TraderError):
    """Pre-flight simulation reported an error; the transaction was not broadcast."""

    def __init__(self, error: Any, logs: Optional[List[str]] = None) -> None:
        self.error = error
        self.logs = list(logs or [])
        super().__init__(f"Transaction simulation failed: {error}")


class ConfirmationExpired(TraderError):
    def __init__(self, signature: str, block_height: int, last_valid_block_height: int) -> None:
        self.signature = signature
        self.block_height = block_height
        self.last_valid_block_height = last_valid_block_height
        super().__init__(
            f"transaction {signature} expired: block height {block_height} "
            f"exceeds last valid height {last_valid_block_height}"
        )


class ConfirmationTimeout(TraderError):
    def __init__(self, signature: str, timeout: float) -> None:
        self.signature = signature
        self.timeout = timeout
        super().__init__(f"transaction {signature} not confirmed within {timeout:g}s")


class OnChainExecutionError(TraderError):
    """The transaction landed but the ledger reports that it failed."""

    def __init__(self, signature: str, error: Any) -> None:
        self.signature = signature
        self.error = error
        super().__init__(f"transaction {signature} failed on chain: {error}")


class NoBalance(TraderError):
    def __init__(self, mint: str, balance: Any) -> None:
        self.mint = mint
        self.balance = balance
        super().__init__(f"No balance available for token {mint} (balance={balance})")


class FlowCancelled(TraderError):
    """The cancellation token fired or its deadline passed."""


class InvalidTransition(TraderError):
    def __init__(self, current: Any, target: Any) -> None:
        self.current = current
        self.target = target
        super().__init__(f"invalid flow transition {current} -> {target}")
