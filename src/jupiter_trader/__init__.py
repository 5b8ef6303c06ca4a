from .availability import AvailabilityProbe
from .balances import BalanceWatcher
from .cancellation import CancellationToken
from .config import SOL_MINT, TraderConfig, load_config
from .errors import (
    ConfigError,
    ConfirmationExpired,
    ConfirmationTimeout,
    FlowCancelled,
    InvalidAssetIdentity,
    NoBalance,
    OnChainExecutionError,
    QuoteUnavailable,
    SimulationRejected,
    TraderError,
)
from .executor import SwapExecutor
from .flow import FlowReport, FlowState, PositionFlow, PositionFlowController
from .gateway import QuoteGateway
from .models import ConfirmationResult, ConfirmationStatus, Quote, RetryAttempt, RetryOutcome, SwapRequest
from .retry import RetryOrchestrator
from .slippage import SlippagePolicy
from .submitter import TransactionSubmitter
from .swap_builder import SwapRequestBuilder

__all__ = [
    "AvailabilityProbe",
    "BalanceWatcher",
    "CancellationToken",
    "ConfigError",
    "ConfirmationExpired",
    "ConfirmationResult",
    "ConfirmationStatus",
    "ConfirmationTimeout",
    "FlowCancelled",
    "FlowReport",
    "FlowState",
    "InvalidAssetIdentity",
    "NoBalance",
    "OnChainExecutionError",
    "PositionFlow",
    "PositionFlowController",
    "Quote",
    "QuoteGateway",
    "QuoteUnavailable",
    "RetryAttempt",
    "RetryOrchestrator",
    "RetryOutcome",
    "SOL_MINT",
    "SimulationRejected",
    "SlippagePolicy",
    "SwapExecutor",
    "SwapRequest",
    "SwapRequestBuilder",
    "TraderConfig",
    "TraderError",
    "TransactionSubmitter",
    "load_config",
]
