"""
Position flow: buy -> wait for receipt -> hold -> sell -> closed.

State diagram::

    IDLE -> BUYING -> AWAITING_RECEIPT -> HOLDING -> SELLING -> CLOSED
      \\        \\              \\               \\          \\
       +--------+--------------+---------------+----------+--> FAILED

Each ``PositionFlow`` owns its state. Flows opened from one controller share
its HTTP sessions and RPC request ids, so concurrent flows each need their own
controller from ``PositionFlowController.from_config``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Dict, List, Optional, Set

from .availability import AvailabilityProbe
from .balances import BalanceWatcher
from .cancellation import CancellationToken, ensure_token
from .config import TraderConfig, to_base_units
from .errors import ConfigError, InvalidAssetIdentity, InvalidTransition, NoBalance
from .executor import SwapExecutor
from .gateway import QuoteGateway, validate_mint
from .http_client import HttpClient
from .jupiter import JupiterClient
from .models import RetryOutcome, SwapResult
from .retry import RetryOrchestrator
from .rpc import SolanaRPCClient
from .signer import TransactionSigner
from .slippage import SlippagePolicy
from .submitter import TransactionSubmitter
from .swap_builder import SwapRequestBuilder, priority_from_config

log = logging.getLogger(__name__)

BUY_MAX_ATTEMPTS = 3
BUY_RETRY_DELAY = 1.0
SELL_MAX_ATTEMPTS = 5
SELL_RETRY_DELAY = 1.0
BUY_SWAP_ATTEMPTS = 2
SELL_SWAP_ATTEMPTS = 3


class FlowState(Enum):
    IDLE = "idle"
    BUYING = "buying"
    AWAITING_RECEIPT = "awaiting_receipt"
    HOLDING = "holding"
    SELLING = "selling"
    CLOSED = "closed"
    FAILED = "failed"


VALID_TRANSITIONS: Dict[FlowState, Set[FlowState]] = {
    FlowState.IDLE: {FlowState.BUYING, FlowState.FAILED},
    FlowState.BUYING: {FlowState.AWAITING_RECEIPT, FlowState.FAILED},
    FlowState.AWAITING_RECEIPT: {FlowState.HOLDING, FlowState.FAILED},
    FlowState.HOLDING: {FlowState.SELLING, FlowState.FAILED},
    FlowState.SELLING: {FlowState.CLOSED, FlowState.FAILED},
    FlowState.CLOSED: set(),
    FlowState.FAILED: set(),
}

TERMINAL_STATES = frozenset({FlowState.CLOSED, FlowState.FAILED})


@dataclass
class StateTransition:
    from_state: FlowState
    to_state: FlowState
    timestamp: float
    reason: Optional[str] = None


@dataclass
class FlowReport:
    mint: str
    buy_amount_sol: Decimal
    is_new_token: bool
    state: FlowState = FlowState.IDLE
    transitions: List[StateTransition] = field(default_factory=list)
    buy: Optional[SwapResult] = None
    buy_outcome: Optional[RetryOutcome[SwapResult]] = None
    purchased_amount: Optional[Decimal] = None
    sell: Optional[SwapResult] = None
    sell_outcome: Optional[RetryOutcome[SwapResult]] = None
    error: Optional[BaseException] = None


class PositionFlow:
    """One buy-and-sell cycle for one token."""

    def __init__(
        self,
        controller: "PositionFlowController",
        mint: str,
        buy_amount_sol: Decimal,
        is_new_token: bool,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        self.controller = controller
        self.cancel = ensure_token(cancel)
        self.report = FlowReport(mint=mint, buy_amount_sol=buy_amount_sol, is_new_token=is_new_token)

    @property
    def state(self) -> FlowState:
        return self.report.state

    def _transition(self, target: FlowState, reason: Optional[str] = None) -> None:
        current = self.report.state
        if target not in VALID_TRANSITIONS[current]:
            raise InvalidTransition(current, target)
        self.report.transitions.append(StateTransition(current, target, time.time(), reason))
        self.report.state = target
        log.info(f"[{self.report.mint}] {current.value} -> {target.value}" + (f" ({reason})" if reason else ""))

    def run(self) -> FlowReport:
        if self.report.state is not FlowState.IDLE:
            raise InvalidTransition(self.report.state, FlowState.BUYING)
        try:
            self._buy()
            self._await_receipt()
            self._hold()
            self._sell()
        except Exception as exc:
            self.report.error = exc
            if self.report.state not in TERMINAL_STATES:
                self._transition(FlowState.FAILED, f"{type(exc).__name__}: {exc}")
            raise
        return self.report

    def _buy(self) -> None:
        controller = self.controller
        report = self.report
        self._transition(FlowState.BUYING)
        validate_mint(report.mint)
        log.info(f"Buying {report.buy_amount_sol} SOL worth of {report.mint}...")

        outcome = RetryOrchestrator(self.cancel).run(
            lambda: controller.buy(report.mint, report.buy_amount_sol, report.is_new_token, self.cancel),
            label="TokenPurchase",
            max_attempts=BUY_MAX_ATTEMPTS,
            initial_delay=BUY_RETRY_DELAY,
            give_up_on=(InvalidAssetIdentity, ConfigError),
        )
        report.buy_outcome = outcome
        report.buy = outcome.unwrap()
        log.info(f"Buy transaction successful: {report.buy.signature}")
        self._transition(FlowState.AWAITING_RECEIPT)

    def _await_receipt(self) -> None:
        config = self.controller.config
        watcher = BalanceWatcher(self.controller.rpc)
        amount = watcher.wait_for_change(
            self.controller.signer.public_key,
            self.report.mint,
            max_attempts=config.balance_retry_count,
            interval=config.balance_retry_delay,
            cancel=self.cancel,
        )
        self.report.purchased_amount = amount
        log.info(f"Holding {amount} tokens of {self.report.mint}")
        self._transition(FlowState.HOLDING)

    def _hold(self) -> None:
        delay = self.controller.config.sell_delay_seconds
        log.info(f"Waiting {delay} seconds before selling...")
        self.cancel.sleep(delay)
        self._transition(FlowState.SELLING)

    def _sell(self) -> None:
        controller = self.controller
        report = self.report
        outcome = RetryOrchestrator(self.cancel).run(
            lambda: controller.sell_all(report.mint, report.is_new_token, self.cancel),
            label="TokenSell",
            max_attempts=SELL_MAX_ATTEMPTS,
            initial_delay=SELL_RETRY_DELAY,
            exponential=True,
            give_up_on=(InvalidAssetIdentity, ConfigError),
        )
        report.sell_outcome = outcome
        report.sell = outcome.unwrap()
        log.info(f"Sell transaction successful: {report.sell.signature}")
        self._transition(FlowState.CLOSED)


class PositionFlowController:
    def __init__(
        self,
        config: TraderConfig,
        jupiter: JupiterClient,
        rpc: SolanaRPCClient,
        signer: TransactionSigner,
    ) -> None:
        self.config = config
        self.jupiter = jupiter
        self.rpc = rpc
        self.signer = signer
        self.slippage = SlippagePolicy(config)
        self.gateway = QuoteGateway(jupiter)
        self.executor = SwapExecutor(
            jupiter,
            SwapRequestBuilder(priority_from_config(config)),
            TransactionSubmitter(rpc, timeout=config.confirm_timeout, poll_interval=config.confirm_poll_interval),
            signer,
        )
        self.probe = AvailabilityProbe(
            self.gateway, max_duration=config.availability_window, interval=config.availability_interval
        )

    @classmethod
    def from_config(cls, config: TraderConfig, signer: TransactionSigner) -> "PositionFlowController":
        """Controller with its own HTTP sessions; build one per concurrent flow."""
        jupiter = JupiterClient(config.jupiter_base_url, HttpClient(config.request_timeout, config.http_retries))
        rpc = SolanaRPCClient(
            config.rpc_endpoint, HttpClient(config.request_timeout, config.http_retries), commitment=config.commitment
        )
        return cls(config, jupiter, rpc, signer)

    def open(
        self,
        mint: str,
        buy_amount_sol: Optional[Decimal] = None,
        is_new_token: Optional[bool] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> PositionFlow:
        amount = self.config.buy_amount_sol if buy_amount_sol is None else Decimal(str(buy_amount_sol))
        new_token = self.config.new_token_mode if is_new_token is None else is_new_token
        return PositionFlow(self, mint, amount, new_token, cancel)

    def buy_and_sell(
        self,
        mint: str,
        buy_amount_sol: Optional[Decimal] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> FlowReport:
        log.info(f"Wallet: {self.signer.public_key}; new token mode: {self.config.new_token_mode}")
        return self.open(mint, buy_amount_sol, cancel=cancel).run()

    def check_and_run(
        self,
        mint: str,
        buy_amount_sol: Optional[Decimal] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[FlowReport]:
        log.info(f"Checking availability for token {mint}...")
        if not self.probe.is_available(mint, cancel=cancel):
            log.info(f"Token {mint} is not available for trading yet; skipping")
            return None
        return self.buy_and_sell(mint, buy_amount_sol, cancel)

    def buy(
        self,
        mint: str,
        amount_sol: Decimal,
        is_new_token: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> SwapResult:
        validate_mint(mint)
        lamports = to_base_units(amount_sol)
        if lamports <= 0:
            raise ConfigError(f"buy amount must be positive, got {amount_sol} SOL")
        slippage_bps = self.slippage.compute_slippage_bps(is_new_token)
        log.info(f"Buy params: output={mint} amount={lamports} lamports ({amount_sol} SOL) slippage={slippage_bps} bps")

        quote = self.gateway.buy_quote(mint, lamports, slippage_bps)
        return self.executor.execute_safely(quote, max_attempts=BUY_SWAP_ATTEMPTS, cancel=cancel, label="BuySwap")

    def sell_all(
        self,
        mint: str,
        is_new_token: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> SwapResult:
        validate_mint(mint)
        owner = self.signer.public_key
        balance = self.rpc.get_token_balance(owner, mint)
        if balance <= 0:
            raise NoBalance(mint, balance)
        log.info(f"Current balance of {mint}: {balance}")

        return self.sell(mint, balance, is_new_token, cancel)

    def sell(
        self,
        mint: str,
        amount: Decimal,
        is_new_token: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> SwapResult:
        """Sell an explicit token amount, floored to the mint's base units."""
        validate_mint(mint)
        decimals = self.rpc.get_token_decimals(mint)
        base_units = to_base_units(Decimal(str(amount)), decimals, rounding=ROUND_FLOOR)
        if base_units <= 0:
            raise NoBalance(mint, amount)
        slippage_bps = self.slippage.compute_slippage_bps(is_new_token)
        log.info(f"Getting quote to sell {amount} tokens ({base_units} base units)...")

        quote = self.gateway.sell_quote(mint, base_units, slippage_bps)
        return self.executor.execute_safely(quote, max_attempts=SELL_SWAP_ATTEMPTS, cancel=cancel, label="SellSwap")
