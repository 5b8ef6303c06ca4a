import logging
from typing import Optional

from .cancellation import CancellationToken, ensure_token
from .errors import ConfirmationExpired, ConfirmationTimeout, OnChainExecutionError
from .jupiter import JupiterClient
from .models import ConfirmationResult, ConfirmationStatus, Quote, SwapResult
from .retry import RetryOrchestrator
from .signer import TransactionSigner
from .submitter import TransactionSubmitter
from .swap_builder import SwapRequestBuilder

log = logging.getLogger(__name__)

SWAP_RETRY_INITIAL_DELAY = 1.0
SWAP_RETRY_MAX_DELAY = 2.0


def raise_for_confirmation(result: ConfirmationResult, last_valid_block_height: int, timeout: float) -> str:
    if result.status is ConfirmationStatus.CONFIRMED:
        return result.signature
    if result.status is ConfirmationStatus.CONFIRMED_WITH_ERROR:
        raise OnChainExecutionError(result.signature, result.error)
    if result.expired:
        raise ConfirmationExpired(result.signature, result.block_height or 0, last_valid_block_height)
    raise ConfirmationTimeout(result.signature, timeout)


class SwapExecutor:
    """Builds, signs, simulates and submits one swap, retrying the whole sequence.

    A fresh swap transaction is requested on every attempt so the blockhash
    and priority fee are current. On-chain failures are not retried here.
    """

    def __init__(
        self,
        jupiter: JupiterClient,
        builder: SwapRequestBuilder,
        submitter: TransactionSubmitter,
        signer: TransactionSigner,
    ) -> None:
        self.jupiter = jupiter
        self.builder = builder
        self.submitter = submitter
        self.signer = signer

    def execute_once(self, quote: Quote, cancel: Optional[CancellationToken] = None) -> str:
        request = self.builder.build_swap_request(self.signer.public_key, quote)
        swap_tx = self.jupiter.post_swap(request)
        signed = self.signer.sign(swap_tx)

        log.info("Simulating transaction...")
        self.submitter.simulate(signed)

        log.info("Executing real transaction...")
        result = self.submitter.submit(signed, cancel=cancel)
        return raise_for_confirmation(result, signed.last_valid_block_height, self.submitter.timeout)

    def execute_safely(
        self,
        quote: Quote,
        max_attempts: int = 2,
        cancel: Optional[CancellationToken] = None,
        label: str = "Swap",
    ) -> SwapResult:
        token = ensure_token(cancel)
        outcome = RetryOrchestrator(token).run(
            lambda: self.execute_once(quote, token),
            label=label,
            max_attempts=max_attempts,
            initial_delay=SWAP_RETRY_INITIAL_DELAY,
            exponential=True,
            max_delay=SWAP_RETRY_MAX_DELAY,
            give_up_on=(OnChainExecutionError,),
        )
        signature = outcome.unwrap()
        return SwapResult(signature=signature, quote=quote, attempts=len(outcome.attempts))
