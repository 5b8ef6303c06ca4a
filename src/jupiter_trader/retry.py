import logging
from typing import Callable, Optional, Tuple, Type, TypeVar

from .cancellation import CancellationToken, ensure_token
from .errors import FlowCancelled
from .models import RetryAttempt, RetryOutcome

log = logging.getLogger(__name__)

T = TypeVar("T")


class RetryOrchestrator:
    """Bounded retry with constant or exponential backoff.

    Every attempt calls ``operation`` from scratch; nothing from a failed
    attempt is reused. Errors listed in ``give_up_on`` end the loop at once.
    """

    def __init__(self, cancel: Optional[CancellationToken] = None) -> None:
        self.cancel = ensure_token(cancel)

    @staticmethod
    def delay_for(attempt: int, initial_delay: float, exponential: bool = True, max_delay: Optional[float] = None) -> float:
        delay = initial_delay * (2 ** (attempt - 1)) if exponential else initial_delay
        if max_delay is not None:
            delay = min(delay, max_delay)
        return delay

    def run(
        self,
        operation: Callable[[], T],
        label: str = "Operation",
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        exponential: bool = True,
        max_delay: Optional[float] = None,
        give_up_on: Tuple[Type[BaseException], ...] = (),
    ) -> RetryOutcome[T]:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        outcome: RetryOutcome[T] = RetryOutcome(label=label)
        log.info(f"[{label}] Starting (max attempts: {max_attempts}, initial delay: {initial_delay:g}s)")

        for attempt in range(1, max_attempts + 1):
            self.cancel.raise_if_cancelled()
            log.info(f"[{label}] Attempt {attempt}/{max_attempts}...")
            try:
                value = operation()
            except FlowCancelled:
                raise
            except Exception as exc:
                will_retry = attempt < max_attempts and not isinstance(exc, give_up_on)
                delay = self.delay_for(attempt, initial_delay, exponential, max_delay) if will_retry else None
                outcome.attempts.append(RetryAttempt(attempt, max_attempts, delay, exc))
                log.warning(f"[{label}] Attempt {attempt}/{max_attempts} failed: {exc}")
                if isinstance(exc, give_up_on):
                    log.error(f"[{label}] {type(exc).__name__} is not retried here")
                    break
                if delay is not None:
                    log.info(f"[{label}] Waiting {delay:g}s before next attempt...")
                    self.cancel.sleep(delay)
                continue

            outcome.attempts.append(RetryAttempt(attempt, max_attempts, None, None))
            outcome.value = value
            outcome.succeeded = True
            log.info(f"[{label}] Attempt {attempt} succeeded")
            return outcome

        log.error(f"[{label}] All {len(outcome.attempts)} attempts failed")
        return outcome

    def with_retry(
        self,
        operation: Callable[[], T],
        label: str = "Operation",
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        exponential: bool = True,
        max_delay: Optional[float] = None,
        give_up_on: Tuple[Type[BaseException], ...] = (),
    ) -> T:
        """Like :meth:`run`, but returns the value or raises the last error."""
        return self.run(operation, label, max_attempts, initial_delay, exponential, max_delay, give_up_on).unwrap()
