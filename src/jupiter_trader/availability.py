import logging
from typing import Optional

from .cancellation import CancellationToken, ensure_token
from .errors import HttpRequestError, QuoteUnavailable
from .gateway import QuoteGateway, validate_mint

log = logging.getLogger(__name__)


class AvailabilityProbe:
    def __init__(self, gateway: QuoteGateway, max_duration: float = 60.0, interval: float = 1.0) -> None:
        self.gateway = gateway
        self.max_duration = max_duration
        self.interval = interval

    def is_available(
        self,
        mint: str,
        max_duration: Optional[float] = None,
        interval: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> bool:
        """Keep asking for a minimal route until one exists or the window closes."""
        validate_mint(mint)
        token = ensure_token(cancel)
        max_duration = self.max_duration if max_duration is None else max_duration
        interval = self.interval if interval is None else interval

        started = token.now()
        attempt = 0
        while token.now() - started < max_duration:
            attempt += 1
            try:
                quote = self.gateway.probe_route(mint)
            except (QuoteUnavailable, HttpRequestError) as exc:
                log.info(f"Attempt {attempt} found no route for {mint}: {exc}")
                elapsed = token.now() - started
                if elapsed + interval < max_duration:
                    token.sleep(interval)
                else:
                    break
                continue

            log.info(
                f"Token {mint} is available: in={quote.in_amount} out={quote.out_amount} "
                f"impact={quote.price_impact_pct}%"
            )
            return True

        log.warning(f"No route for {mint} after {attempt} attempts within {max_duration:g}s")
        return False
