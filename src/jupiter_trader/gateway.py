import logging
from decimal import Decimal

from solders.pubkey import Pubkey

from .config import SOL_MINT, to_base_units
from .errors import HttpRequestError, InvalidAssetIdentity, QuoteUnavailable
from .jupiter import JupiterClient
from .models import Quote

log = logging.getLogger(__name__)

PROBE_AMOUNT_SOL = Decimal("0.01")
PROBE_SLIPPAGE_BPS = 10_000


def validate_mint(mint: str) -> str:
    try:
        Pubkey.from_string(mint)
    except (ValueError, TypeError):
        raise InvalidAssetIdentity(mint) from None
    return mint


class QuoteGateway:
    """Fetches quotes and rejects anything that cannot be executed."""

    def __init__(self, jupiter: JupiterClient) -> None:
        self.jupiter = jupiter

    def get_quote(self, input_mint: str, output_mint: str, amount: int, slippage_bps: int) -> Quote:
        try:
            response = self.jupiter.fetch_quote(input_mint, output_mint, amount, slippage_bps)
        except HttpRequestError as exc:
            raise QuoteUnavailable(input_mint, output_mint, str(exc)) from exc

        if not response or not isinstance(response, dict):
            raise QuoteUnavailable(input_mint, output_mint, "no route returned")
        if response.get("error"):
            raise QuoteUnavailable(input_mint, output_mint, str(response["error"]))

        try:
            quote = self.jupiter.parse_quote(response, slippage_bps)
        except ValueError as exc:
            raise QuoteUnavailable(input_mint, output_mint, str(exc)) from None

        if quote.out_amount <= 0:
            raise QuoteUnavailable(input_mint, output_mint, "possible insufficient liquidity")

        log.info(
            f"Quote received: in={quote.in_amount} out={quote.out_amount} "
            f"impact={quote.price_impact_pct}% route={quote.describe_route() or '-'}"
        )
        return quote

    def buy_quote(self, output_mint: str, lamports: int, slippage_bps: int) -> Quote:
        return self.get_quote(SOL_MINT, output_mint, lamports, slippage_bps)

    def sell_quote(self, input_mint: str, amount: int, slippage_bps: int) -> Quote:
        return self.get_quote(input_mint, SOL_MINT, amount, slippage_bps)

    def probe_route(self, mint: str) -> Quote:
        """Minimal-amount, maximal-tolerance quote used only to test route existence."""
        return self.get_quote(SOL_MINT, mint, to_base_units(PROBE_AMOUNT_SOL), PROBE_SLIPPAGE_BPS)
