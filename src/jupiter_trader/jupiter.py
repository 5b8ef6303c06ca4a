from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Tuple

from .http_client import HttpClient
from .models import Quote, RouteSegment, SwapRequest, SwapTransaction


class JupiterClient:
    """Wire client for the Jupiter quote and swap endpoints."""

    def __init__(self, base_url: str, http: HttpClient) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http

    def quote_params(self, in_mint: str, out_mint: str, amount: int, slippage_bps: int) -> Dict[str, str]:
        return {
            "inputMint": in_mint,
            "outputMint": out_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "swapMode": "ExactIn",
        }

    def fetch_quote(self, in_mint: str, out_mint: str, amount: int, slippage_bps: int) -> Any:
        params = self.quote_params(in_mint, out_mint, amount, slippage_bps)
        return self.http.get_json(f"{self.base_url}/quote", params=params)

    def post_swap(self, request: SwapRequest) -> SwapTransaction:
        response = self.http.post_json(f"{self.base_url}/swap", request.to_payload())
        return self.parse_swap(response)

    def parse_quote(self, response: Dict[str, Any], slippage_bps: int) -> Quote:
        try:
            out_amount = int(response["outAmount"])
            in_amount = int(response["inAmount"])
        except KeyError as exc:
            raise ValueError(f"Jupiter quote response missing {exc.args[0]}") from None
        except (TypeError, ValueError):
            raise ValueError("Jupiter quote amounts are not parseable as int") from None

        try:
            price_impact = Decimal(str(response.get("priceImpactPct") or "0"))
        except InvalidOperation:
            raise ValueError("Jupiter priceImpactPct is not numeric") from None

        return Quote(
            input_mint=str(response.get("inputMint", "")),
            output_mint=str(response.get("outputMint", "")),
            in_amount=in_amount,
            out_amount=out_amount,
            slippage_bps=int(response.get("slippageBps", slippage_bps)),
            price_impact_pct=price_impact,
            route_plan=self.parse_route_plan(response.get("routePlan") or []),
            raw=dict(response),
        )

    @staticmethod
    def parse_route_plan(route_plan: Any) -> Tuple[RouteSegment, ...]:
        segments = []
        for step in route_plan:
            swap_info = step.get("swapInfo") or {}
            segments.append(
                RouteSegment(
                    label=str(swap_info.get("label", "")),
                    amm_key=str(swap_info.get("ammKey", "")),
                    percent=int(step.get("percent", 0)),
                )
            )
        return tuple(segments)

    @staticmethod
    def parse_swap(response: Dict[str, Any]) -> SwapTransaction:
        swap_tx = response.get("swapTransaction") if isinstance(response, dict) else None
        if not swap_tx:
            raise ValueError("Jupiter swap response missing swapTransaction")
        try:
            last_valid = int(response["lastValidBlockHeight"])
        except (KeyError, TypeError, ValueError):
            raise ValueError("Jupiter swap response missing lastValidBlockHeight") from None
        return SwapTransaction(swap_transaction=swap_tx, last_valid_block_height=last_valid)
