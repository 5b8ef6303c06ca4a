"""Solana JSON-RPC client covering the calls the swap engine needs."""

from __future__ import annotations

import base64
import itertools
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .config import SOL_DECIMALS, SOL_MINT, from_base_units
from .errors import SolanaRPCError
from .http_client import HttpClient

log = logging.getLogger(__name__)


class SolanaRPCClient:
    def __init__(self, endpoint: str, http: HttpClient, commitment: str = "confirmed") -> None:
        self.endpoint = endpoint.rstrip("/")
        self.http = http
        self.commitment = commitment
        self._ids = itertools.count(1)

    def _post(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        result = self.http.post_json(self.endpoint, payload)
        if not isinstance(result, dict):
            raise SolanaRPCError(method, f"unexpected response: {result!r}")
        if "error" in result:
            raise SolanaRPCError(method, result["error"])
        return result.get("result")

    def simulate_transaction(self, payload: bytes, commitment: str = "processed") -> Dict[str, Any]:
        result = self._post(
            "simulateTransaction",
            [
                base64.b64encode(payload).decode("ascii"),
                {"encoding": "base64", "replaceRecentBlockhash": True, "commitment": commitment},
            ],
        )
        return (result or {}).get("value") or {}

    def send_transaction(self, payload: bytes, skip_preflight: bool = True) -> str:
        signature = self._post(
            "sendTransaction",
            [
                base64.b64encode(payload).decode("ascii"),
                {"encoding": "base64", "skipPreflight": skip_preflight, "preflightCommitment": self.commitment},
            ],
        )
        if not signature:
            raise SolanaRPCError("sendTransaction", "no signature returned")
        return str(signature)

    def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        result = self._post(
            "getTransaction",
            [
                signature,
                {"commitment": self.commitment, "encoding": "json", "maxSupportedTransactionVersion": 0},
            ],
        )
        if result is not None and not isinstance(result, dict):
            raise SolanaRPCError("getTransaction", f"unexpected result: {result!r}")
        return result

    def get_block_height(self) -> int:
        result = self._post("getBlockHeight", [{"commitment": self.commitment}])
        if isinstance(result, bool) or not isinstance(result, int):
            raise SolanaRPCError("getBlockHeight", f"unexpected result: {result!r}")
        return result

    def get_balance(self, owner: str) -> int:
        result = self._post("getBalance", [owner, {"commitment": self.commitment}])
        return int((result or {}).get("value", 0))

    def get_token_balance(self, owner: str, mint: str) -> Decimal:
        """Balance in token units; the native mint reads the lamport balance."""
        if mint == SOL_MINT:
            return from_base_units(self.get_balance(owner), SOL_DECIMALS)

        result = self._post(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        total = Decimal(0)
        for account in (result or {}).get("value", []):
            info = account.get("account", {}).get("data", {}).get("parsed", {}).get("info", {})
            token_amount = info.get("tokenAmount") or {}
            raw = token_amount.get("amount")
            if raw is None:
                continue
            total += from_base_units(int(raw), int(token_amount.get("decimals", 0)))
        return total

    def get_token_decimals(self, mint: str) -> int:
        if mint == SOL_MINT:
            return SOL_DECIMALS
        try:
            result = self._post("getAccountInfo", [mint, {"encoding": "jsonParsed", "commitment": self.commitment}])
            info = ((result or {}).get("value") or {}).get("data", {}).get("parsed", {}).get("info", {})
            decimals = info.get("decimals")
            if decimals is None:
                raise SolanaRPCError("getAccountInfo", "could not parse mint info")
            return int(decimals)
        except SolanaRPCError as exc:
            log.warning(f"Error getting token decimals for {mint}: {exc}; assuming {SOL_DECIMALS}")
            return SOL_DECIMALS
