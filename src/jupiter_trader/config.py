import os
from dataclasses import dataclass, fields
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

import yaml

from .errors import ConfigError

SOL_MINT = "So11111111111111111111111111111111111111112"
SOL_DECIMALS = 9

PRIORITY_LEVELS = ("low", "medium", "high", "veryHigh")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    return int(str(value).strip())


def _parse_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}") from None


def _parse_priority_level(value: Any) -> str:
    text = str(value).strip()
    if text not in PRIORITY_LEVELS:
        raise ValueError(f"priority level must be one of {', '.join(PRIORITY_LEVELS)}")
    return text


_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "rpc_endpoint": str,
    "jupiter_base_url": str,
    "request_timeout": float,
    "http_retries": _parse_int,
    "commitment": str,
    "buy_amount_sol": _parse_decimal,
    "slippage_bps": _parse_int,
    "new_token_mode": _parse_bool,
    "base_slippage_bps": _parse_int,
    "new_token_slippage_multiplier": _parse_int,
    "min_slippage_bps": _parse_int,
    "max_slippage_bps": _parse_int,
    "priority_fee_lamports": _parse_int,
    "priority_level": _parse_priority_level,
    "compute_unit_limit": _parse_int,
    "compute_unit_price_micro_lamports": _parse_int,
    "sell_delay_seconds": _parse_int,
    "balance_retry_count": _parse_int,
    "balance_retry_delay_ms": _parse_int,
    "max_retry_duration_ms": _parse_int,
    "retry_delay_ms": _parse_int,
    "confirm_timeout_ms": _parse_int,
    "confirm_poll_interval_ms": _parse_int,
}

# Environment names that differ from the upper-cased field name.
_ALIASES: Dict[str, str] = {
    "COMPUTE_UNIT_PRICE_MICROLAMPORTS": "compute_unit_price_micro_lamports",
}


@dataclass(frozen=True)
class TraderConfig:
    rpc_endpoint: str = "https://api.mainnet-beta.solana.com"
    jupiter_base_url: str = "https://quote-api.jup.ag/v6"
    request_timeout: float = 5.0
    http_retries: int = 3
    commitment: str = "confirmed"
    buy_amount_sol: Decimal = Decimal("0")
    slippage_bps: int = 100
    new_token_mode: bool = False
    base_slippage_bps: int = 200
    new_token_slippage_multiplier: int = 5
    min_slippage_bps: int = 1000
    max_slippage_bps: int = 5000
    priority_fee_lamports: int = 10_000_000
    priority_level: str = "veryHigh"
    compute_unit_limit: Optional[int] = None
    compute_unit_price_micro_lamports: Optional[int] = None
    sell_delay_seconds: int = 60
    balance_retry_count: int = 5
    balance_retry_delay_ms: int = 2000
    max_retry_duration_ms: int = 60_000
    retry_delay_ms: int = 1000
    confirm_timeout_ms: int = 60_000
    confirm_poll_interval_ms: int = 2000

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TraderConfig":
        """Build a config from env-style or field-style keys.

        Absent, ``None`` and empty-string values keep the default; anything
        else must parse or a ConfigError naming the key is raised.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, raw in values.items():
            name = _ALIASES.get(key, key.lower())
            if name not in known:
                continue
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                continue
            try:
                kwargs[name] = _PARSERS[name](raw)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"invalid value for {key}: {exc}") from None
        return cls(**kwargs)

    @classmethod
    def from_sources(cls, *sources: Optional[Mapping[str, Any]]) -> "TraderConfig":
        """Later sources override earlier ones."""
        merged: Dict[str, Any] = {}
        for source in sources:
            if not source:
                continue
            for key, value in source.items():
                name = _ALIASES.get(str(key), str(key).lower())
                if name in _PARSERS and value not in (None, ""):
                    merged[name] = value
        return cls.from_mapping(merged)

    @property
    def confirm_timeout(self) -> float:
        return self.confirm_timeout_ms / 1000

    @property
    def confirm_poll_interval(self) -> float:
        return self.confirm_poll_interval_ms / 1000

    @property
    def balance_retry_delay(self) -> float:
        return self.balance_retry_delay_ms / 1000

    @property
    def availability_window(self) -> float:
        return self.max_retry_duration_ms / 1000

    @property
    def availability_interval(self) -> float:
        return self.retry_delay_ms / 1000


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> TraderConfig:
    """Read an optional YAML file, then overlay the environment."""
    file_values: Dict[str, Any] = {}
    if config_path is not None:
        with Path(config_path).open("r", encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path}: top-level YAML value must be a mapping")
        file_values = loaded
    return TraderConfig.from_sources(file_values, os.environ if environ is None else environ)


def to_base_units(amount: Decimal, decimals: int = SOL_DECIMALS, rounding: str = ROUND_HALF_UP) -> int:
    """Convert a UI amount (e.g. 1.5 SOL) to integer base units (lamports)."""
    scaled = Decimal(amount).scaleb(decimals)
    return int(scaled.quantize(Decimal(1), rounding=rounding))


def from_base_units(amount: int, decimals: int = SOL_DECIMALS) -> Decimal:
    return Decimal(amount).scaleb(-decimals)
