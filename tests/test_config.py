import os
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

from jupiter_trader.config import TraderConfig, from_base_units, load_config, to_base_units
from jupiter_trader.errors import ConfigError


class TraderConfigTests(unittest.TestCase):
    def test_empty_mapping_uses_defaults(self) -> None:
        config = TraderConfig.from_mapping({})

        self.assertEqual(config, TraderConfig())
        self.assertEqual(config.priority_level, "veryHigh")
        self.assertEqual(config.priority_fee_lamports, 10_000_000)
        self.assertEqual(config.sell_delay_seconds, 60)
        self.assertIsNone(config.compute_unit_limit)

    def test_env_style_keys_are_parsed(self) -> None:
        config = TraderConfig.from_mapping(
            {
                "BUY_AMOUNT_SOL": "0.25",
                "SLIPPAGE_BPS": "150",
                "NEW_TOKEN_MODE": "true",
                "PRIORITY_LEVEL": "high",
                "COMPUTE_UNIT_PRICE_MICROLAMPORTS": "5000",
                "SELL_DELAY_SECONDS": "0",
                "UNRELATED": "ignored",
            }
        )

        self.assertEqual(config.buy_amount_sol, Decimal("0.25"))
        self.assertEqual(config.slippage_bps, 150)
        self.assertTrue(config.new_token_mode)
        self.assertEqual(config.priority_level, "high")
        self.assertEqual(config.compute_unit_price_micro_lamports, 5000)
        self.assertEqual(config.sell_delay_seconds, 0)

    def test_blank_values_fall_back_to_defaults(self) -> None:
        config = TraderConfig.from_mapping({"SLIPPAGE_BPS": "", "COMPUTE_UNIT_LIMIT": None})

        self.assertEqual(config.slippage_bps, 100)
        self.assertIsNone(config.compute_unit_limit)

    def test_unparseable_value_names_the_key(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            TraderConfig.from_mapping({"SLIPPAGE_BPS": "lots"})
        self.assertIn("SLIPPAGE_BPS", str(ctx.exception))

    def test_rejects_unknown_priority_level(self) -> None:
        with self.assertRaises(ConfigError):
            TraderConfig.from_mapping({"PRIORITY_LEVEL": "ludicrous"})

    def test_millisecond_fields_expose_seconds(self) -> None:
        config = TraderConfig(balance_retry_delay_ms=2500, confirm_timeout_ms=30_000, retry_delay_ms=500)

        self.assertEqual(config.balance_retry_delay, 2.5)
        self.assertEqual(config.confirm_timeout, 30.0)
        self.assertEqual(config.availability_interval, 0.5)

    def test_load_config_overlays_environment_on_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "trader.yaml"
            path.write_text("slippage_bps: 250\nsell_delay_seconds: 5\nnew_token_mode: true\n", encoding="utf-8")

            config = load_config(path, environ={"SLIPPAGE_BPS": "300", "PATH": os.defpath})

        self.assertEqual(config.slippage_bps, 300)
        self.assertEqual(config.sell_delay_seconds, 5)
        self.assertTrue(config.new_token_mode)

    def test_load_config_rejects_non_mapping_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "trader.yaml"
            path.write_text("- a\n- b\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(path, environ={})


class BaseUnitTests(unittest.TestCase):
    def test_sol_to_lamports(self) -> None:
        self.assertEqual(to_base_units(Decimal("1.0")), 1_000_000_000)
        self.assertEqual(to_base_units(Decimal("0.01")), 10_000_000)

    def test_token_amount_with_decimals(self) -> None:
        self.assertEqual(to_base_units(Decimal("0.5"), 6), 500_000)
        self.assertEqual(from_base_units(500_000, 6), Decimal("0.5"))


if __name__ == "__main__":
    unittest.main()
