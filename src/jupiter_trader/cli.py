import argparse
import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from .config import load_config
from .errors import TraderError
from .flow import PositionFlowController
from .logging_setup import configure_logging
from .signer import TransactionSigner, load_keypair

log = logging.getLogger(__name__)


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Buy a token with SOL on Jupiter, hold, then sell it back")
    parser.add_argument("--config", type=Path, default=None, help="Optional YAML config; environment overrides it")
    parser.add_argument("--mint", required=True, help="Token mint address to trade")
    parser.add_argument("--buy-amount", type=_decimal, default=None, help="SOL to spend, overrides BUY_AMOUNT_SOL")
    parser.add_argument(
        "--check-availability",
        action="store_true",
        help="Poll for a Jupiter route before buying and skip the token if none appears",
    )
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    try:
        config = load_config(args.config)
        signer = TransactionSigner(load_keypair(os.environ.get("PRIVATE_KEY")))
        controller = PositionFlowController.from_config(config, signer)
        if args.check_availability:
            report = controller.check_and_run(args.mint, args.buy_amount)
            if report is None:
                return 2
        else:
            report = controller.buy_and_sell(args.mint, args.buy_amount)
    except TraderError as exc:
        log.error(f"Error in buy and sell flow: {exc}")
        return 1

    log.info(f"Flow finished in state {report.state.value}: buy={report.buy.signature if report.buy else '-'} "
             f"sell={report.sell.signature if report.sell else '-'}")
    return 0
