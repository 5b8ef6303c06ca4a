import unittest
from decimal import Decimal

from jupiter_trader.config import SOL_MINT, TraderConfig
from jupiter_trader.errors import ConfigError, FlowCancelled, InvalidAssetIdentity, InvalidTransition, NoBalance, QuoteUnavailable
from jupiter_trader.flow import FlowState, PositionFlowController
from jupiter_trader.jupiter import JupiterClient

from .fakes import TOKEN_MINT, FakeHttp, FakeRpc, FakeSigner, FakeToken, quote_response

BUY_QUOTE = quote_response(SOL_MINT, TOKEN_MINT, 1_000_000_000, 500_000)
SELL_QUOTE = quote_response(TOKEN_MINT, SOL_MINT, 500_000, 985_000_000)


def _controller(http: FakeHttp, rpc: FakeRpc, **overrides) -> PositionFlowController:
    settings = {"buy_amount_sol": Decimal("1.0"), "sell_delay_seconds": 0}
    settings.update(overrides)
    return PositionFlowController(TraderConfig(**settings), JupiterClient("https://jup", http=http), rpc, FakeSigner())


class PositionFlowEndToEndTests(unittest.TestCase):
    def test_buy_hold_sell_reaches_closed(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [BUY_QUOTE], TOKEN_MINT: [SELL_QUOTE]})
        rpc = FakeRpc(balances=[0, "0.5"], decimals=6)
        token = FakeToken()

        report = _controller(http, rpc).buy_and_sell(TOKEN_MINT, cancel=token)

        self.assertIs(report.state, FlowState.CLOSED)
        self.assertEqual(
            [t.to_state for t in report.transitions],
            [FlowState.BUYING, FlowState.AWAITING_RECEIPT, FlowState.HOLDING, FlowState.SELLING, FlowState.CLOSED],
        )
        self.assertEqual(report.purchased_amount, Decimal("0.5"))
        self.assertEqual(report.buy.signature, "sig-1")
        self.assertEqual(report.sell.signature, "sig-2")
        self.assertEqual(len(report.buy_outcome.attempts), 1)

        buy_params, sell_params = http.quote_calls
        self.assertEqual(buy_params["amount"], "1000000000")
        self.assertEqual(buy_params["outputMint"], TOKEN_MINT)
        self.assertEqual(sell_params["amount"], "500000")
        self.assertEqual(sell_params["outputMint"], SOL_MINT)
        self.assertGreater(report.sell.quote.out_amount, 0)
        # one receipt poll, then a zero-second hold
        self.assertEqual(token.sleeps, [2.0, 0])

    def test_buy_amount_override_does_not_touch_config(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [BUY_QUOTE], TOKEN_MINT: [SELL_QUOTE]})
        controller = _controller(http, FakeRpc(balances=[0, "0.5"]))

        report = controller.buy_and_sell(TOKEN_MINT, buy_amount_sol=Decimal("0.25"), cancel=FakeToken())

        self.assertEqual(report.buy_amount_sol, Decimal("0.25"))
        self.assertEqual(http.quote_calls[0]["amount"], "250000000")
        self.assertEqual(controller.config.buy_amount_sol, Decimal("1.0"))

    def test_no_receipt_is_a_soft_check(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [BUY_QUOTE], TOKEN_MINT: [SELL_QUOTE]})
        rpc = FakeRpc(balances=["0.5"])
        token = FakeToken()

        report = _controller(http, rpc, balance_retry_count=3).buy_and_sell(TOKEN_MINT, cancel=token)

        self.assertIs(report.state, FlowState.CLOSED)
        self.assertEqual(token.sleeps, [2.0, 2.0, 2.0, 0])

    def test_new_token_mode_widens_slippage(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [BUY_QUOTE], TOKEN_MINT: [SELL_QUOTE]})
        controller = _controller(http, FakeRpc(balances=[0, "0.5"]), new_token_mode=True)

        controller.buy_and_sell(TOKEN_MINT, cancel=FakeToken())

        self.assertEqual([c["slippageBps"] for c in http.quote_calls], ["1000", "1000"])


class PositionFlowFailureTests(unittest.TestCase):
    def test_buy_failure_fails_flow_without_selling(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [{}]})
        rpc = FakeRpc()
        token = FakeToken()
        flow = _controller(http, rpc).open(TOKEN_MINT, cancel=token)

        with self.assertRaises(QuoteUnavailable):
            flow.run()

        self.assertIs(flow.state, FlowState.FAILED)
        self.assertIsInstance(flow.report.error, QuoteUnavailable)
        self.assertEqual(len(flow.report.buy_outcome.attempts), 3)
        self.assertEqual(token.sleeps, [1.0, 2.0])
        self.assertEqual(rpc.balance_calls, 0)
        self.assertIsNone(flow.report.sell)

    def test_invalid_mint_fails_without_quoting(self) -> None:
        http = FakeHttp()
        flow = _controller(http, FakeRpc()).open("definitely not a mint", cancel=FakeToken())

        with self.assertRaises(InvalidAssetIdentity):
            flow.run()
        self.assertIs(flow.state, FlowState.FAILED)
        self.assertEqual(http.quote_calls, [])

    def test_non_positive_buy_amount_is_not_retried(self) -> None:
        http = FakeHttp()
        token = FakeToken()
        flow = _controller(http, FakeRpc(), buy_amount_sol=Decimal("0")).open(TOKEN_MINT, cancel=token)

        with self.assertRaises(ConfigError):
            flow.run()
        self.assertEqual(len(flow.report.buy_outcome.attempts), 1)
        self.assertEqual(token.sleeps, [])

    def test_sell_failure_after_all_retries(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [BUY_QUOTE], TOKEN_MINT: [{}]})
        token = FakeToken()
        flow = _controller(http, FakeRpc(balances=[0, "0.5"])).open(TOKEN_MINT, cancel=token)

        with self.assertRaises(QuoteUnavailable):
            flow.run()

        self.assertIs(flow.state, FlowState.FAILED)
        self.assertIsNotNone(flow.report.buy)
        self.assertEqual(len(flow.report.sell_outcome.attempts), 5)
        self.assertEqual(token.sleeps, [2.0, 0, 1.0, 2.0, 4.0, 8.0])
        self.assertEqual(flow.report.transitions[-2].to_state, FlowState.SELLING)

    def test_cancellation_during_hold(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [BUY_QUOTE], TOKEN_MINT: [SELL_QUOTE]})
        token = FakeToken(deadline=30.0)
        flow = _controller(http, FakeRpc(balances=[0, "0.5"]), sell_delay_seconds=60).open(TOKEN_MINT, cancel=token)

        with self.assertRaises(FlowCancelled):
            flow.run()

        self.assertIs(flow.state, FlowState.FAILED)
        self.assertEqual(flow.report.transitions[-2].to_state, FlowState.HOLDING)
        self.assertEqual(len(http.quote_calls), 1)

    def test_flow_cannot_be_rerun(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [BUY_QUOTE], TOKEN_MINT: [SELL_QUOTE]})
        flow = _controller(http, FakeRpc(balances=[0, "0.5"])).open(TOKEN_MINT, cancel=FakeToken())
        flow.run()

        with self.assertRaises(InvalidTransition):
            flow.run()


class SellAllTests(unittest.TestCase):
    def test_zero_balance_raises_before_quoting(self) -> None:
        http = FakeHttp(quotes={TOKEN_MINT: [SELL_QUOTE]})
        controller = _controller(http, FakeRpc(balances=[0]))

        with self.assertRaises(NoBalance):
            controller.sell_all(TOKEN_MINT, cancel=FakeToken())
        self.assertEqual(http.quote_calls, [])

    def test_sell_amount_is_floored_to_base_units(self) -> None:
        http = FakeHttp(quotes={TOKEN_MINT: [SELL_QUOTE]})
        controller = _controller(http, FakeRpc(balances=["0.1234567"], decimals=6))

        controller.sell_all(TOKEN_MINT, cancel=FakeToken())

        self.assertEqual(http.quote_calls[0]["amount"], "123456")


class SellTests(unittest.TestCase):
    def test_sells_explicit_amount_without_reading_balance(self) -> None:
        http = FakeHttp(quotes={TOKEN_MINT: [SELL_QUOTE]})
        rpc = FakeRpc(balances=["9.0"], decimals=6)

        result = _controller(http, rpc).sell(TOKEN_MINT, Decimal("0.25"), cancel=FakeToken())

        self.assertEqual(result.signature, "sig-1")
        self.assertEqual(rpc.balance_calls, 0)
        self.assertEqual(http.quote_calls[0]["amount"], "250000")
        self.assertEqual(http.quote_calls[0]["outputMint"], SOL_MINT)

    def test_amount_below_one_base_unit_is_rejected_before_quoting(self) -> None:
        http = FakeHttp(quotes={TOKEN_MINT: [SELL_QUOTE]})

        with self.assertRaises(NoBalance):
            _controller(http, FakeRpc(decimals=6)).sell(TOKEN_MINT, Decimal("0.0000001"), cancel=FakeToken())
        self.assertEqual(http.quote_calls, [])

    def test_zero_output_quote_is_unavailable(self) -> None:
        http = FakeHttp(quotes={TOKEN_MINT: [quote_response(TOKEN_MINT, SOL_MINT, 250_000, 0)]})

        with self.assertRaises(QuoteUnavailable):
            _controller(http, FakeRpc()).sell(TOKEN_MINT, Decimal("0.25"), cancel=FakeToken())
        self.assertEqual(http.swap_calls, [])


class CheckAndRunTests(unittest.TestCase):
    def test_skips_unavailable_token(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [{}]})
        controller = _controller(http, FakeRpc(), max_retry_duration_ms=3000, retry_delay_ms=1000)

        self.assertIsNone(controller.check_and_run(TOKEN_MINT, cancel=FakeToken()))
        self.assertTrue(all(c["slippageBps"] == "10000" for c in http.quote_calls))

    def test_runs_flow_when_route_exists(self) -> None:
        http = FakeHttp(quotes={SOL_MINT: [BUY_QUOTE], TOKEN_MINT: [SELL_QUOTE]})
        report = _controller(http, FakeRpc(balances=[0, "0.5"])).check_and_run(TOKEN_MINT, cancel=FakeToken())

        self.assertIs(report.state, FlowState.CLOSED)
        self.assertEqual(http.quote_calls[0]["amount"], "10000000")


if __name__ == "__main__":
    unittest.main()
