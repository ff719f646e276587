"""Tests for wash trading detection."""

import pytest

from src.models.risk import TradeCounts
from src.parsers.solana_rpc.models import ParsedTransaction, RpcSignature, TokenBalance
from src.parsers.wash_trading import build_wash_evidence, detect_wash_trading

TOKEN = "TokenMint123456"
BUNDLE = frozenset({"B1", "B2", "B3"})


def _swap(sig: str, owner: str, pre: float, post: float) -> ParsedTransaction:
    return ParsedTransaction(
        signature=sig,
        fee_payer=owner,
        pre_token_balances=[TokenBalance(account_index=1, mint=TOKEN, owner=owner, amount=pre)],
        post_token_balances=[TokenBalance(account_index=1, mint=TOKEN, owner=owner, amount=post)],
    )


def _load(fake_rpc, txs: list[ParsedTransaction]) -> None:
    fake_rpc.signatures[TOKEN] = [RpcSignature(signature=tx.signature, slot=1) for tx in txs]
    for tx in txs:
        fake_rpc.transactions[tx.signature] = tx


class TestBuildWashEvidence:
    def test_consistency(self) -> None:
        evidence = build_wash_evidence(4, 6, TradeCounts(buys=200, sells=100))
        assert evidence.bundle_buy_count + evidence.organic_buy_count == evidence.total_buy_count
        assert evidence.wash_percent == 40.0
        assert evidence.detected is True
        assert evidence.estimated_real_buy_count == 120
        assert evidence.adjusted_buy_sell_ratio == pytest.approx(1.2)

    def test_high_percent_but_too_few_bundle_buys(self) -> None:
        evidence = build_wash_evidence(2, 1, TradeCounts(buys=10, sells=10))
        assert evidence.wash_percent == pytest.approx(66.67, abs=0.01)
        assert evidence.detected is False

    def test_no_buys_is_zero_result(self) -> None:
        evidence = build_wash_evidence(0, 0, TradeCounts(buys=50, sells=40))
        assert evidence.detected is False
        assert evidence.wash_percent == 0.0
        assert evidence.estimated_real_buy_count == 50

    def test_ratio_undefined_without_sells(self) -> None:
        evidence = build_wash_evidence(3, 3, TradeCounts(buys=10, sells=0))
        assert evidence.adjusted_buy_sell_ratio is None

    @pytest.mark.parametrize("bundle,organic", [(0, 5), (3, 7), (9, 1), (50, 0)])
    def test_detected_matches_rule(self, bundle: int, organic: int) -> None:
        evidence = build_wash_evidence(bundle, organic, TradeCounts(buys=100, sells=50))
        assert 0 <= evidence.wash_percent <= 100
        assert evidence.detected == (evidence.wash_percent >= 30 and evidence.bundle_buy_count >= 3)


class TestDetectWashTrading:
    @pytest.mark.asyncio
    async def test_bundle_wallets_dominate_buys(self, fake_rpc) -> None:
        txs = [
            _swap("s1", "B1", 0, 100),
            _swap("s2", "B2", 0, 100),
            _swap("s3", "B3", 10, 50),
            _swap("s4", "B1", 100, 200),
            _swap("s5", "Organic1", 0, 30),
            _swap("s6", "Organic2", 50, 10),  # sell, not counted
        ]
        _load(fake_rpc, txs)

        evidence = await detect_wash_trading(
            fake_rpc, TOKEN, BUNDLE, TradeCounts(buys=100, sells=80)
        )

        assert evidence.bundle_buy_count == 4
        assert evidence.organic_buy_count == 1
        assert evidence.wash_percent == 80.0
        assert evidence.detected is True
        assert evidence.estimated_real_buy_count == 20

    @pytest.mark.asyncio
    async def test_duplicate_signatures_counted_once(self, fake_rpc) -> None:
        tx = _swap("dup", "B1", 0, 10)
        fake_rpc.transactions["dup"] = tx
        fake_rpc.signatures[TOKEN] = [RpcSignature(signature="dup", slot=1)] * 5

        evidence = await detect_wash_trading(fake_rpc, TOKEN, BUNDLE, TradeCounts(buys=10))

        assert evidence.total_buy_count == 1

    @pytest.mark.asyncio
    async def test_no_bundle_wallets_means_no_evidence(self, fake_rpc) -> None:
        evidence = await detect_wash_trading(
            fake_rpc, TOKEN, frozenset(), TradeCounts(buys=42, sells=10)
        )

        assert evidence is None
        assert fake_rpc.calls == []

    @pytest.mark.asyncio
    async def test_signature_failure_is_zero_result(self, fake_rpc) -> None:
        fake_rpc.failing.add("get_signatures_for_address")

        evidence = await detect_wash_trading(fake_rpc, TOKEN, BUNDLE, TradeCounts(buys=7))

        assert evidence.detected is False
        assert evidence.estimated_real_buy_count == 7

    @pytest.mark.asyncio
    async def test_sample_size_bounds_transaction_fetches(self, fake_rpc) -> None:
        _load(fake_rpc, [_swap(f"s{i}", "Organic", 0, 1) for i in range(80)])

        await detect_wash_trading(
            fake_rpc, TOKEN, BUNDLE, TradeCounts(buys=80), sample_size=50
        )

        assert fake_rpc.calls.count("get_transaction") == 50
