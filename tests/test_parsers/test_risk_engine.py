"""Tests for the risk scoring cascade."""

from dataclasses import replace

import pytest

from src.models.risk import (
    UNKNOWN_AGE,
    BundleAssessment,
    BundleConfidence,
    BundleEvidence,
    BundleQuality,
    CreatorProfile,
    DevActivity,
    FlagType,
    HolderRecord,
    KnownAge,
    NarrativeBaseline,
    RiskFlag,
    RiskLevel,
    Severity,
    TokenSnapshot,
    TradeCounts,
    WashTradingEvidence,
)
from src.parsers.risk_engine import (
    RiskEvidence,
    ScoreState,
    apply_cap,
    classify,
    generate_recommendation,
    merge_flags,
    positive_offset,
    risk_indicators,
    rule_combo,
    score_risk,
)

TOKEN = "TokenMint123456"

CLEAN_SNAPSHOT = TokenSnapshot(
    address=TOKEN,
    age_hours=60 * 24,
    liquidity_usd=500_000,
    market_cap_usd=2_000_000,
    volume_24h=100_000,
    txns_24h=TradeCounts(buys=100, sells=100),
    has_website=True,
    has_twitter=True,
    price_change_24h=5.0,
)
MATURE_SNAPSHOT = replace(CLEAN_SNAPSHOT, market_cap_usd=150_000_000)
CLEAN_CREATOR = CreatorProfile(
    address="DevWallet111", wallet_age=KnownAge(days=400), tokens_created_count=2
)


def _holder(address: str, pct: float, lp: bool = False) -> HolderRecord:
    return HolderRecord(
        address=address,
        token_account_address=f"ata_{address}",
        balance=pct,
        percent_of_supply=pct,
        is_liquidity_pool=lp,
    )


CLEAN_HOLDERS = (_holder("Pool", 40.0, lp=True), _holder("A", 5.0), _holder("B", 3.0))


def _evidence(**overrides) -> RiskEvidence:
    fields = {"snapshot": CLEAN_SNAPSHOT, "holders": CLEAN_HOLDERS, "creator": CLEAN_CREATOR}
    fields.update(overrides)
    return RiskEvidence(**fields)


def _bundle(confidence: BundleConfidence, wallets: int = 5) -> BundleEvidence:
    return BundleEvidence(
        detected=True,
        confidence=confidence,
        wallet_addresses=frozenset(f"W{i}" for i in range(wallets)),
        percent_supply_controlled=12.0,
    )


def _has_flag(assessment, type_: FlagType, severity: Severity | None = None) -> bool:
    return any(
        f.type is type_ and (severity is None or f.severity is severity)
        for f in assessment.flags
    )


class TestCleanToken:
    def test_default_base_score(self) -> None:
        result = score_risk(_evidence())

        assert result.score == 30
        assert result.level == RiskLevel.SAFE
        assert result.flags == ()
        assert result.token_address == TOKEN
        assert result.recommendation.startswith("LOWER RISK")

    def test_baseline_is_the_starting_point(self) -> None:
        baseline = NarrativeBaseline(score=50, flags=(RiskFlag(FlagType.SOCIAL, Severity.LOW, "Hype narrative"),))

        result = score_risk(_evidence(), baseline)

        assert result.score == 50
        assert result.flags[0].message == "Hype narrative"


class TestScenarios:
    def test_serial_rugger_with_no_liquidity(self) -> None:
        evidence = _evidence(
            snapshot=replace(
                CLEAN_SNAPSHOT,
                age_hours=0.4,
                liquidity_usd=0.0,
                market_cap_usd=None,
                has_website=False,
                has_twitter=False,
            ),
            creator=CreatorProfile(
                address="DevWallet111", wallet_age=KnownAge(days=3), rugged_token_count=2
            ),
        )

        result = score_risk(evidence)

        assert result.level == RiskLevel.SCAM
        assert result.score >= 90
        assert _has_flag(result, FlagType.DEPLOYER, Severity.CRITICAL)
        assert _has_flag(result, FlagType.LIQUIDITY, Severity.CRITICAL)
        assert result.recommendation.startswith("AVOID.")

    def test_high_confidence_bundle_with_active_dev(self) -> None:
        evidence = _evidence(
            bundle=_bundle(BundleConfidence.HIGH, wallets=12),
            dev=DevActivity(current_holdings_percent=10.0),
        )

        result = score_risk(evidence)

        assert result.score >= 95
        assert result.level == RiskLevel.SCAM

    def test_dev_fully_exited_does_not_escalate_bundle(self) -> None:
        evidence = _evidence(
            bundle=_bundle(BundleConfidence.MEDIUM),
            dev=DevActivity(has_sold=True, percent_sold=100.0, sell_count=3),
        )

        assert score_risk(evidence).score == 75

    def test_mature_large_cap_is_capped(self) -> None:
        evidence = _evidence(
            snapshot=replace(MATURE_SNAPSHOT, age_hours=45 * 24, freeze_authority_active=True)
        )

        result = score_risk(evidence)

        assert result.score == 35
        assert result.level == RiskLevel.SAFE
        assert any(f.message.startswith("Established token") for f in result.flags)

    def test_crashed_large_cap_is_not_rescued(self) -> None:
        evidence = _evidence(
            snapshot=replace(MATURE_SNAPSHOT, age_hours=45 * 24, price_change_24h=-85.0)
        )

        result = score_risk(evidence)

        assert result.score == 75
        assert result.level == RiskLevel.DANGEROUS
        assert not any(f.message.startswith("Established token") for f in result.flags)

    @pytest.mark.parametrize(
        "mcap,age_days,expected",
        [(150_000_000, 45, 35), (60_000_000, 20, 45), (20_000_000, 10, 55), (150_000_000, 10, 55)],
    )
    def test_cap_tiers(self, mcap: float, age_days: int, expected: int) -> None:
        snapshot = replace(CLEAN_SNAPSHOT, market_cap_usd=mcap, age_hours=age_days * 24)

        result = score_risk(_evidence(snapshot=snapshot), NarrativeBaseline(score=70))

        assert result.score == expected

    def test_cap_skipped_for_rug_history(self) -> None:
        creator = replace(CLEAN_CREATOR, rugged_token_count=1)

        result = score_risk(_evidence(snapshot=MATURE_SNAPSHOT, creator=creator))

        assert result.score == 80

    def test_cap_that_does_not_bite_adds_no_flag(self) -> None:
        result = score_risk(_evidence(snapshot=MATURE_SNAPSHOT))

        assert result.score == 30
        assert result.flags == ()


class TestCreatorRules:
    @pytest.mark.parametrize("rugs,expected", [(1, 80), (2, 90), (3, 95), (8, 95)])
    def test_rug_thresholds(self, rugs: int, expected: int) -> None:
        creator = replace(CLEAN_CREATOR, rugged_token_count=rugs)
        assert score_risk(_evidence(creator=creator)).score == expected

    def test_unknown_wallet_age(self) -> None:
        creator = replace(CLEAN_CREATOR, wallet_age=UNKNOWN_AGE)
        result = score_risk(_evidence(creator=creator))

        assert result.score == 65
        assert _has_flag(result, FlagType.DEPLOYER, Severity.HIGH)

    def test_fresh_wallet(self) -> None:
        creator = replace(CLEAN_CREATOR, wallet_age=KnownAge(days=0))
        assert score_risk(_evidence(creator=creator)).score == 65

    def test_week_old_wallet(self) -> None:
        creator = replace(CLEAN_CREATOR, wallet_age=KnownAge(days=4))
        assert score_risk(_evidence(creator=creator)).score == 55

    def test_serial_creator(self) -> None:
        creator = replace(CLEAN_CREATOR, tokens_created_count=25)
        assert score_risk(_evidence(creator=creator)).score == 60

    def test_creator_not_resolved(self) -> None:
        result = score_risk(_evidence(creator=None))

        assert result.score == 55
        assert any("could not be determined" in f.message for f in result.flags)


class TestMarketRules:
    def test_undetermined_liquidity(self) -> None:
        result = score_risk(_evidence(snapshot=replace(CLEAN_SNAPSHOT, liquidity_usd=None)))
        assert result.score == 55

    def test_bonding_curve_skips_liquidity(self) -> None:
        snapshot = replace(CLEAN_SNAPSHOT, liquidity_usd=0.0, is_bonding_curve=True)
        assert score_risk(_evidence(snapshot=snapshot)).score == 30

    def test_very_low_liquidity(self) -> None:
        snapshot = replace(CLEAN_SNAPSHOT, liquidity_usd=500.0)
        assert score_risk(_evidence(snapshot=snapshot)).score == 80

    def test_low_liquidity_on_new_token(self) -> None:
        snapshot = replace(CLEAN_SNAPSHOT, liquidity_usd=5_000.0, age_hours=48)
        assert score_risk(_evidence(snapshot=snapshot)).score == 70

    def test_new_token_on_curve(self) -> None:
        snapshot = replace(CLEAN_SNAPSHOT, age_hours=5, is_bonding_curve=True)
        assert score_risk(_evidence(snapshot=snapshot)).score == 50

    def test_authorities(self) -> None:
        snapshot = replace(CLEAN_SNAPSHOT, mint_authority_active=True)
        assert score_risk(_evidence(snapshot=snapshot)).score == 50
        snapshot = replace(snapshot, freeze_authority_active=True)
        assert score_risk(_evidence(snapshot=snapshot)).score == 55

    def test_price_crash(self) -> None:
        snapshot = replace(CLEAN_SNAPSHOT, price_change_24h=-85.0)
        assert score_risk(_evidence(snapshot=snapshot)).score == 75


class TestHolderRules:
    def test_whale(self) -> None:
        holders = CLEAN_HOLDERS + (_holder("Whale", 35.0),)
        result = score_risk(_evidence(holders=holders))

        assert result.score == 80
        assert _has_flag(result, FlagType.HOLDERS, Severity.HIGH)

    def test_lp_is_never_a_whale(self) -> None:
        holders = (_holder("Pool", 90.0, lp=True),)
        assert score_risk(_evidence(holders=holders)).score == 30

    def test_top10_concentration(self) -> None:
        holders = tuple(_holder(f"H{i}", 6.0) for i in range(10))
        assert score_risk(_evidence(holders=holders)).score == 60


class TestBundleAndTradingRules:
    def test_very_suspicious_quality(self) -> None:
        quality = BundleQuality(legitimacy_score=80, assessment=BundleAssessment.VERY_SUSPICIOUS)
        evidence = _evidence(
            bundle=_bundle(BundleConfidence.LOW),
            quality=quality,
            dev=DevActivity(has_sold=True, percent_sold=100.0),
        )

        assert score_risk(evidence).score == 75

    def test_likely_legit_quality_flags_only(self) -> None:
        quality = BundleQuality(legitimacy_score=10, assessment=BundleAssessment.LIKELY_LEGIT)
        evidence = _evidence(
            bundle=_bundle(BundleConfidence.LOW),
            quality=quality,
            dev=DevActivity(has_sold=True, percent_sold=100.0),
        )

        result = score_risk(evidence)

        assert result.score == 60
        assert _has_flag(result, FlagType.BUNDLE, Severity.LOW)

    @pytest.mark.parametrize("holds,expected", [(55.0, 75), (35.0, 65), (10.0, 30)])
    def test_dev_holdings(self, holds: float, expected: int) -> None:
        dev = DevActivity(current_holdings_percent=holds)
        assert score_risk(_evidence(dev=dev)).score == expected

    def test_dev_sold_half_still_holding(self) -> None:
        dev = DevActivity(has_sold=True, percent_sold=60.0, sell_count=4, current_holdings_percent=5.0)
        assert score_risk(_evidence(dev=dev)).score == 70

    def test_wash_trading(self) -> None:
        heavy = WashTradingEvidence(detected=True, bundle_buy_count=40, organic_buy_count=10, wash_percent=80.0)
        light = WashTradingEvidence(detected=True, bundle_buy_count=4, organic_buy_count=6, wash_percent=40.0)
        undetected = WashTradingEvidence(detected=False, bundle_buy_count=2, organic_buy_count=0, wash_percent=100.0)

        assert score_risk(_evidence(wash=heavy)).score == 85
        assert score_risk(_evidence(wash=light)).score == 65
        assert score_risk(_evidence(wash=undetected)).score == 30


class TestCombo:
    RISKY = replace(
        CLEAN_SNAPSHOT,
        age_hours=10,
        liquidity_usd=5_000,
        txns_24h=TradeCounts(buys=50, sells=100),
        price_change_24h=-40.0,
        volume_24h=None,
    )

    def test_indicators(self) -> None:
        evidence = _evidence(snapshot=self.RISKY, creator=None, bundle=_bundle(BundleConfidence.LOW))

        indicators = risk_indicators(evidence)

        assert len(indicators) == 6
        assert "few holders" not in indicators

    def test_floors_by_count(self) -> None:
        evidence = _evidence(snapshot=self.RISKY, creator=None, bundle=_bundle(BundleConfidence.LOW))
        assert rule_combo(ScoreState(score=30), evidence).score == 75

        three = _evidence(snapshot=replace(self.RISKY, txns_24h=TradeCounts(), price_change_24h=0.0))
        assert rule_combo(ScoreState(score=30), three).score == 30
        three = _evidence(snapshot=replace(self.RISKY, txns_24h=TradeCounts(), price_change_24h=0.0), creator=None)
        assert rule_combo(ScoreState(score=30), three).score == 60

    def test_positive_offset(self) -> None:
        bullish = replace(
            CLEAN_SNAPSHOT,
            liquidity_usd=50_000,
            txns_24h=TradeCounts(buys=300, sells=100),
            price_change_24h=120.0,
            volume_24h=200_000,
        )
        assert positive_offset(_evidence(snapshot=bullish)) == 2

    def test_offset_disabled_for_high_confidence_bundle(self) -> None:
        bullish = replace(CLEAN_SNAPSHOT, txns_24h=TradeCounts(buys=300, sells=100))
        evidence = _evidence(snapshot=bullish, bundle=_bundle(BundleConfidence.HIGH))
        assert positive_offset(evidence) == 0

    def test_offset_disabled_for_unknown_liquidity(self) -> None:
        bullish = replace(CLEAN_SNAPSHOT, liquidity_usd=None, txns_24h=TradeCounts(buys=300, sells=100))
        assert positive_offset(_evidence(snapshot=bullish)) == 0


class TestProperties:
    @pytest.mark.parametrize("start", [-50, 0, 30, 100, 500])
    def test_score_bounds(self, start: int) -> None:
        result = score_risk(_evidence(), NarrativeBaseline(score=start))
        assert 0 <= result.score <= 100

    def test_idempotent(self) -> None:
        evidence = _evidence(bundle=_bundle(BundleConfidence.MEDIUM), creator=None)
        assert score_risk(evidence) == score_risk(evidence)

    def test_confidence_is_monotonic(self) -> None:
        scores = [
            score_risk(_evidence(bundle=_bundle(c))).score
            for c in (BundleConfidence.NONE, BundleConfidence.LOW, BundleConfidence.MEDIUM, BundleConfidence.HIGH)
        ]
        assert scores == sorted(scores)

    def test_zero_liquidity_survives_caps(self) -> None:
        snapshot = replace(MATURE_SNAPSHOT, liquidity_usd=40.0)
        assert score_risk(_evidence(snapshot=snapshot)).score >= 90

    def test_whale_minimum_survives_caps(self) -> None:
        holders = CLEAN_HOLDERS + (_holder("Whale", 40.0),)
        assert score_risk(_evidence(snapshot=MATURE_SNAPSHOT, holders=holders)).score == 75

    @pytest.mark.parametrize("rugs", [1, 2, 5])
    def test_rug_history_minimum(self, rugs: int) -> None:
        creator = replace(CLEAN_CREATOR, rugged_token_count=rugs)
        result = score_risk(_evidence(snapshot=MATURE_SNAPSHOT, creator=creator), NarrativeBaseline(score=0))
        assert result.score >= 70

    def test_cap_never_below_hard_floor(self) -> None:
        state = apply_cap(ScoreState(score=90, hard_floor=90), 35, "cap")
        assert state.score == 90
        assert state.flags == ()


class TestOutput:
    @pytest.mark.parametrize(
        "score,level",
        [(0, RiskLevel.SAFE), (54, RiskLevel.SAFE), (55, RiskLevel.SUSPICIOUS),
         (65, RiskLevel.DANGEROUS), (79, RiskLevel.DANGEROUS), (80, RiskLevel.SCAM)],
    )
    def test_classify(self, score: int, level: RiskLevel) -> None:
        assert classify(score) == level

    def test_merge_flags_dedupes_by_message(self) -> None:
        a = RiskFlag(FlagType.BUNDLE, Severity.HIGH, "dup")
        b = RiskFlag(FlagType.SOCIAL, Severity.LOW, "dup")
        c = RiskFlag(FlagType.TRADING, Severity.LOW, "other")

        merged = merge_flags((a, c), (b,))

        assert merged == (a, c)

    def test_recommendations(self) -> None:
        assert generate_recommendation(30, True, 12).startswith("AVOID.")
        assert generate_recommendation(72, False, 0).startswith("AVOID or EXIT")
        assert generate_recommendation(30, True, 6).startswith("AVOID or EXIT")
        assert generate_recommendation(62, False, 0).startswith("CAUTION")
        assert generate_recommendation(30, True, 2).startswith("CAUTION")
        assert generate_recommendation(45, False, 0).startswith("MODERATE RISK")
        assert generate_recommendation(10, False, 0).startswith("LOWER RISK")
