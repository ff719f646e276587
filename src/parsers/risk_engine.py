"""Risk scoring engine — ordered rule cascade over already-fetched evidence.

Pure and synchronous: no I/O, no clock, same evidence in, same assessment out.

Each rule maps (ScoreState, RiskEvidence) -> ScoreState. Rules are applied
in RULES order:
- floors for specific danger signals (creator rugs, zero liquidity,
  whale concentration, bundles, dev dumping, wash trading, price crash)
- maturity caps for large, long-lived tokens (later rule wins)
- combo escalation over moderate indicators

Two floors are hard (creator rug history, zero liquidity off the bonding
curve). A single whale holder and a 24h price crash each set a hard minimum
of 75. No cap can go below `hard_floor`.
"""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from functools import reduce

from src.models.risk import (
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
    RiskAssessment,
    RiskFlag,
    RiskLevel,
    Severity,
    TokenSnapshot,
    UnknownAge,
    WashTradingEvidence,
)

DEFAULT_BASE_SCORE = 30


@dataclass(frozen=True)
class RiskEvidence:
    """Everything the cascade reads. None = signal absent / not determined."""

    snapshot: TokenSnapshot
    holders: tuple[HolderRecord, ...] = ()
    creator: CreatorProfile | None = None
    bundle: BundleEvidence = field(default_factory=BundleEvidence)
    quality: BundleQuality | None = None
    wash: WashTradingEvidence | None = None
    dev: DevActivity | None = None


@dataclass(frozen=True)
class ScoreState:
    score: int
    flags: tuple[RiskFlag, ...] = ()
    hard_floor: int = 0


Rule = Callable[[ScoreState, RiskEvidence], ScoreState]


def raise_floor(
    state: ScoreState,
    threshold: int,
    flag: RiskFlag,
    *,
    hard_min: int | None = None,
) -> ScoreState:
    """score = max(score, threshold); the flag is always recorded."""
    return replace(
        state,
        score=max(state.score, threshold),
        flags=state.flags + (flag,),
        hard_floor=max(state.hard_floor, hard_min) if hard_min is not None else state.hard_floor,
    )


def apply_cap(state: ScoreState, threshold: int, message: str) -> ScoreState:
    """score = min(score, threshold), never below the hard floor; flagged only if it bit."""
    capped = max(min(state.score, threshold), state.hard_floor)
    if capped >= state.score:
        return state
    flag = RiskFlag(FlagType.TRADING, Severity.LOW, message)
    return replace(state, score=capped, flags=state.flags + (flag,))


def _flag(type_: FlagType, severity: Severity, message: str) -> RiskFlag:
    return RiskFlag(type_, severity, message)


def _non_lp(holders: tuple[HolderRecord, ...]) -> list[HolderRecord]:
    return sorted(
        (h for h in holders if not h.is_liquidity_pool),
        key=lambda h: h.percent_of_supply,
        reverse=True,
    )


# --- creator -------------------------------------------------------------


def rule_creator_rugs(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    if ev.creator is None or ev.creator.rugged_token_count <= 0:
        return state
    rugs = ev.creator.rugged_token_count
    threshold = min(95, 70 + 10 * min(rugs, 5))
    return raise_floor(
        state,
        threshold,
        _flag(FlagType.DEPLOYER, Severity.CRITICAL, f"Creator has {rugs} previous rugged tokens"),
        hard_min=threshold,
    )


def rule_creator_wallet_age(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    if ev.creator is None:
        return state
    age = ev.creator.wallet_age
    if isinstance(age, UnknownAge):
        return raise_floor(
            state, 65, _flag(FlagType.DEPLOYER, Severity.HIGH, "Creator wallet age could not be determined")
        )
    if age.days == 0:
        return raise_floor(
            state, 65, _flag(FlagType.DEPLOYER, Severity.HIGH, "Creator wallet was created today")
        )
    if age.days < 7:
        return raise_floor(
            state, 55, _flag(FlagType.DEPLOYER, Severity.MEDIUM, f"Creator wallet is only {age.days} days old")
        )
    return state


def rule_serial_creator(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    if ev.creator is None or ev.creator.tokens_created_count <= 10:
        return state
    return raise_floor(
        state,
        60,
        _flag(
            FlagType.DEPLOYER,
            Severity.MEDIUM,
            f"Serial creator: {ev.creator.tokens_created_count} tokens launched",
        ),
    )


def rule_unknown_creator(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    if ev.creator is not None:
        return state
    return raise_floor(
        state, 55, _flag(FlagType.DEPLOYER, Severity.MEDIUM, "Creator wallet could not be determined")
    )


# --- token metrics -------------------------------------------------------


def rule_token_age(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    age = ev.snapshot.age_hours
    if age is None or age >= 24:
        return state
    threshold = 50 if ev.snapshot.is_bonding_curve else 60
    return raise_floor(
        state, threshold, _flag(FlagType.TRADING, Severity.MEDIUM, f"Token is only {age:.1f} hours old")
    )


def rule_liquidity(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    snap = ev.snapshot
    if snap.is_bonding_curve:
        return state
    liquidity = snap.liquidity_usd
    if liquidity is None:
        return raise_floor(
            state, 55, _flag(FlagType.LIQUIDITY, Severity.MEDIUM, "Liquidity could not be determined")
        )
    if liquidity < 100:
        return raise_floor(
            state,
            90,
            _flag(FlagType.LIQUIDITY, Severity.CRITICAL, f"No liquidity (${liquidity:,.0f}): cannot sell"),
            hard_min=90,
        )
    if liquidity < 1_000:
        return raise_floor(
            state, 80, _flag(FlagType.LIQUIDITY, Severity.HIGH, f"Very low liquidity: ${liquidity:,.0f}")
        )
    if liquidity < 10_000 and snap.age_hours is not None and snap.age_hours < 72:
        return raise_floor(
            state, 70, _flag(FlagType.LIQUIDITY, Severity.HIGH, f"Low liquidity on a new token: ${liquidity:,.0f}")
        )
    return state


def rule_authorities(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    if ev.snapshot.mint_authority_active:
        state = raise_floor(
            state, 50, _flag(FlagType.CONTRACT, Severity.MEDIUM, "Mint authority is active: supply can be inflated")
        )
    if ev.snapshot.freeze_authority_active:
        state = raise_floor(
            state, 55, _flag(FlagType.CONTRACT, Severity.HIGH, "Freeze authority is active: holders can be frozen")
        )
    return state


def rule_socials(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    snap = ev.snapshot
    if snap.has_website or snap.has_twitter:
        return state
    if snap.age_hours is None or snap.age_hours >= 24:
        return state
    return raise_floor(
        state, 55, _flag(FlagType.SOCIAL, Severity.LOW, "No website or Twitter on a new token")
    )


# --- holders -------------------------------------------------------------


def rule_whale(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    holders = _non_lp(ev.holders)
    if not holders or holders[0].percent_of_supply < 30:
        return state
    top = holders[0]
    return raise_floor(
        state,
        80,
        _flag(
            FlagType.HOLDERS,
            Severity.HIGH,
            f"Single wallet holds {top.percent_of_supply:.1f}% of supply",
        ),
        hard_min=75,
    )


def rule_holder_concentration(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    top10 = sum(h.percent_of_supply for h in _non_lp(ev.holders)[:10])
    if top10 < 50:
        return state
    return raise_floor(
        state, 60, _flag(FlagType.HOLDERS, Severity.MEDIUM, f"Top 10 holders control {min(top10, 100):.1f}% of supply")
    )


# --- bundles -------------------------------------------------------------

BUNDLE_FLOORS = {
    BundleConfidence.HIGH: (80, Severity.CRITICAL),
    BundleConfidence.MEDIUM: (75, Severity.HIGH),
    BundleConfidence.LOW: (60, Severity.MEDIUM),
}


def rule_bundle_confidence(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    entry = BUNDLE_FLOORS.get(ev.bundle.confidence)
    if entry is None:
        return state
    threshold, severity = entry
    wallets = len(ev.bundle.wallet_addresses)
    return raise_floor(
        state,
        threshold,
        _flag(
            FlagType.BUNDLE,
            severity,
            f"{wallets} coordinated wallets detected ({ev.bundle.confidence.name} confidence, "
            f"{ev.bundle.percent_supply_controlled:.1f}% of supply)",
        ),
    )


def rule_bundle_quality(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    quality = ev.quality
    if quality is None:
        return state
    if quality.assessment is BundleAssessment.VERY_SUSPICIOUS:
        return raise_floor(
            state,
            75,
            _flag(
                FlagType.BUNDLE,
                Severity.HIGH,
                f"Bundle looks like a rug setup (score {quality.legitimacy_score})",
            ),
        )
    if quality.assessment is BundleAssessment.LIKELY_LEGIT:
        flag = _flag(
            FlagType.BUNDLE,
            Severity.LOW,
            f"Bundle looks like a legitimate allocation (score {quality.legitimacy_score})",
        )
        return replace(state, flags=state.flags + (flag,))
    return state


def rule_dev_active_bundle(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    if not ev.bundle.detected:
        return state
    if ev.dev is not None and ev.dev.fully_exited:
        return state
    flag = _flag(FlagType.BUNDLE, Severity.HIGH, "Bundle present while the dev wallet is still active")
    return replace(state, score=min(state.score + 15, 100), flags=state.flags + (flag,))


# --- dev / trading -------------------------------------------------------


def rule_dev_holdings(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    dev = ev.dev
    if dev is None:
        return state
    holds = dev.current_holdings_percent
    if holds >= 50:
        state = raise_floor(
            state, 75, _flag(FlagType.DEPLOYER, Severity.CRITICAL, f"Dev holds {holds:.1f}% of supply: major dump risk")
        )
    elif holds >= 30:
        state = raise_floor(
            state, 65, _flag(FlagType.DEPLOYER, Severity.HIGH, f"Dev holds {holds:.1f}% of supply")
        )
    if dev.has_sold and dev.percent_sold >= 50 and holds > 0:
        state = raise_floor(
            state,
            70,
            _flag(
                FlagType.DEPLOYER,
                Severity.HIGH,
                f"Dev sold {dev.percent_sold:.0f}% and still holds {holds:.1f}%",
            ),
        )
    return state


def rule_wash_trading(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    wash = ev.wash
    if wash is None or not wash.detected:
        return state
    if wash.wash_percent >= 70:
        return raise_floor(
            state,
            85,
            _flag(FlagType.TRADING, Severity.CRITICAL, f"{wash.wash_percent:.0f}% of buys are wash trades"),
        )
    return raise_floor(
        state,
        65,
        _flag(FlagType.TRADING, Severity.HIGH, f"Wash trading: {wash.wash_percent:.0f}% of buys from bundle wallets"),
    )


def rule_price_crash(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    change = ev.snapshot.price_change_24h
    if change is None or change >= -80:
        return state
    return raise_floor(
        state,
        75,
        _flag(FlagType.TRADING, Severity.CRITICAL, f"Price crashed {change:.0f}% in 24h"),
        hard_min=75,
    )


# --- maturity caps -------------------------------------------------------

# (min market cap USD, min age days, cap)
MATURITY_CAPS = (
    (100_000_000, 30, 35),
    (50_000_000, 14, 45),
    (10_000_000, 7, 55),
)


def rule_maturity_caps(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    if ev.creator is not None and ev.creator.rugged_token_count > 0:
        return state
    mcap = ev.snapshot.market_cap_usd
    age = ev.snapshot.age_hours
    if mcap is None or age is None:
        return state
    age_days = age / 24
    for min_mcap, min_days, cap in MATURITY_CAPS:
        if mcap >= min_mcap and age_days >= min_days:
            return apply_cap(
                state,
                cap,
                f"Established token: ${mcap / 1e6:,.0f}M market cap, {age_days:.0f} days old",
            )
    return state


# --- combo escalation ----------------------------------------------------

COMBO_FLOORS = ((5, 75, Severity.HIGH), (4, 70, Severity.HIGH), (3, 60, Severity.MEDIUM))


def _buy_sell_ratio(snap: TokenSnapshot) -> float | None:
    buys, sells = snap.txns_24h.buys, snap.txns_24h.sells
    if sells > 0:
        return buys / sells
    return float("inf") if buys > 0 else None


def risk_indicators(ev: RiskEvidence) -> list[str]:
    snap = ev.snapshot
    ratio = _buy_sell_ratio(snap)
    creator = ev.creator
    indicators = []
    if snap.age_hours is not None and snap.age_hours < 24:
        indicators.append("new token")
    if snap.liquidity_usd is None or snap.liquidity_usd < 10_000:
        indicators.append("thin liquidity")
    if ratio is not None and ratio < 0.8:
        indicators.append("sell-heavy trading")
    if snap.holder_count is not None and snap.holder_count < 50:
        indicators.append("few holders")
    if ev.bundle.detected:
        indicators.append("bundle present")
    if (
        creator is None
        or not isinstance(creator.wallet_age, KnownAge)
        or creator.wallet_age.days < 7
    ):
        indicators.append("unverified creator")
    if snap.price_change_24h is not None and snap.price_change_24h < -30:
        indicators.append("price down >30%")
    if ev.dev is not None and ev.dev.percent_sold >= 20:
        indicators.append("dev selling")
    return indicators


def positive_offset(ev: RiskEvidence) -> int:
    """0-2; disabled where bullish signals are likely manufactured."""
    snap = ev.snapshot
    if ev.bundle.confidence is BundleConfidence.HIGH:
        return 0
    if snap.liquidity_usd is None or snap.liquidity_usd < 2_000:
        return 0
    if snap.age_hours is None or snap.age_hours < 1:
        return 0

    offset = 0
    ratio = _buy_sell_ratio(snap)
    if ratio is not None and ratio > 1.3:
        offset += 1
    if snap.price_change_24h is not None and snap.price_change_24h > 50:
        offset += 1
    if (
        snap.volume_24h is not None
        and snap.volume_24h / snap.liquidity_usd >= 1
        and snap.txns_24h.buys > snap.txns_24h.sells
    ):
        offset += 1
    return min(offset, 2)


def rule_combo(state: ScoreState, ev: RiskEvidence) -> ScoreState:
    indicators = risk_indicators(ev)
    count = max(len(indicators) - positive_offset(ev), 0)
    for min_count, threshold, severity in COMBO_FLOORS:
        if count >= min_count:
            return raise_floor(
                state,
                threshold,
                _flag(
                    FlagType.TRADING,
                    severity,
                    f"{count} combined risk indicators: {', '.join(indicators)}",
                ),
            )
    return state


RULES: tuple[Rule, ...] = (
    rule_creator_rugs,
    rule_creator_wallet_age,
    rule_serial_creator,
    rule_unknown_creator,
    rule_token_age,
    rule_liquidity,
    rule_authorities,
    rule_socials,
    rule_whale,
    rule_holder_concentration,
    rule_bundle_confidence,
    rule_bundle_quality,
    rule_dev_active_bundle,
    rule_dev_holdings,
    rule_wash_trading,
    rule_price_crash,
    rule_maturity_caps,
    rule_combo,
)


# --- output --------------------------------------------------------------


def classify(score: int) -> RiskLevel:
    if score >= 80:
        return RiskLevel.SCAM
    if score >= 65:
        return RiskLevel.DANGEROUS
    if score >= 55:
        return RiskLevel.SUSPICIOUS
    return RiskLevel.SAFE


def merge_flags(
    new: tuple[RiskFlag, ...], existing: tuple[RiskFlag, ...]
) -> tuple[RiskFlag, ...]:
    """New flags first, then pre-existing ones; one flag per message text."""
    seen: set[str] = set()
    merged: list[RiskFlag] = []
    for flag in new + existing:
        if flag.message in seen:
            continue
        seen.add(flag.message)
        merged.append(flag)
    return tuple(merged)


def generate_recommendation(score: int, bundle_detected: bool, bundle_count: int) -> str:
    if score >= 80 or (bundle_detected and bundle_count >= 10):
        return "AVOID. This token shows critical red flags. Do not invest. If holding, exit immediately."
    if score >= 70 or (bundle_detected and bundle_count >= 5):
        return (
            "AVOID or EXIT. High probability of coordinated dump. If you must trade, "
            "use tight stop losses and expect sudden price crashes."
        )
    if score >= 60 or bundle_detected:
        return (
            "CAUTION. Suspicious patterns detected. Trade with extreme care. "
            "Set stop losses and take profits early."
        )
    if score >= 40:
        return "MODERATE RISK. Some concerns detected. DYOR and monitor closely. Consider smaller position sizes."
    return "LOWER RISK. No major red flags detected, but always DYOR."


def score_risk(
    evidence: RiskEvidence,
    baseline: NarrativeBaseline | None = None,
    rules: tuple[Rule, ...] = RULES,
) -> RiskAssessment:
    """Fold the rule cascade over the evidence and classify the result."""
    start = baseline.score if baseline is not None else DEFAULT_BASE_SCORE
    initial = ScoreState(score=min(max(start, 0), 100))

    final = reduce(lambda state, rule: rule(state, evidence), rules, initial)

    score = min(max(final.score, final.hard_floor, 0), 100)
    bundle = evidence.bundle
    return RiskAssessment(
        score=score,
        level=classify(score),
        flags=merge_flags(final.flags, baseline.flags if baseline is not None else ()),
        recommendation=generate_recommendation(
            score, bundle.detected, len(bundle.wallet_addresses)
        ),
        token_address=evidence.snapshot.address,
    )
