"""Bundle quality — legitimate coordinated allocation (team/VC) vs rug setup.

Starts neutral at 50; each signal nudges the score up (suspicious) or down
(legit). Only runs for detected bundles: None means "no opinion", never
"legitimate".
"""

import asyncio
import statistics
from collections import Counter

from loguru import logger

from src.models.risk import (
    BundleAssessment,
    BundleEvidence,
    BundleQuality,
    HolderRecord,
    KnownAge,
    WalletAge,
)
from src.parsers.exceptions import ProviderError
from src.parsers.solana_rpc.client import SolanaRpcClient
from src.parsers.wallet_age import fetch_wallet_ages

NEUTRAL_SCORE = 50


def classify_legitimacy(score: int) -> BundleAssessment:
    if score >= 70:
        return BundleAssessment.VERY_SUSPICIOUS
    if score >= 50:
        return BundleAssessment.SUSPICIOUS
    if score >= 30:
        return BundleAssessment.NEUTRAL
    return BundleAssessment.LIKELY_LEGIT


def wallet_age_adjustment(ages: list[WalletAge]) -> tuple[int, str | None, str | None]:
    """(delta, positive signal, negative signal) from average known age."""
    known = [a.days for a in ages if isinstance(a, KnownAge)]
    if not known:
        return 0, None, None
    avg = sum(known) / len(known)
    if avg > 180:
        return -20, f"Aged wallets (avg {avg:.0f}d)", None
    if avg > 90:
        return -10, f"Established wallets (avg {avg:.0f}d)", None
    if avg > 30:
        return -5, f"Wallets older than a month (avg {avg:.0f}d)", None
    if avg < 7:
        return 20, None, f"Fresh wallets (avg {avg:.1f}d)"
    if avg < 14:
        return 10, None, f"Young wallets (avg {avg:.0f}d)"
    return 0, None, None


def funding_adjustment(funders: list[str | None]) -> tuple[int, str | None, str | None]:
    known = [f for f in funders if f]
    if len(known) < 2:
        return 0, None, None
    funder, shared = Counter(known).most_common(1)[0]
    if shared >= 2:
        return 25, None, f"{shared}/{len(funders)} sampled wallets funded by {funder[:8]}..."
    # Every known funder is distinct here
    if len(known) * 2 > len(funders):
        return -10, f"Independent funding ({len(known)}/{len(funders)} sources)", None
    return 0, None, None


def balance_variation_adjustment(balances: list[float]) -> tuple[int, str | None, str | None]:
    """Coefficient of variation of bundle wallet balances."""
    if len(balances) < 2:
        return 0, None, None
    mean = statistics.fmean(balances)
    if mean <= 0:
        return 0, None, None
    cv = statistics.pstdev(balances) / mean
    if cv < 0.05:
        return 20, None, f"Near-identical buy sizes (CV {cv:.2f})"
    if cv < 0.15:
        return 10, None, f"Similar buy sizes (CV {cv:.2f})"
    if cv > 0.4:
        return -10, f"Varied buy sizes (CV {cv:.2f})", None
    return 0, None, None


def persistence_adjustment(still_holding: int, checked: int) -> tuple[int, str | None, str | None]:
    if checked == 0:
        return 0, None, None
    ratio = still_holding / checked
    if ratio > 0.9:
        return -20, f"{still_holding}/{checked} bundle wallets still holding", None
    if ratio < 0.3:
        return 25, None, f"Only {still_holding}/{checked} bundle wallets still holding"
    return 0, None, None


async def _first_funders(rpc: SolanaRpcClient, wallets: list[str]) -> list[str | None]:
    async def _one(wallet: str) -> str | None:
        try:
            return await rpc.get_first_funder(wallet)
        except ProviderError as e:
            logger.debug(f"[BUNDLE-Q] Funder lookup failed for {wallet[:12]}: {e}")
            return None

    return list(await asyncio.gather(*[_one(w) for w in wallets]))


async def _still_holding(
    rpc: SolanaRpcClient, wallets: list[str], token_address: str
) -> tuple[int, int]:
    """(wallets with a non-zero balance, wallets checked)."""

    async def _one(wallet: str) -> float | None:
        try:
            return await rpc.get_token_balance(wallet, token_address)
        except ProviderError as e:
            logger.debug(f"[BUNDLE-Q] Balance lookup failed for {wallet[:12]}: {e}")
            return None

    balances = await asyncio.gather(*[_one(w) for w in wallets])
    checked = [b for b in balances if b is not None]
    return sum(1 for b in checked if b > 0), len(checked)


async def assess_bundle_quality(
    rpc: SolanaRpcClient,
    token_address: str,
    bundle: BundleEvidence,
    holders: list[HolderRecord],
    creator_address: str | None,
    token_age_hours: float | None,
    *,
    sample_size: int = 5,
    now: float | None = None,
) -> BundleQuality | None:
    if not bundle.detected:
        return None

    sample = sorted(bundle.wallet_addresses)[:sample_size]
    check_persistence = token_age_hours is not None and token_age_hours > 24

    ages_task = fetch_wallet_ages(rpc, sample, now=now)
    funders_task = _first_funders(rpc, sample)
    if check_persistence:
        ages, funders, holding = await asyncio.gather(
            ages_task, funders_task, _still_holding(rpc, sample, token_address)
        )
    else:
        ages, funders = await asyncio.gather(ages_task, funders_task)
        holding = (0, 0)

    by_address = {h.address: h for h in holders}
    balances = [
        by_address[w].balance for w in bundle.wallet_addresses if w in by_address
    ]

    adjustments = [
        wallet_age_adjustment(list(ages.values())),
        funding_adjustment(funders),
        balance_variation_adjustment(balances),
        persistence_adjustment(*holding),
    ]

    if creator_address and creator_address in bundle.wallet_addresses:
        adjustments.append((20, None, "Creator wallet is part of the bundle"))

    if bundle.percent_supply_controlled > 40:
        adjustments.append(
            (15, None, f"Bundle controls {bundle.percent_supply_controlled:.1f}% of supply")
        )
    elif bundle.percent_supply_controlled < 10:
        adjustments.append(
            (-5, f"Bundle controls only {bundle.percent_supply_controlled:.1f}% of supply", None)
        )

    score = NEUTRAL_SCORE + sum(delta for delta, _, _ in adjustments)
    score = min(max(score, 0), 100)
    positive = tuple(p for _, p, _ in adjustments if p)
    negative = tuple(n for _, _, n in adjustments if n)

    quality = BundleQuality(
        legitimacy_score=score,
        assessment=classify_legitimacy(score),
        positive_signals=positive,
        negative_signals=negative,
    )
    logger.info(
        f"[BUNDLE-Q] {token_address[:12]}: score={score} -> {quality.assessment.value} "
        f"(+{len(negative)} suspicious / -{len(positive)} legit signals)"
    )
    return quality
