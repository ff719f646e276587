"""Bundle detection — find wallets that bought a token in a coordinated way.

Two independent triggers, wallet sets unioned:
1. Same-slot clustering of recent transactions (fee payers sampled)
2. Near-identical holdings among non-LP holders (rounded to 0.1%)

Shared funding source is supporting evidence only: it adds a pattern
string but never makes a wallet a suspect by itself.

Established tokens (>7d old, >$100K liquidity or >$1M market cap) need
stronger evidence: same-slot bursts are normal arbitrage/MEV there.
"""

import asyncio
from collections import Counter, defaultdict

from loguru import logger

from src.models.risk import BundleConfidence, BundleEvidence, HolderRecord, TokenSnapshot
from src.parsers.exceptions import ProviderError
from src.parsers.solana_rpc.client import SolanaRpcClient

ESTABLISHED_AGE_HOURS = 168
ESTABLISHED_LIQUIDITY_USD = 100_000
ESTABLISHED_MCAP_USD = 1_000_000


def is_established(snapshot: TokenSnapshot) -> bool:
    return (
        (snapshot.age_hours is not None and snapshot.age_hours > ESTABLISHED_AGE_HOURS)
        or (snapshot.liquidity_usd is not None and snapshot.liquidity_usd > ESTABLISHED_LIQUIDITY_USD)
        or (snapshot.market_cap_usd is not None and snapshot.market_cap_usd > ESTABLISHED_MCAP_USD)
    )


def assign_confidence(
    same_slot_txns: int, wallet_count: int, established: bool
) -> BundleConfidence:
    """Confidence table; established tokens need more of both signals."""
    if established:
        if same_slot_txns >= 15 and wallet_count >= 8:
            return BundleConfidence.HIGH
        if same_slot_txns >= 10 and wallet_count >= 6:
            return BundleConfidence.MEDIUM
        if wallet_count >= 5:
            return BundleConfidence.LOW
        return BundleConfidence.NONE

    if same_slot_txns >= 10 and wallet_count >= 5:
        return BundleConfidence.HIGH
    if same_slot_txns >= 5 or wallet_count >= 5:
        return BundleConfidence.MEDIUM
    if wallet_count >= 3:
        return BundleConfidence.LOW
    return BundleConfidence.NONE


async def _same_slot_wallets(
    rpc: SolanaRpcClient,
    token_address: str,
    threshold: int,
    *,
    signature_limit: int,
    slot_window: int,
    fee_payer_sample: int,
) -> tuple[list[str], int, list[str]]:
    """(suspect wallets, txns in flagged slots, patterns)."""
    sigs = await rpc.get_signatures_for_address(token_address, limit=signature_limit)

    by_slot: dict[int, list[str]] = defaultdict(list)
    for sig in sigs[:slot_window]:
        if sig.err is None:
            by_slot[sig.slot].append(sig.signature)

    wallets: list[str] = []
    same_slot_txns = 0
    patterns: list[str] = []

    for slot, slot_sigs in by_slot.items():
        if len(slot_sigs) < threshold:
            continue
        same_slot_txns += len(slot_sigs)
        patterns.append(f"{len(slot_sigs)} txns in slot {slot}")

        txs = await asyncio.gather(
            *[rpc.get_transaction(s) for s in slot_sigs[:fee_payer_sample]],
            return_exceptions=True,
        )
        for tx in txs:
            if isinstance(tx, BaseException):
                if not isinstance(tx, ProviderError):
                    raise tx
                logger.debug(f"[BUNDLE] Fee payer lookup failed in slot {slot}: {tx}")
                continue
            if tx and tx.fee_payer and tx.fee_payer not in wallets:
                wallets.append(tx.fee_payer)

    return wallets, same_slot_txns, patterns


def similar_holding_groups(
    holders: list[HolderRecord], *, min_wallets: int, min_percent: float
) -> list[tuple[float, list[str]]]:
    """Groups of non-LP holders whose percent rounds to the same 0.1%."""
    groups: dict[int, list[str]] = defaultdict(list)
    for holder in holders:
        if holder.is_liquidity_pool or holder.percent_of_supply <= min_percent:
            continue
        groups[round(holder.percent_of_supply * 10)].append(holder.address)

    return [
        (key / 10, addrs)
        for key, addrs in groups.items()
        if len(addrs) >= min_wallets and key / 10 >= min_percent
    ]


async def _shared_funder_patterns(
    rpc: SolanaRpcClient, wallets: list[str], sample: int
) -> list[str]:
    funders = await asyncio.gather(
        *[rpc.get_first_funder(w) for w in wallets[:sample]],
        return_exceptions=True,
    )
    counts: Counter[str] = Counter()
    for funder in funders:
        if isinstance(funder, BaseException):
            if not isinstance(funder, ProviderError):
                raise funder
            continue
        if funder:
            counts[funder] += 1
    return [
        f"{count} wallets funded by {funder[:8]}..."
        for funder, count in counts.items()
        if count >= 2
    ]


async def detect_bundles(
    rpc: SolanaRpcClient,
    token_address: str,
    holders: list[HolderRecord],
    snapshot: TokenSnapshot,
    *,
    signature_limit: int = 200,
    slot_window: int = 100,
    fee_payer_sample: int = 5,
    funder_sample: int = 5,
) -> BundleEvidence:
    established = is_established(snapshot)
    same_slot_threshold = 8 if established else 3
    min_wallets = 5 if established else 3
    min_percent = 1.0 if established else 0.1

    wallets: list[str] = []
    same_slot_txns = 0
    patterns: list[str] = []

    try:
        wallets, same_slot_txns, patterns = await _same_slot_wallets(
            rpc,
            token_address,
            same_slot_threshold,
            signature_limit=signature_limit,
            slot_window=slot_window,
            fee_payer_sample=fee_payer_sample,
        )
    except ProviderError as e:
        logger.warning(f"[BUNDLE] Same-slot analysis failed for {token_address[:12]}: {e}")

    for pct, group in similar_holding_groups(
        holders, min_wallets=min_wallets, min_percent=min_percent
    ):
        patterns.append(f"{len(group)} wallets with ~{pct:.1f}% holdings")
        for address in group:
            if address not in wallets:
                wallets.append(address)

    if 3 <= len(wallets) <= 10:
        patterns.extend(await _shared_funder_patterns(rpc, wallets, funder_sample))

    wallet_set = frozenset(wallets)
    confidence = assign_confidence(same_slot_txns, len(wallet_set), established)
    detected = len(wallet_set) >= min_wallets

    controlled = sum(h.percent_of_supply for h in holders if h.address in wallet_set)
    controlled = min(max(controlled, 0.0), 100.0)

    if detected:
        logger.info(
            f"[BUNDLE] {token_address[:12]}: {len(wallet_set)} wallets, "
            f"confidence={confidence.name}, {controlled:.1f}% of supply "
            f"(established={established})"
        )

    return BundleEvidence(
        detected=detected,
        confidence=confidence,
        wallet_addresses=wallet_set,
        same_block_transaction_count=same_slot_txns,
        percent_supply_controlled=controlled,
        patterns=tuple(patterns),
        is_established_token=established,
    )
