"""Wash trading — how much of the recent buy flow comes from bundle wallets.

A buy is a transaction whose fee payer's token balance for the mint went
up. Bundle wallets buying from each other inflate apparent demand; the
organic fraction of the sample is used to de-wash the reported 24h buys.
"""

import asyncio

from loguru import logger

from src.models.risk import TradeCounts, WashTradingEvidence
from src.parsers.exceptions import ProviderError
from src.parsers.solana_rpc.client import SolanaRpcClient

WASH_PERCENT_THRESHOLD = 30.0
MIN_BUNDLE_BUYS = 3


def build_wash_evidence(
    bundle_buys: int, organic_buys: int, reported: TradeCounts
) -> WashTradingEvidence:
    """Assemble the evidence from sampled buy counts."""
    total = bundle_buys + organic_buys
    if total == 0:
        return WashTradingEvidence(estimated_real_buy_count=reported.buys)

    wash_percent = bundle_buys / total * 100
    estimated_real = round(reported.buys * organic_buys / total)
    adjusted_ratio = estimated_real / reported.sells if reported.sells > 0 else None

    return WashTradingEvidence(
        detected=wash_percent >= WASH_PERCENT_THRESHOLD and bundle_buys >= MIN_BUNDLE_BUYS,
        bundle_buy_count=bundle_buys,
        organic_buy_count=organic_buys,
        wash_percent=wash_percent,
        estimated_real_buy_count=estimated_real,
        adjusted_buy_sell_ratio=adjusted_ratio,
    )


async def detect_wash_trading(
    rpc: SolanaRpcClient,
    token_address: str,
    bundle_wallets: frozenset[str],
    reported: TradeCounts,
    *,
    signature_limit: int = 100,
    sample_size: int = 50,
    max_concurrent: int = 5,
) -> WashTradingEvidence | None:
    """None without bundle wallets: wash evidence is derived from a bundle."""
    if not bundle_wallets:
        return None

    try:
        sigs = await rpc.get_signatures_for_address(token_address, limit=signature_limit)
    except ProviderError as e:
        logger.warning(f"[WASH] Signature fetch failed for {token_address[:12]}: {e}")
        return WashTradingEvidence(estimated_real_buy_count=reported.buys)

    unique: list[str] = []
    seen: set[str] = set()
    for sig in sigs:
        if sig.err is None and sig.signature not in seen:
            seen.add(sig.signature)
            unique.append(sig.signature)
    sample = unique[:sample_size]

    semaphore = asyncio.Semaphore(max_concurrent)

    async def _buyer(signature: str) -> str | None:
        """Fee payer if this transaction increased their balance."""
        async with semaphore:
            try:
                tx = await rpc.get_transaction(signature)
            except ProviderError as e:
                logger.debug(f"[WASH] getTransaction {signature[:12]} failed: {e}")
                return None
        if tx is None or tx.err is not None or not tx.fee_payer:
            return None
        if tx.token_balance_deltas(token_address).get(tx.fee_payer, 0.0) > 0:
            return tx.fee_payer
        return None

    buyers = await asyncio.gather(*[_buyer(s) for s in sample])

    bundle_buys = sum(1 for b in buyers if b is not None and b in bundle_wallets)
    organic_buys = sum(1 for b in buyers if b is not None and b not in bundle_wallets)

    evidence = build_wash_evidence(bundle_buys, organic_buys, reported)
    if evidence.detected:
        logger.info(
            f"[WASH] {token_address[:12]}: {evidence.wash_percent:.0f}% of sampled buys "
            f"from bundle wallets ({bundle_buys}/{evidence.total_buy_count}), "
            f"~{evidence.estimated_real_buy_count} real buys of {reported.buys}"
        )
    return evidence
