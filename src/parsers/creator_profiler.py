"""Creator profiling — deployer reputation for one analysis.

- Wallet age from the oldest reachable signature
- Previous tokens from the creator's TOKEN_MINT history (Helius)
- Rug check of up to N previous tokens against market data
- Current holdings of this token from the holder snapshot

The reputation part (age, launches, rugs) is cached per creator in the
ReputationStore; holdings are always recomputed for the token at hand.
"""

import asyncio
import dataclasses
import time

from loguru import logger

from src.models.risk import UNKNOWN_AGE, CreatorProfile, HolderRecord
from src.parsers.dexscreener.client import DexScreenerClient
from src.parsers.dexscreener.models import DexScreenerPair
from src.parsers.exceptions import ProviderError
from src.parsers.helius.client import HeliusClient
from src.parsers.reputation_store import ReputationStore
from src.parsers.solana_rpc.client import SolanaRpcClient
from src.parsers.wallet_age import fetch_wallet_age

# (min age in days, max liquidity USD) — older than X with less than Y = abandoned
RUG_RULES = ((7, 100.0), (1, 50.0))


def is_rugged(pairs: list[DexScreenerPair], now: float) -> bool:
    """A previous token with no market data is not counted."""
    if not pairs:
        return False
    created = [p.pairCreatedAt for p in pairs if p.pairCreatedAt]
    if not created:
        return False
    age_days = (now - min(created) / 1000) / 86400
    liquidity = max((p.liquidity_usd or 0.0) for p in pairs)
    return any(age_days > days and liquidity < max_liq for days, max_liq in RUG_RULES)


async def fetch_created_tokens(
    helius: HeliusClient, creator_address: str, exclude: str
) -> list[str]:
    """Unique mints the creator minted, newest first, excluding `exclude`."""
    txs = await helius.get_address_transactions(creator_address, tx_type="TOKEN_MINT")
    mints: list[str] = []
    for tx in txs:
        for transfer in tx.token_transfers:
            if transfer.mint and transfer.mint != exclude and transfer.mint not in mints:
                mints.append(transfer.mint)
    return mints


async def count_rugged(
    dexscreener: DexScreenerClient, mints: list[str], now: float
) -> int:
    async def _check(mint: str) -> bool:
        try:
            pairs = await dexscreener.get_token_pairs(mint)
        except ProviderError as e:
            logger.debug(f"[CREATOR] Market data failed for {mint[:12]}: {e}")
            return False
        return is_rugged(pairs, now)

    results = await asyncio.gather(*[_check(m) for m in mints])
    return sum(results)


def creator_holdings_percent(holders: list[HolderRecord], creator_address: str) -> float:
    return min(
        sum(h.percent_of_supply for h in holders if h.address == creator_address),
        100.0,
    )


async def build_creator_profile(
    rpc: SolanaRpcClient,
    helius: HeliusClient | None,
    dexscreener: DexScreenerClient,
    creator_address: str,
    token_address: str,
    holders: list[HolderRecord],
    *,
    token_sample: int = 10,
    store: ReputationStore | None = None,
    now: float | None = None,
) -> CreatorProfile:
    ts = now if now is not None else time.time()
    holdings = creator_holdings_percent(holders, creator_address)

    if store is not None:
        cached = await store.get_creator(creator_address)
        if cached is not None:
            logger.debug(f"[CREATOR] Cache hit for {creator_address[:12]}")
            return dataclasses.replace(cached, current_holdings_percent=holdings)

    wallet_age = await fetch_wallet_age(rpc, creator_address, now=ts)

    previous: list[str] = []
    rugged = 0
    history_known = False
    if helius is not None:
        try:
            previous = await fetch_created_tokens(helius, creator_address, token_address)
            history_known = True
        except ProviderError as e:
            logger.warning(f"[CREATOR] Launch history failed for {creator_address[:12]}: {e}")
        if previous:
            rugged = await count_rugged(dexscreener, previous[:token_sample], ts)
    else:
        logger.debug("[CREATOR] No Helius key, launch history unknown")

    profile = CreatorProfile(
        address=creator_address,
        wallet_age=wallet_age,
        tokens_created_count=len(previous),
        rugged_token_count=rugged,
        current_holdings_percent=holdings,
    )

    if rugged:
        logger.info(
            f"[CREATOR] {creator_address[:12]}: {rugged} rugged of "
            f"{min(len(previous), token_sample)} checked ({len(previous)} launches)"
        )

    # Only complete profiles are cached
    if store is not None and history_known and wallet_age is not UNKNOWN_AGE:
        await store.set_creator(profile)
    return profile
