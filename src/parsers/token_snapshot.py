"""Token snapshot — basic market metrics from the mint account and DexScreener pairs.

Liquidity semantics:
    None  pair data could not be fetched (undetermined)
    0.0   no pools at all
    >0    summed USD liquidity; SOL-quoted pools without a USD figure are
          valued as quote reserve x SOL price x 2
"""

import asyncio
import time

from loguru import logger

from src.models.risk import TokenSnapshot, TradeCounts
from src.parsers.dexscreener.client import WSOL_MINT
from src.parsers.dexscreener.models import DexScreenerPair
from src.parsers.exceptions import ProviderError
from src.parsers.solana_rpc.client import SolanaRpcClient
from src.parsers.solana_rpc.models import MintInfo

BONDING_CURVE_DEXES = {"pumpfun", "moonshot"}
TWITTER_HOSTS = ("twitter.com", "x.com")


def pair_liquidity_usd(pair: DexScreenerPair, sol_price: float) -> float | None:
    if pair.liquidity_usd is not None:
        return pair.liquidity_usd
    if (
        pair.liquidity is not None
        and pair.liquidity.quote is not None
        and pair.quoteToken is not None
        and pair.quoteToken.address == WSOL_MINT
    ):
        return float(pair.liquidity.quote) * sol_price * 2
    return None


def _total_liquidity(pairs: list[DexScreenerPair], sol_price: float) -> float | None:
    values = [pair_liquidity_usd(p, sol_price) for p in pairs]
    known = [v for v in values if v is not None]
    return sum(known) if known else None


def _has_socials(pairs: list[DexScreenerPair]) -> tuple[bool, bool]:
    website = False
    twitter = False
    for pair in pairs:
        if pair.info is None:
            continue
        website = website or any(w.url for w in pair.info.websites)
        twitter = twitter or any(
            s.type.lower() == "twitter" or any(h in s.url for h in TWITTER_HOSTS)
            for s in pair.info.socials
        )
    return website, twitter


def is_bonding_curve(token_address: str, pairs: list[DexScreenerPair] | None) -> bool:
    """Still trading on its launch curve (pump.fun style), not on an open pool."""
    if pairs:
        primary = max(pairs, key=lambda p: p.liquidity_usd or 0.0)
        return primary.dexId.lower() in BONDING_CURVE_DEXES
    return token_address.endswith("pump")


def build_token_snapshot(
    mint_info: MintInfo,
    pairs: list[DexScreenerPair] | None,
    *,
    sol_price: float,
    activity: TradeCounts | None = None,
    created_at: int | None = None,
    now: float | None = None,
) -> TokenSnapshot:
    """Snapshot from mint info plus pairs (None = market data fetch failed).

    `activity` and `created_at` are on-chain fallbacks used when the pairs
    carry no trade counts / creation time.
    """
    ts = now if now is not None else time.time()
    bonding = is_bonding_curve(mint_info.address, pairs)

    liquidity: float | None = None
    market_cap: float | None = None
    volume: float | None = None
    price_change: float | None = None
    txns: TradeCounts | None = None
    website = twitter = False

    if pairs is not None:
        liquidity = _total_liquidity(pairs, sol_price) if pairs else 0.0

    if pairs:
        primary = max(pairs, key=lambda p: p.liquidity_usd or 0.0)
        cap = primary.marketCap if primary.marketCap is not None else primary.fdv
        market_cap = float(cap) if cap is not None else None
        volumes = [float(p.volume.h24) for p in pairs if p.volume and p.volume.h24 is not None]
        volume = sum(volumes) if volumes else None
        if primary.priceChange is not None:
            price_change = primary.priceChange.h24

        day = [p.txns.h24 for p in pairs if p.txns and p.txns.h24]
        if day:
            txns = TradeCounts(
                buys=sum(t.buys or 0 for t in day),
                sells=sum(t.sells or 0 for t in day),
            )

        pair_times = [p.pairCreatedAt for p in pairs if p.pairCreatedAt]
        if pair_times:
            created_at = min(pair_times) // 1000
        website, twitter = _has_socials(pairs)

    age_hours = max((ts - created_at) / 3600, 0.0) if created_at else None

    return TokenSnapshot(
        address=mint_info.address,
        age_hours=age_hours,
        liquidity_usd=liquidity,
        market_cap_usd=market_cap,
        volume_24h=volume,
        txns_24h=txns or activity or TradeCounts(),
        mint_authority_active=mint_info.mint_authority is not None,
        freeze_authority_active=mint_info.freeze_authority is not None,
        has_website=website,
        has_twitter=twitter,
        price_change_24h=price_change,
        is_bonding_curve=bonding,
        created_at=created_at,
        total_supply=mint_info.supply,
    )


async def estimate_onchain_activity(
    rpc: SolanaRpcClient,
    token_address: str,
    *,
    signature_limit: int = 1000,
    sample_size: int = 50,
    max_concurrent: int = 5,
    now: float | None = None,
) -> TradeCounts | None:
    """Buy/sell counts over 24h extrapolated from a transaction sample."""
    ts = now if now is not None else time.time()
    try:
        sigs = await rpc.get_signatures_for_address(token_address, limit=signature_limit)
    except ProviderError as e:
        logger.warning(f"[ACTIVITY] Signature fetch failed for {token_address[:12]}: {e}")
        return None

    recent = [
        s for s in sigs
        if s.err is None and s.block_time is not None and ts - s.block_time <= 86400
    ]
    if not recent:
        return TradeCounts()

    sample = recent[:sample_size]
    semaphore = asyncio.Semaphore(max_concurrent)

    async def _side(signature: str) -> int:
        """+1 buy, -1 sell, 0 neither."""
        async with semaphore:
            try:
                tx = await rpc.get_transaction(signature)
            except ProviderError:
                return 0
        if tx is None or not tx.fee_payer:
            return 0
        delta = tx.token_balance_deltas(token_address).get(tx.fee_payer, 0.0)
        return (delta > 0) - (delta < 0)

    sides = await asyncio.gather(*[_side(s.signature) for s in sample])
    scale = len(recent) / len(sample)
    buys = round(sum(1 for s in sides if s > 0) * scale)
    sells = round(sum(1 for s in sides if s < 0) * scale)
    logger.debug(
        f"[ACTIVITY] {token_address[:12]}: ~{buys} buys / ~{sells} sells "
        f"from {len(sample)}/{len(recent)} txns"
    )
    return TradeCounts(buys=buys, sells=sells)
