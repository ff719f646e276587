"""Wallet age lookup — days since a wallet's oldest reachable transaction."""

import asyncio
import time

from loguru import logger

from src.models.risk import UNKNOWN_AGE, KnownAge, WalletAge
from src.parsers.exceptions import ProviderError
from src.parsers.solana_rpc.client import SolanaRpcClient

SECONDS_PER_DAY = 86400


def age_from_first_seen(first_seen: int | None, now: float) -> WalletAge:
    if not first_seen or first_seen <= 0:
        return UNKNOWN_AGE
    return KnownAge(days=max(int((now - first_seen) // SECONDS_PER_DAY), 0))


async def fetch_wallet_age(
    rpc: SolanaRpcClient, address: str, *, now: float | None = None
) -> WalletAge:
    """Age of one wallet; UNKNOWN_AGE when the lookup fails."""
    try:
        first_seen = await rpc.get_wallet_first_seen(address)
    except ProviderError as e:
        logger.debug(f"[WALLET-AGE] Lookup failed for {address[:12]}: {e}")
        return UNKNOWN_AGE
    return age_from_first_seen(first_seen, now if now is not None else time.time())


async def fetch_wallet_ages(
    rpc: SolanaRpcClient,
    addresses: list[str],
    *,
    max_concurrent: int = 5,
    now: float | None = None,
) -> dict[str, WalletAge]:
    """Ages for a small sample of wallets, looked up concurrently."""
    if not addresses:
        return {}

    semaphore = asyncio.Semaphore(max_concurrent)
    ts = now if now is not None else time.time()

    async def _one(addr: str) -> WalletAge:
        async with semaphore:
            return await fetch_wallet_age(rpc, addr, now=ts)

    ages = await asyncio.gather(*[_one(a) for a in addresses])
    return dict(zip(addresses, ages))
