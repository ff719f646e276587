"""Process-wide SOL/USD price cache with a short TTL.

The only global state in the analyzer. Concurrent refreshes may overwrite
each other (last write wins); nothing depends on which one lands.
"""

import time
from collections.abc import Awaitable, Callable

from loguru import logger

from config.settings import settings
from src.parsers.exceptions import ProviderError

PriceFetcher = Callable[[], Awaitable[float | None]]


class SolPriceCache:
    """Cached SOL/USD price; `get()` reports whether the value is still fresh."""

    def __init__(
        self,
        ttl_sec: float = 60.0,
        fallback_usd: float = 150.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_sec
        self._clock = clock
        self._price = fallback_usd
        self._updated_at: float | None = None

    def get(self) -> tuple[float, bool]:
        """Return (price, is_fresh). Never-updated caches return the fallback, stale."""
        if self._updated_at is None:
            return self._price, False
        return self._price, self._clock() - self._updated_at < self._ttl

    def set(self, price: float) -> None:
        if price <= 0:
            return
        self._price = price
        self._updated_at = self._clock()

    async def refresh(self, fetcher: PriceFetcher) -> float:
        """Refetch if stale; on failure keep serving the last known price."""
        price, fresh = self.get()
        if fresh:
            return price
        try:
            fetched = await fetcher()
        except ProviderError as e:
            logger.debug(f"[SOL_PRICE] Refresh failed, using cached ${price:.2f}: {e}")
            return price
        if fetched and fetched > 0:
            self.set(fetched)
            logger.debug(f"[SOL_PRICE] Updated: ${fetched:.2f}")
            return fetched
        return price


sol_price_cache = SolPriceCache(
    ttl_sec=settings.sol_price_ttl_sec,
    fallback_usd=settings.sol_price_fallback_usd,
)
