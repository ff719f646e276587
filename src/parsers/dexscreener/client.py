import httpx
from loguru import logger
from pydantic import ValidationError

from src.parsers.dexscreener.models import DexScreenerPair
from src.parsers.exceptions import DexScreenerError
from src.parsers.rate_limiter import RateLimiter

BASE_URL = "https://api.dexscreener.com"
WSOL_MINT = "So11111111111111111111111111111111111111112"
STABLE_QUOTES = {"USDC", "USDT"}


class DexScreenerClient:
    """Async REST client for DexScreener public API (no auth required)."""

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 4.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=10.0,
            headers={"Accept": "application/json"},
        )
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)

    async def _get(self, path: str) -> object:
        await self._rate_limiter.acquire()
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as e:
            raise DexScreenerError(f"GET {path} failed: {e}") from e
        if response.status_code != 200:
            logger.debug(f"[DEXSCREENER] HTTP {response.status_code} for {path}")
            raise DexScreenerError(f"GET {path} HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise DexScreenerError(f"GET {path} invalid JSON") from e

    async def get_token_pairs(self, token_address: str) -> list[DexScreenerPair]:
        """All Solana pairs of a token. Empty list = token has no pools."""
        data = await self._get(f"/token-pairs/v1/solana/{token_address}")
        if isinstance(data, dict):
            data = data.get("pairs") or []
        if not isinstance(data, list):
            raise DexScreenerError("token-pairs returned unexpected payload")
        try:
            return [DexScreenerPair.model_validate(p) for p in data]
        except ValidationError as e:
            raise DexScreenerError(f"token-pairs malformed: {e}") from e

    async def get_sol_price(self) -> float | None:
        """SOL/USD from the deepest SOL/stablecoin pair."""
        pairs = await self.get_token_pairs(WSOL_MINT)
        best: DexScreenerPair | None = None
        for pair in pairs:
            if not pair.quoteToken or pair.quoteToken.symbol not in STABLE_QUOTES:
                continue
            if not pair.priceUsd:
                continue
            if best is None or (pair.liquidity_usd or 0) > (best.liquidity_usd or 0):
                best = pair
        if best is None:
            return None
        try:
            price = float(best.priceUsd)
        except (TypeError, ValueError):
            return None
        return price if price > 0 else None

    async def close(self) -> None:
        await self._client.aclose()
