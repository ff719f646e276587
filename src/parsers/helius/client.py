"""Helius Enhanced API client — typed per-address transaction history.

Used for a creator's token-mint history and a developer's swap history,
which plain RPC cannot filter by type.
"""

import httpx
from loguru import logger
from pydantic import ValidationError

from src.parsers.exceptions import HeliusError
from src.parsers.helius.models import (
    HeliusNativeTransfer,
    HeliusTokenTransfer,
    HeliusTransaction,
)
from src.parsers.rate_limiter import RateLimiter

API_URL = "https://api.helius.xyz/v0"


class HeliusClient:
    """Async HTTP client for Helius Enhanced API."""

    def __init__(
        self,
        api_key: str,
        *,
        max_rps: float = 10.0,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._rate_limiter = RateLimiter(max_rps)
        self._client = client or httpx.AsyncClient(base_url=API_URL, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def get_address_transactions(
        self, address: str, *, tx_type: str = "", limit: int = 100
    ) -> list[HeliusTransaction]:
        """Newest-first enhanced transactions of an address, optionally filtered by type."""
        params: dict[str, str | int] = {"api-key": self._api_key, "limit": min(limit, 100)}
        if tx_type:
            params["type"] = tx_type

        await self._rate_limiter.acquire()
        try:
            resp = await self._client.get(f"/addresses/{address}/transactions", params=params)
        except httpx.HTTPError as e:
            raise HeliusError(f"address transactions request failed: {e}") from e

        if resp.status_code != 200:
            logger.debug(f"[HELIUS] HTTP {resp.status_code} for {address[:12]} ({tx_type or 'all'})")
            raise HeliusError(f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise HeliusError("invalid JSON") from e
        if not isinstance(data, list):
            raise HeliusError("unexpected payload")

        try:
            return [_parse_tx(tx) for tx in data]
        except (TypeError, AttributeError, ValidationError) as e:
            raise HeliusError(f"malformed transaction: {e}") from e


def _parse_tx(data: dict) -> HeliusTransaction:
    """Parse raw Helius enhanced transaction."""
    token_transfers = [
        HeliusTokenTransfer(
            from_user_account=t.get("fromUserAccount") or "",
            to_user_account=t.get("toUserAccount") or "",
            token_amount=t.get("tokenAmount") or 0,
            mint=t.get("mint") or "",
        )
        for t in data.get("tokenTransfers") or []
    ]

    native_transfers = [
        HeliusNativeTransfer(
            from_user_account=t.get("fromUserAccount") or "",
            to_user_account=t.get("toUserAccount") or "",
            amount=t.get("amount") or 0,
        )
        for t in data.get("nativeTransfers") or []
    ]

    return HeliusTransaction(
        signature=data.get("signature", ""),
        type=data.get("type", ""),
        source=data.get("source", ""),
        fee_payer=data.get("feePayer", ""),
        timestamp=data.get("timestamp") or 0,
        description=data.get("description") or "",
        token_transfers=token_transfers,
        native_transfers=native_transfers,
    )
