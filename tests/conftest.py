"""Shared test fixtures: in-memory fake providers, no network."""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.parsers.exceptions import DexScreenerError, HeliusError, SolanaRpcError
from src.parsers.solana_rpc.models import (
    BlockTransaction,
    MintInfo,
    ParsedTransaction,
    RpcSignature,
    TokenAccountBalance,
)


class FakeRpc:
    """SolanaRpcClient stand-in backed by dicts. Methods in `failing` raise."""

    def __init__(self) -> None:
        self.current_slot = 0
        self.block_times: dict[int, int] = {}
        self.blocks: dict[int, list[BlockTransaction]] = {}
        self.signatures: dict[str, list[RpcSignature]] = {}
        self.transactions: dict[str, ParsedTransaction] = {}
        self.mints: dict[str, MintInfo] = {}
        self.holders: dict[str, list[TokenAccountBalance]] = {}
        self.funders: dict[str, str] = {}
        self.first_seen: dict[str, int] = {}
        self.balances: dict[tuple[str, str], float] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if method in self.failing:
            raise SolanaRpcError(f"{method} unavailable")

    async def close(self) -> None:
        pass

    async def get_slot(self) -> int:
        self._enter("get_slot")
        return self.current_slot

    async def get_block_time(self, slot: int) -> int | None:
        self._enter("get_block_time")
        return self.block_times.get(slot)

    async def get_block(self, slot: int) -> list[BlockTransaction] | None:
        self._enter("get_block")
        return self.blocks.get(slot)

    async def get_signatures_for_address(
        self, address: str, *, limit: int = 50, before: str = ""
    ) -> list[RpcSignature]:
        self._enter("get_signatures_for_address")
        return self.signatures.get(address, [])[:limit]

    async def get_transaction(self, signature: str) -> ParsedTransaction | None:
        self._enter("get_transaction")
        return self.transactions.get(signature)

    async def get_mint_info(self, mint: str) -> MintInfo | None:
        self._enter("get_mint_info")
        return self.mints.get(mint)

    async def get_largest_holders(self, mint: str, limit: int = 20) -> list[TokenAccountBalance]:
        self._enter("get_largest_holders")
        return self.holders.get(mint, [])[:limit]

    async def get_token_balance(self, owner: str, mint: str) -> float:
        self._enter("get_token_balance")
        return self.balances.get((owner, mint), 0.0)

    async def get_wallet_first_seen(self, address: str) -> int | None:
        self._enter("get_wallet_first_seen")
        return self.first_seen.get(address)

    async def get_first_funder(self, address: str) -> str | None:
        self._enter("get_first_funder")
        return self.funders.get(address)


class FakeHelius:
    def __init__(self) -> None:
        self.transactions: dict[tuple[str, str], list] = {}
        self.fail = False

    async def close(self) -> None:
        pass

    async def get_address_transactions(
        self, address: str, *, tx_type: str = "", limit: int = 100
    ) -> list:
        if self.fail:
            raise HeliusError("HTTP 500")
        return self.transactions.get((address, tx_type), [])


class FakeDexScreener:
    def __init__(self) -> None:
        self.pairs: dict[str, list] = {}
        self.sol_price: float | None = 150.0
        self.failing: set[str] = set()

    async def close(self) -> None:
        pass

    async def get_token_pairs(self, token_address: str) -> list:
        if token_address in self.failing:
            raise DexScreenerError("HTTP 429")
        return self.pairs.get(token_address, [])

    async def get_sol_price(self) -> float | None:
        return self.sol_price


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False

    async def get(self, key: str) -> str | None:
        if self.fail:
            raise RedisConnectionError("connection refused")
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        if self.fail:
            raise RedisConnectionError("connection refused")
        self.data[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True


@pytest.fixture
def fake_rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def fake_helius() -> FakeHelius:
    return FakeHelius()


@pytest.fixture
def fake_dex() -> FakeDexScreener:
    return FakeDexScreener()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
