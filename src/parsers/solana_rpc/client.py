"""Solana JSON-RPC client — the chain data provider for every extractor.

No retries: a failed call raises SolanaRpcError and the calling extractor
degrades to its "unknown" value. Skipped slots are not failures.
"""

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from src.parsers.exceptions import SolanaRpcError
from src.parsers.rate_limiter import RateLimiter
from src.parsers.solana_rpc.models import (
    BlockTransaction,
    MintInfo,
    NativeTransfer,
    ParsedTransaction,
    RpcSignature,
    TokenAccountBalance,
    TokenBalance,
)

# Slot skipped / block not available / missing from long-term storage
SKIPPED_SLOT_CODES = {-32004, -32007, -32009}

SYSTEM_TRANSFER_TYPES = {"transfer", "transferWithSeed"}


class SolanaRpcClient:
    """Async JSON-RPC 2.0 client over httpx."""

    def __init__(
        self,
        rpc_url: str,
        *,
        max_rps: float = 10.0,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._rate_limiter = RateLimiter(max_rps)
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: list[Any] | None = None) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        await self._rate_limiter.acquire()
        try:
            resp = await self._client.post(self._rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise SolanaRpcError(f"{method} request failed: {e}") from e

        if resp.status_code != 200:
            raise SolanaRpcError(f"{method} HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise SolanaRpcError(f"{method} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise SolanaRpcError(f"{method} returned unexpected payload")

        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            raise SolanaRpcError(f"{method} RPC error {code}: {message}", code=code)

        return data.get("result")

    async def get_slot(self) -> int:
        result = await self._call("getSlot", [{"commitment": "confirmed"}])
        if not isinstance(result, int):
            raise SolanaRpcError("getSlot returned non-integer")
        return result

    async def get_block_time(self, slot: int) -> int | None:
        """Block time of a slot, None if the slot was skipped or pruned."""
        try:
            result = await self._call("getBlockTime", [slot])
        except SolanaRpcError as e:
            if e.code in SKIPPED_SLOT_CODES:
                return None
            raise
        return result if isinstance(result, int) and result > 0 else None

    async def get_block(self, slot: int) -> list[BlockTransaction] | None:
        """All transactions of a block, None if the slot was skipped."""
        params = [
            slot,
            {
                "encoding": "jsonParsed",
                "transactionDetails": "full",
                "maxSupportedTransactionVersion": 0,
                "rewards": False,
            },
        ]
        try:
            result = await self._call("getBlock", params)
        except SolanaRpcError as e:
            if e.code in SKIPPED_SLOT_CODES:
                return None
            raise
        if not result:
            return None

        txs: list[BlockTransaction] = []
        try:
            for entry in result.get("transactions", []):
                tx = entry["transaction"]
                keys = _account_keys(tx["message"])
                meta = entry.get("meta") or {}
                txs.append(BlockTransaction(
                    signature=tx["signatures"][0],
                    fee_payer=_fee_payer(keys),
                    account_keys=[k["pubkey"] for k in keys],
                    log_messages=meta.get("logMessages") or [],
                    err=meta.get("err"),
                ))
        except (KeyError, IndexError, TypeError, AttributeError, ValidationError) as e:
            raise SolanaRpcError(f"getBlock {slot} malformed: {e}") from e
        return txs

    async def get_signatures_for_address(
        self, address: str, *, limit: int = 50, before: str = ""
    ) -> list[RpcSignature]:
        """Newest-first signatures touching an address."""
        opts: dict[str, Any] = {"limit": min(limit, 1000)}
        if before:
            opts["before"] = before
        result = await self._call("getSignaturesForAddress", [address, opts])
        if not isinstance(result, list):
            raise SolanaRpcError("getSignaturesForAddress returned non-list")
        try:
            return [
                RpcSignature(
                    signature=sig["signature"],
                    slot=sig.get("slot", 0),
                    block_time=sig.get("blockTime"),
                    err=sig.get("err"),
                )
                for sig in result
            ]
        except (KeyError, TypeError, ValidationError) as e:
            raise SolanaRpcError(f"getSignaturesForAddress malformed: {e}") from e

    async def get_transaction(self, signature: str) -> ParsedTransaction | None:
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": "confirmed",
                },
            ],
        )
        if not result:
            return None
        try:
            return _parse_transaction(signature, result)
        except (KeyError, IndexError, TypeError, AttributeError, ValidationError) as e:
            raise SolanaRpcError(f"getTransaction {signature[:12]} malformed: {e}") from e

    async def get_mint_info(self, mint: str) -> MintInfo | None:
        """Parsed mint account, None if the account does not exist or is not a mint."""
        result = await self._call("getAccountInfo", [mint, {"encoding": "jsonParsed"}])
        value = (result or {}).get("value")
        if not value:
            return None
        data = value.get("data")
        if not isinstance(data, dict) or data.get("parsed", {}).get("type") != "mint":
            return None
        try:
            info = data["parsed"]["info"]
            decimals = int(info.get("decimals", 0))
            return MintInfo(
                address=mint,
                supply=int(info["supply"]) / (10 ** decimals),
                decimals=decimals,
                mint_authority=info.get("mintAuthority"),
                freeze_authority=info.get("freezeAuthority"),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise SolanaRpcError(f"mint account {mint[:12]} malformed: {e}") from e

    async def get_largest_holders(
        self, mint: str, limit: int = 20
    ) -> list[TokenAccountBalance]:
        """Largest token accounts of a mint with their owning wallets."""
        result = await self._call("getTokenLargestAccounts", [mint])
        try:
            accounts = result["value"][:limit]
            addresses = [a["address"] for a in accounts]
        except (KeyError, TypeError) as e:
            raise SolanaRpcError(f"getTokenLargestAccounts malformed: {e}") from e
        if not accounts:
            return []

        infos = await self._call(
            "getMultipleAccounts", [addresses, {"encoding": "jsonParsed"}]
        )
        values = (infos or {}).get("value") or []

        holders: list[TokenAccountBalance] = []
        for account, info in zip(accounts, values):
            if not info:
                continue
            data = info.get("data")
            parsed_info = data.get("parsed", {}).get("info", {}) if isinstance(data, dict) else {}
            owner = parsed_info.get("owner")
            if not owner:
                continue
            ui_amount = parsed_info.get("tokenAmount", {}).get("uiAmount")
            balance = ui_amount if ui_amount is not None else account.get("uiAmount") or 0
            holders.append(TokenAccountBalance(
                token_account=account["address"],
                owner=owner,
                balance=float(balance),
            ))
        return holders

    async def get_account_owner(self, address: str) -> str | None:
        """Owning wallet of a token account, else the owning program of the account."""
        result = await self._call("getAccountInfo", [address, {"encoding": "jsonParsed"}])
        value = (result or {}).get("value")
        if not value:
            return None
        data = value.get("data")
        if isinstance(data, dict):
            owner = data.get("parsed", {}).get("info", {}).get("owner")
            if owner:
                return owner
        return value.get("owner")

    async def get_token_balance(self, owner: str, mint: str) -> float:
        """Sum of all of the owner's token accounts for a mint (ui units)."""
        result = await self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed"}],
        )
        total = 0.0
        try:
            for account in (result or {}).get("value", []):
                amount = account["account"]["data"]["parsed"]["info"]["tokenAmount"]
                total += float(amount.get("uiAmount") or 0)
        except (KeyError, TypeError, ValueError) as e:
            raise SolanaRpcError(f"getTokenAccountsByOwner malformed: {e}") from e
        return total

    async def get_wallet_first_seen(self, address: str) -> int | None:
        """Block time of the oldest signature reachable in one page (lower bound on age)."""
        sigs = await self.get_signatures_for_address(address, limit=1000)
        times = [s.block_time for s in sigs if s.block_time]
        return min(times) if times else None

    async def get_first_funder(self, address: str) -> str | None:
        """Who sent this wallet its first SOL (oldest reachable transaction)."""
        sigs = await self.get_signatures_for_address(address, limit=1000)
        if not sigs:
            return None
        tx = await self.get_transaction(sigs[-1].signature)
        if tx is None:
            return None

        for transfer in tx.native_transfers:
            if transfer.destination == address and transfer.source != address:
                return transfer.source
        for signer in tx.signers:
            if signer != address:
                return signer
        logger.debug(f"[RPC] No funder found for {address[:12]}")
        return None


def _account_keys(message: dict) -> list[dict]:
    keys = message["accountKeys"]
    # Legacy responses list plain strings; jsonParsed lists objects
    return [k if isinstance(k, dict) else {"pubkey": k, "signer": False} for k in keys]


def _fee_payer(keys: list[dict]) -> str:
    for k in keys:
        if k.get("signer"):
            return k["pubkey"]
    return keys[0]["pubkey"] if keys else ""


def _token_balances(entries: list[dict] | None) -> list[TokenBalance]:
    return [
        TokenBalance(
            account_index=b["accountIndex"],
            mint=b["mint"],
            owner=b.get("owner", ""),
            amount=float(b.get("uiTokenAmount", {}).get("uiAmount") or 0),
        )
        for b in entries or []
    ]


def _native_transfers(instructions: list[dict]) -> list[NativeTransfer]:
    transfers: list[NativeTransfer] = []
    for ix in instructions:
        if ix.get("program") != "system":
            continue
        parsed = ix.get("parsed")
        if not isinstance(parsed, dict):
            continue
        info = parsed.get("info", {})
        if parsed.get("type") in SYSTEM_TRANSFER_TYPES:
            transfers.append(NativeTransfer(
                source=info.get("source", ""),
                destination=info.get("destination", ""),
                lamports=int(info.get("lamports", 0)),
            ))
        elif parsed.get("type") == "createAccount":
            transfers.append(NativeTransfer(
                source=info.get("source", ""),
                destination=info.get("newAccount", ""),
                lamports=int(info.get("lamports", 0)),
            ))
    return transfers


def _parse_transaction(signature: str, data: dict) -> ParsedTransaction:
    """Flatten a jsonParsed getTransaction result."""
    message = data["transaction"]["message"]
    keys = _account_keys(message)
    meta = data.get("meta") or {}
    return ParsedTransaction(
        signature=signature,
        slot=data.get("slot", 0),
        block_time=data.get("blockTime"),
        fee_payer=_fee_payer(keys),
        account_keys=[k["pubkey"] for k in keys],
        signers=[k["pubkey"] for k in keys if k.get("signer")],
        pre_token_balances=_token_balances(meta.get("preTokenBalances")),
        post_token_balances=_token_balances(meta.get("postTokenBalances")),
        native_transfers=_native_transfers(message.get("instructions", [])),
        log_messages=meta.get("logMessages") or [],
        err=meta.get("err"),
    )
