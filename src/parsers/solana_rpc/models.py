"""Pydantic models for Solana JSON-RPC responses (jsonParsed encoding)."""

from pydantic import BaseModel


class RpcSignature(BaseModel):
    """Entry of getSignaturesForAddress."""

    signature: str
    slot: int = 0
    block_time: int | None = None
    err: dict | str | None = None  # non-None means failed


class TokenBalance(BaseModel):
    """Pre/post token balance entry of a transaction's meta."""

    account_index: int
    mint: str
    owner: str = ""
    amount: float = 0.0  # ui amount


class NativeTransfer(BaseModel):
    """System-program SOL transfer parsed from the instruction list."""

    source: str
    destination: str
    lamports: int = 0


class ParsedTransaction(BaseModel):
    """getTransaction result, flattened to what the extractors read."""

    signature: str
    slot: int = 0
    block_time: int | None = None
    fee_payer: str = ""
    account_keys: list[str] = []
    signers: list[str] = []
    pre_token_balances: list[TokenBalance] = []
    post_token_balances: list[TokenBalance] = []
    native_transfers: list[NativeTransfer] = []
    log_messages: list[str] = []
    err: dict | str | None = None

    def token_balance_deltas(self, mint: str) -> dict[str, float]:
        """Net token balance change per owner for one mint."""
        pre = {
            b.account_index: b.amount for b in self.pre_token_balances if b.mint == mint
        }
        deltas: dict[str, float] = {}
        for post in self.post_token_balances:
            if post.mint != mint or not post.owner:
                continue
            change = post.amount - pre.get(post.account_index, 0.0)
            deltas[post.owner] = deltas.get(post.owner, 0.0) + change
        return deltas


class BlockTransaction(BaseModel):
    """Transaction as listed inside a getBlock result."""

    signature: str
    fee_payer: str = ""
    account_keys: list[str] = []
    log_messages: list[str] = []
    err: dict | str | None = None


class MintInfo(BaseModel):
    """Parsed SPL mint account."""

    address: str
    supply: float  # ui units
    decimals: int = 0
    mint_authority: str | None = None
    freeze_authority: str | None = None


class TokenAccountBalance(BaseModel):
    """One of the largest token accounts of a mint, joined with its owner."""

    token_account: str
    owner: str
    balance: float  # ui units
