"""Pydantic models for Helius Enhanced Transaction API responses."""

from decimal import Decimal

from pydantic import BaseModel


class HeliusTokenTransfer(BaseModel):
    """Token transfer within a transaction."""

    from_user_account: str = ""
    to_user_account: str = ""
    token_amount: Decimal = Decimal("0")
    mint: str = ""


class HeliusNativeTransfer(BaseModel):
    """SOL native transfer within a transaction."""

    from_user_account: str = ""
    to_user_account: str = ""
    amount: int = 0  # lamports


class HeliusTransaction(BaseModel):
    """Enhanced parsed transaction from Helius."""

    signature: str
    type: str = ""  # "TOKEN_MINT", "SWAP", "TRANSFER", ...
    source: str = ""  # "RAYDIUM", "JUPITER", "PUMP_FUN", ...
    fee_payer: str = ""
    timestamp: int = 0  # unix
    description: str = ""
    token_transfers: list[HeliusTokenTransfer] = []
    native_transfers: list[HeliusNativeTransfer] = []
