"""Developer activity — has the creator sold this token, and how much is left.

A sell is a transfer of the token out of the creator wallet in a swap:
SWAP type, DEX source, a swap-like description, or SOL flowing back to
the creator in the same transaction. Plain transfers are not sells.
"""

from decimal import Decimal

from loguru import logger

from src.models.risk import DevActivity
from src.parsers.exceptions import ProviderError
from src.parsers.helius.client import HeliusClient
from src.parsers.helius.models import HeliusTransaction
from src.parsers.solana_rpc.client import SolanaRpcClient

SELL_KEYWORDS = ("sold", "swapped", "swap")
DEX_SOURCES = ("RAYDIUM", "JUPITER", "ORCA", "PUMP_FUN", "METEORA")


def is_sell_context(tx: HeliusTransaction, creator_address: str) -> bool:
    description = tx.description.lower()
    source = tx.source.upper()
    received_sol = any(
        nt.to_user_account == creator_address and nt.amount > 0
        for nt in tx.native_transfers
    )
    return (
        tx.type == "SWAP"
        or any(dex in source for dex in DEX_SOURCES)
        or any(kw in description for kw in SELL_KEYWORDS)
        or received_sol
    )


def summarize_dev_flows(
    txs: list[HeliusTransaction], creator_address: str, token_address: str
) -> tuple[float, float, int]:
    """(tokens received, tokens sold, sell count) for one creator and mint."""
    received = Decimal("0")
    sold = Decimal("0")
    sell_count = 0

    for tx in txs:
        selling = is_sell_context(tx, creator_address)
        for transfer in tx.token_transfers:
            if transfer.mint != token_address:
                continue
            if transfer.to_user_account == creator_address:
                received += transfer.token_amount
            if transfer.from_user_account == creator_address and selling:
                sold += transfer.token_amount
                sell_count += 1

    return float(received), float(sold), sell_count


def build_dev_activity(
    received: float, sold: float, sell_count: int, current_balance: float, total_supply: float
) -> DevActivity:
    holdings = current_balance / total_supply * 100 if total_supply > 0 else 0.0
    percent_sold = 0.0
    if sold > 0:
        original = max(received, current_balance + sold)
        percent_sold = sold / original * 100 if original > 0 else 0.0

    return DevActivity(
        has_sold=sold > 0,
        percent_sold=min(percent_sold, 100.0),
        sell_count=sell_count,
        current_holdings_percent=min(holdings, 100.0),
    )


async def analyze_dev_activity(
    rpc: SolanaRpcClient,
    helius: HeliusClient | None,
    creator_address: str,
    token_address: str,
    total_supply: float,
) -> DevActivity | None:
    """None when the creator's swap history or balance cannot be read."""
    if helius is None:
        return None

    try:
        txs = await helius.get_address_transactions(creator_address, tx_type="SWAP")
        current_balance = await rpc.get_token_balance(creator_address, token_address)
    except ProviderError as e:
        logger.warning(f"[DEV] Activity lookup failed for {creator_address[:12]}: {e}")
        return None

    received, sold, sell_count = summarize_dev_flows(txs, creator_address, token_address)
    activity = build_dev_activity(received, sold, sell_count, current_balance, total_supply)

    logger.info(
        f"[DEV] {creator_address[:12]}: holds {activity.current_holdings_percent:.1f}%, "
        f"sold {activity.percent_sold:.1f}% in {sell_count} sells"
    )
    return activity
