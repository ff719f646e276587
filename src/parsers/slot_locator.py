"""Slot locator — find the slot whose block time is closest to a timestamp.

Used to pinpoint a token's creation transaction: locate the slot for the
pair creation time, then scan a few slots either side for the block
transaction that initialised the mint. Its fee payer is the creator.
"""

import time

from loguru import logger

from src.parsers.exceptions import ProviderError
from src.parsers.solana_rpc.client import SolanaRpcClient

# Log fragments emitted by mint-creating programs (SPL token, pump.fun, metaplex)
CREATION_LOG_MARKERS = (
    "Instruction: InitializeMint",
    "Instruction: InitializeMint2",
    "Instruction: Create",
    "Instruction: CreateMetadataAccount",
)


async def _block_time(rpc: SolanaRpcClient, slot: int) -> int | None:
    try:
        return await rpc.get_block_time(slot)
    except ProviderError as e:
        logger.debug(f"[SLOT] getBlockTime({slot}) failed: {e}")
        return None


async def _probe_near(
    rpc: SolanaRpcClient, center: int, low: int, high: int, radius: int
) -> tuple[int, int] | None:
    """(slot, block time) of the produced slot nearest `center` within [low, high]."""
    for step in range(radius + 1):
        for slot in (center + step, center - step) if step else (center,):
            if low <= slot <= high:
                block_time = await _block_time(rpc, slot)
                if block_time is not None:
                    return slot, block_time
    return None


async def find_slot_for_timestamp(
    rpc: SolanaRpcClient,
    target_ts: int,
    *,
    current_slot: int | None = None,
    now: float | None = None,
    slots_per_second: float = 2.5,
    buffer: int = 10_000,
    max_iterations: int = 20,
    tolerance_sec: int = 5,
    skip_radius: int = 4,
) -> int | None:
    """Binary-search for the slot nearest `target_ts`.

    A skipped midpoint is replaced by the nearest produced slot within
    `skip_radius` that still lies in the window, so both halves stay
    searchable. Returns None only when no probe produced a block time.
    Otherwise the best candidate seen is returned even if it is outside
    the tolerance.
    """
    if current_slot is None:
        try:
            current_slot = await rpc.get_slot()
        except ProviderError as e:
            logger.warning(f"[SLOT] Cannot read current slot: {e}")
            return None

    ts_now = now if now is not None else time.time()
    estimate = current_slot - int((ts_now - target_ts) * slots_per_second)
    low = max(0, estimate - buffer)
    high = min(current_slot, estimate + buffer)

    best_slot: int | None = None
    best_delta: float | None = None

    for _ in range(max_iterations):
        if low > high:
            break
        probe = await _probe_near(rpc, (low + high) // 2, low, high, skip_radius)
        if probe is None:
            logger.debug(f"[SLOT] No block time around {(low + high) // 2}, stopping search")
            break
        mid, block_time = probe

        delta = block_time - target_ts
        if best_delta is None or abs(delta) < best_delta:
            best_slot, best_delta = mid, abs(delta)

        if abs(delta) <= tolerance_sec:
            return mid
        if delta < 0:
            low = mid + 1
        else:
            high = mid - 1

    if best_slot is not None:
        logger.debug(
            f"[SLOT] No slot within {tolerance_sec}s of {target_ts}, "
            f"closest {best_slot} (off by {best_delta:.0f}s)"
        )
    return best_slot


def _is_creation_tx(log_messages: list[str]) -> bool:
    return any(marker in line for line in log_messages for marker in CREATION_LOG_MARKERS)


async def find_token_creator(
    rpc: SolanaRpcClient,
    mint: str,
    created_at_ts: int,
    *,
    radius: int = 10,
    **locator_kwargs,
) -> str | None:
    """Fee payer of the transaction that created `mint`, or None if not found."""
    slot = await find_slot_for_timestamp(rpc, created_at_ts, **locator_kwargs)
    if slot is None:
        return None

    # Nearest slots first
    offsets = sorted(range(-radius, radius + 1), key=abs)
    for offset in offsets:
        probe = slot + offset
        if probe < 0:
            continue
        try:
            txs = await rpc.get_block(probe)
        except ProviderError as e:
            logger.debug(f"[SLOT] getBlock({probe}) failed: {e}")
            continue
        if not txs:
            continue

        for tx in txs:
            if tx.err is not None or mint not in tx.account_keys:
                continue
            if _is_creation_tx(tx.log_messages):
                logger.info(
                    f"[SLOT] Creator of {mint[:12]} found at slot {probe}: "
                    f"{tx.fee_payer[:12]}"
                )
                return tx.fee_payer

    logger.debug(f"[SLOT] No creation tx for {mint[:12]} within ±{radius} of {slot}")
    return None
