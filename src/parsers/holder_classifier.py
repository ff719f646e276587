"""Holder classification — label largest token holders.

LP status wins over every balance-based label: pool reserves are not held
by a risk-relevant party. Percent is always against total supply, never
against the sum of the sampled accounts.
"""

from collections.abc import Iterable

from src.models.risk import HolderCategory, HolderRecord
from src.parsers.solana_rpc.models import TokenAccountBalance

WHALE_PCT = 10.0
INSIDER_PCT = 5.0

# AMM / bonding-curve programs that own pool vaults
LP_PROGRAM_IDS = frozenset({
    "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8",  # Raydium AMM v4
    "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK",  # Raydium CLMM
    "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C",  # Raydium CPMM
    "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc",  # Orca Whirlpool
    "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo",  # Meteora DLMM
    "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P",  # pump.fun bonding curve
    "pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA",  # PumpSwap
})

# Known pool-authority prefixes (heuristic)
LP_PREFIXES = ("5Q544", "HWy1", "Gnt2", "BVCh", "DQyr", "BDc8", "39azU", "FoSD")


class LiquidityPoolMatcher:
    """Decides whether an owner / token account belongs to a liquidity pool.

    Swap the program table or prefix list here; call sites only ask
    `is_liquidity_pool`.
    """

    def __init__(
        self,
        program_ids: Iterable[str] = LP_PROGRAM_IDS,
        prefixes: Iterable[str] = LP_PREFIXES,
        known_pools: Iterable[str] = (),
    ) -> None:
        self._program_ids = frozenset(program_ids)
        self._prefixes = tuple(prefixes)
        self._known_pools = frozenset(known_pools)

    def with_known_pools(self, pools: Iterable[str]) -> "LiquidityPoolMatcher":
        return LiquidityPoolMatcher(
            self._program_ids, self._prefixes, self._known_pools | frozenset(pools)
        )

    def is_liquidity_pool(self, owner: str, token_account: str) -> bool:
        if owner in self._known_pools or token_account in self._known_pools:
            return True
        if owner in self._program_ids:
            return True
        if owner.startswith(self._prefixes) or token_account.startswith(self._prefixes):
            return True
        return "pool" in owner.lower()


DEFAULT_MATCHER = LiquidityPoolMatcher()


def classify_holders(
    accounts: list[TokenAccountBalance],
    total_supply: float,
    *,
    known_pools: Iterable[str] = (),
    creator_address: str | None = None,
    matcher: LiquidityPoolMatcher = DEFAULT_MATCHER,
) -> list[HolderRecord]:
    """Build HolderRecords from the largest-account snapshot."""
    pool_matcher = matcher.with_known_pools(known_pools)
    records: list[HolderRecord] = []

    for account in accounts:
        percent = account.balance / total_supply * 100 if total_supply > 0 else 0.0
        is_lp = pool_matcher.is_liquidity_pool(account.owner, account.token_account)

        if is_lp:
            category = HolderCategory.LIQUIDITY_POOL
        elif creator_address and account.owner == creator_address:
            category = HolderCategory.CREATOR
        elif percent > WHALE_PCT:
            category = HolderCategory.WHALE
        elif percent > INSIDER_PCT:
            category = HolderCategory.INSIDER
        else:
            category = HolderCategory.NORMAL

        records.append(HolderRecord(
            address=account.owner,
            token_account_address=account.token_account,
            balance=account.balance,
            percent_of_supply=percent,
            is_liquidity_pool=is_lp,
            category=category,
        ))

    return records


def guess_creator(holders: list[HolderRecord]) -> str | None:
    """Fallback creator guess: first non-LP holder with 2-40% of supply."""
    for holder in holders:
        if not holder.is_liquidity_pool and 2 < holder.percent_of_supply < 40:
            return holder.address
    return None
