"""Evidence and result types for a single token risk analysis.

Everything here is built at the start of one analysis and discarded at the end.
Percent fields are 0-100 against total token supply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class HolderCategory(str, Enum):
    LIQUIDITY_POOL = "LIQUIDITY_POOL"
    CREATOR = "CREATOR"
    WHALE = "WHALE"
    INSIDER = "INSIDER"
    NORMAL = "NORMAL"


class BundleConfidence(IntEnum):
    """Totally ordered: a higher member never maps to a lower score floor."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


class BundleAssessment(str, Enum):
    LIKELY_LEGIT = "LIKELY_LEGIT"
    NEUTRAL = "NEUTRAL"
    SUSPICIOUS = "SUSPICIOUS"
    VERY_SUSPICIOUS = "VERY_SUSPICIOUS"


class RiskLevel(str, Enum):
    SAFE = "SAFE"
    SUSPICIOUS = "SUSPICIOUS"
    DANGEROUS = "DANGEROUS"
    SCAM = "SCAM"


class FlagType(str, Enum):
    LIQUIDITY = "LIQUIDITY"
    OWNERSHIP = "OWNERSHIP"
    CONTRACT = "CONTRACT"
    SOCIAL = "SOCIAL"
    DEPLOYER = "DEPLOYER"
    BUNDLE = "BUNDLE"
    HOLDERS = "HOLDERS"
    TRADING = "TRADING"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class KnownAge:
    days: int


@dataclass(frozen=True)
class UnknownAge:
    """Age could not be determined. Never compare as a number."""


UNKNOWN_AGE = UnknownAge()
WalletAge = KnownAge | UnknownAge


@dataclass(frozen=True)
class HolderRecord:
    address: str  # owner wallet
    token_account_address: str
    balance: float
    percent_of_supply: float
    is_liquidity_pool: bool = False
    category: HolderCategory = HolderCategory.NORMAL


@dataclass(frozen=True)
class BundleEvidence:
    detected: bool = False
    confidence: BundleConfidence = BundleConfidence.NONE
    wallet_addresses: frozenset[str] = frozenset()
    same_block_transaction_count: int = 0
    percent_supply_controlled: float = 0.0
    patterns: tuple[str, ...] = ()
    is_established_token: bool = False


@dataclass(frozen=True)
class WashTradingEvidence:
    detected: bool = False
    bundle_buy_count: int = 0
    organic_buy_count: int = 0
    wash_percent: float = 0.0
    estimated_real_buy_count: int = 0
    adjusted_buy_sell_ratio: float | None = None

    @property
    def total_buy_count(self) -> int:
        return self.bundle_buy_count + self.organic_buy_count


@dataclass(frozen=True)
class BundleQuality:
    legitimacy_score: int
    assessment: BundleAssessment
    positive_signals: tuple[str, ...] = ()
    negative_signals: tuple[str, ...] = ()


@dataclass(frozen=True)
class CreatorProfile:
    address: str
    wallet_age: WalletAge = UNKNOWN_AGE
    tokens_created_count: int = 0
    rugged_token_count: int = 0
    current_holdings_percent: float = 0.0


@dataclass(frozen=True)
class DevActivity:
    has_sold: bool = False
    percent_sold: float = 0.0
    sell_count: int = 0
    current_holdings_percent: float = 0.0

    @property
    def fully_exited(self) -> bool:
        return self.has_sold and self.current_holdings_percent <= 0


@dataclass(frozen=True)
class TradeCounts:
    buys: int = 0
    sells: int = 0


@dataclass(frozen=True)
class TokenSnapshot:
    address: str
    age_hours: float | None = None
    liquidity_usd: float | None = None  # None = undetermined, 0 = no pool liquidity
    market_cap_usd: float | None = None
    volume_24h: float | None = None
    txns_24h: TradeCounts = field(default_factory=TradeCounts)
    holder_count: int | None = None
    mint_authority_active: bool = False
    freeze_authority_active: bool = False
    lp_locked_percent: float | None = None
    has_website: bool = False
    has_twitter: bool = False
    price_change_24h: float | None = None
    is_bonding_curve: bool = False
    created_at: int | None = None  # unix seconds
    total_supply: float = 0.0


@dataclass(frozen=True)
class RiskFlag:
    type: FlagType
    severity: Severity
    message: str


@dataclass(frozen=True)
class NarrativeBaseline:
    """Upstream narrative output — a starting point, not ground truth."""

    score: int
    flags: tuple[RiskFlag, ...] = ()
    summary: str = ""


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    level: RiskLevel
    flags: tuple[RiskFlag, ...]
    recommendation: str
    token_address: str = ""
