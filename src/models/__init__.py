from src.models.risk import (
    UNKNOWN_AGE,
    BundleAssessment,
    BundleConfidence,
    BundleEvidence,
    BundleQuality,
    CreatorProfile,
    DevActivity,
    FlagType,
    HolderCategory,
    HolderRecord,
    KnownAge,
    NarrativeBaseline,
    RiskAssessment,
    RiskFlag,
    RiskLevel,
    Severity,
    TokenSnapshot,
    TradeCounts,
    UnknownAge,
    WalletAge,
    WashTradingEvidence,
)

__all__ = [
    "UNKNOWN_AGE",
    "BundleAssessment",
    "BundleConfidence",
    "BundleEvidence",
    "BundleQuality",
    "CreatorProfile",
    "DevActivity",
    "FlagType",
    "HolderCategory",
    "HolderRecord",
    "KnownAge",
    "NarrativeBaseline",
    "RiskAssessment",
    "RiskFlag",
    "RiskLevel",
    "Severity",
    "TokenSnapshot",
    "TradeCounts",
    "UnknownAge",
    "WalletAge",
    "WashTradingEvidence",
]
