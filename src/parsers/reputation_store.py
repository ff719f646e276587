"""Reputation store — Redis cache of creator profiles and finished assessments.

Keys:
    risk:creator:{address}     CreatorProfile JSON, 24h TTL
    risk:assessment:{mint}     RiskAssessment JSON, 1h TTL

Store failures never fail an analysis: they are logged and treated as a miss.
"""

import json

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.models.risk import (
    UNKNOWN_AGE,
    CreatorProfile,
    FlagType,
    KnownAge,
    RiskAssessment,
    RiskFlag,
    RiskLevel,
    Severity,
)

CREATOR_KEY = "risk:creator"
ASSESSMENT_KEY = "risk:assessment"


def creator_to_json(profile: CreatorProfile) -> str:
    age = profile.wallet_age
    return json.dumps({
        "address": profile.address,
        "wallet_age_days": age.days if isinstance(age, KnownAge) else None,
        "tokens_created_count": profile.tokens_created_count,
        "rugged_token_count": profile.rugged_token_count,
        "current_holdings_percent": profile.current_holdings_percent,
    })


def creator_from_json(raw: str) -> CreatorProfile:
    data = json.loads(raw)
    days = data.get("wallet_age_days")
    return CreatorProfile(
        address=data["address"],
        wallet_age=KnownAge(days=int(days)) if days is not None else UNKNOWN_AGE,
        tokens_created_count=int(data.get("tokens_created_count", 0)),
        rugged_token_count=int(data.get("rugged_token_count", 0)),
        current_holdings_percent=float(data.get("current_holdings_percent", 0.0)),
    )


def assessment_to_json(assessment: RiskAssessment) -> str:
    return json.dumps({
        "token_address": assessment.token_address,
        "score": assessment.score,
        "level": assessment.level.value,
        "recommendation": assessment.recommendation,
        "flags": [
            {"type": f.type.value, "severity": f.severity.value, "message": f.message}
            for f in assessment.flags
        ],
    })


def assessment_from_json(raw: str) -> RiskAssessment:
    data = json.loads(raw)
    return RiskAssessment(
        score=int(data["score"]),
        level=RiskLevel(data["level"]),
        flags=tuple(
            RiskFlag(
                type=FlagType(f["type"]),
                severity=Severity(f["severity"]),
                message=f["message"],
            )
            for f in data.get("flags", [])
        ),
        recommendation=data.get("recommendation", ""),
        token_address=data.get("token_address", ""),
    )


class ReputationStore:
    """Async Redis-backed cache keyed by creator address and token mint."""

    def __init__(
        self,
        redis: Redis,
        *,
        creator_ttl_sec: int = 86400,
        assessment_ttl_sec: int = 3600,
    ) -> None:
        self._redis = redis
        self._creator_ttl = creator_ttl_sec
        self._assessment_ttl = assessment_ttl_sec

    async def get_creator(self, address: str) -> CreatorProfile | None:
        raw = await self._get(f"{CREATOR_KEY}:{address}")
        if raw is None:
            return None
        try:
            return creator_from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[REPUTATION] Corrupt creator record {address[:12]}: {e}")
            return None

    async def set_creator(self, profile: CreatorProfile) -> None:
        await self._set(
            f"{CREATOR_KEY}:{profile.address}", creator_to_json(profile), self._creator_ttl
        )

    async def get_assessment(self, token_address: str) -> RiskAssessment | None:
        raw = await self._get(f"{ASSESSMENT_KEY}:{token_address}")
        if raw is None:
            return None
        try:
            return assessment_from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[REPUTATION] Corrupt assessment {token_address[:12]}: {e}")
            return None

    async def set_assessment(self, assessment: RiskAssessment) -> None:
        await self._set(
            f"{ASSESSMENT_KEY}:{assessment.token_address}",
            assessment_to_json(assessment),
            self._assessment_ttl,
        )

    async def _get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            logger.warning(f"[REPUTATION] GET {key} failed: {e}")
            return None

    async def _set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._redis.set(key, value, ex=ttl)
        except RedisError as e:
            logger.warning(f"[REPUTATION] SET {key} failed: {e}")
