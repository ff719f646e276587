from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from config.settings import settings
from src.parsers.reputation_store import ReputationStore

_redis_client: Redis | None = None


async def get_redis() -> Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


async def open_reputation_store() -> ReputationStore | None:
    """Reputation store on the shared connection, None if disabled or unreachable."""
    if not settings.enable_reputation_cache:
        return None
    redis = await get_redis()
    try:
        await redis.ping()
    except RedisError as e:
        logger.warning(f"[REPUTATION] Redis unavailable at {settings.redis_url}, cache off: {e}")
        return None
    return ReputationStore(
        redis,
        creator_ttl_sec=settings.creator_cache_ttl_sec,
        assessment_ttl_sec=settings.assessment_cache_ttl_sec,
    )


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
