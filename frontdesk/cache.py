import json
from uuid import UUID

from loguru import logger
from redis.asyncio import Redis

from frontdesk.settings import REDIS_URL

_redis: Redis | None = None
SUMMARY_TTL = 60  # 1 minute
GENERATION_TTL = 60 * 60 * 24  # 1 day, must outlive SUMMARY_TTL


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


def _generation_key(booking_id: UUID) -> str:
    return f"summary-gen:{booking_id}"


def _summary_key(booking_id: UUID, generation: int) -> str:
    return f"summary:{booking_id}:{generation}"


async def get_summary_generation(booking_id: UUID) -> int | None:
    """
    Current cache generation for a booking, None when Redis is unavailable.
    Read it before computing a summary and store under it: a mutation that
    commits meanwhile bumps the generation, so the stale write is never read.
    """
    try:
        value = await get_redis().get(_generation_key(booking_id))
        return int(value) if value else 0
    except Exception:
        logger.opt(exception=True).warning("Redis get failed, skipping summary cache")
        return None


async def get_summary_cache(booking_id: UUID, generation: int | None) -> dict | None:
    if generation is None:
        return None
    try:
        data = await get_redis().get(_summary_key(booking_id, generation))
        return json.loads(data) if data else None
    except Exception:
        logger.opt(exception=True).warning("Redis get failed, skipping summary cache")
        return None


async def set_summary_cache(
    booking_id: UUID, generation: int | None, summary: dict
) -> None:
    if generation is None:
        return
    try:
        await get_redis().setex(
            _summary_key(booking_id, generation), SUMMARY_TTL, json.dumps(summary)
        )
    except Exception:
        logger.opt(exception=True).warning("Redis set failed, skipping summary cache")


async def invalidate_summary_cache(booking_id: UUID) -> None:
    try:
        redis = get_redis()
        await redis.incr(_generation_key(booking_id))
        await redis.expire(_generation_key(booking_id), GENERATION_TTL)
    except Exception:
        logger.opt(exception=True).warning(
            "Redis invalidate failed for summary cache: booking_id={}", booking_id
        )
