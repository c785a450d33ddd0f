import logging
from datetime import date, datetime

from fastapi import Request
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from clicks.schemas import ClickEvent
from config import CLICK_LOG_SIZE, UNIQUE_VISITORS_TTL
from guard import extract_client_ip
from links.models import (
    CLICK_LOGS_KEY,
    TOTAL_CLICKS_KEY,
    UNIQUE_VISITORS_KEY,
    clicks_key,
    daily_clicks_key,
    last_click_key,
)
from links.service import now_iso

logger = logging.getLogger(__name__)


def build_click_event(request: Request, code: str) -> ClickEvent:
    return ClickEvent(
        code=code,
        ip=extract_client_ip(request),
        user_agent=request.headers.get("User-Agent", ""),
        referer=request.headers.get("Referer", ""),
        timestamp=datetime.now().astimezone(),
    )


async def record_click(redis: aioredis.Redis, event: ClickEvent) -> None:
    """
    Update every counter and log touched by one redirect.

    The commands go out in a single non-transactional pipeline: each one is
    atomic on its own, but a failure part way through leaves the earlier ones
    applied.
    """
    today = date.today().isoformat()
    async with redis.pipeline(transaction=False) as pipe:
        pipe.incr(clicks_key(event.code))
        pipe.incr(TOTAL_CLICKS_KEY)
        pipe.incr(daily_clicks_key(today))
        pipe.set(last_click_key(event.code), now_iso())
        pipe.sadd(UNIQUE_VISITORS_KEY, event.ip)
        pipe.expire(UNIQUE_VISITORS_KEY, UNIQUE_VISITORS_TTL)
        pipe.zadd(
            CLICK_LOGS_KEY, {event.model_dump_json(): int(event.timestamp.timestamp())}
        )
        pipe.zremrangebyrank(CLICK_LOGS_KEY, 0, -(CLICK_LOG_SIZE + 1))
        await pipe.execute()


async def record_click_safely(redis: aioredis.Redis, event: ClickEvent) -> None:
    try:
        await record_click(redis, event)
    except RedisError as exc:
        logger.warning("Failed to record click for %s: %s", event.code, exc)
