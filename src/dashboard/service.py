import logging
from datetime import date, datetime
from typing import Optional

from pydantic import ValidationError
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from clicks.schemas import ClickEvent
from config import DASHBOARD_CLICK_LIMIT, DASHBOARD_URL_LIMIT
from dashboard.schemas import Dashboard, DashboardStats, URLLog
from errors import StoreError
from links.models import (
    CLICK_LOGS_KEY,
    TOTAL_CLICKS_KEY,
    UNIQUE_VISITORS_KEY,
    URL_KEY_PATTERN,
    clicks_key,
    code_from_url_key,
    created_key,
    daily_clicks_key,
    last_click_key,
    url_key,
)

logger = logging.getLogger(__name__)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


async def get_stats(redis: aioredis.Redis) -> DashboardStats:
    total_urls = 0
    async for _ in redis.scan_iter(match=URL_KEY_PATTERN):
        total_urls += 1

    total_clicks = await redis.get(TOTAL_CLICKS_KEY)
    today_clicks = await redis.get(daily_clicks_key(date.today().isoformat()))
    unique_visitors = await redis.scard(UNIQUE_VISITORS_KEY)

    return DashboardStats(
        total_urls=total_urls,
        total_clicks=int(total_clicks or 0),
        today_clicks=int(today_clicks or 0),
        unique_visitors=unique_visitors,
    )


async def get_url_logs(
    redis: aioredis.Redis, limit: int = DASHBOARD_URL_LIMIT
) -> list[URLLog]:
    """
    Details for up to `limit` stored links, in whatever order SCAN returns
    them. Links without a recorded creation time report the current time.
    """
    codes = []
    async for key in redis.scan_iter(match=URL_KEY_PATTERN):
        codes.append(code_from_url_key(key))
        if len(codes) >= limit:
            break
    if not codes:
        return []

    async with redis.pipeline(transaction=False) as pipe:
        for code in codes:
            pipe.mget(
                url_key(code), clicks_key(code), created_key(code), last_click_key(code)
            )
        rows = await pipe.execute()

    logs = []
    for code, (long_url, clicks, created, last_click) in zip(codes, rows):
        if long_url is None:
            continue
        logs.append(
            URLLog(
                code=code,
                long_url=long_url,
                clicks=int(clicks or 0),
                created_at=_parse_time(created) or datetime.now().astimezone(),
                last_click=_parse_time(last_click),
            )
        )
    return logs


async def get_click_logs(
    redis: aioredis.Redis, limit: int = DASHBOARD_CLICK_LIMIT
) -> list[ClickEvent]:
    entries = await redis.zrevrange(CLICK_LOGS_KEY, 0, limit - 1)
    logs = []
    for entry in entries:
        try:
            logs.append(ClickEvent.model_validate_json(entry))
        except ValidationError:
            continue
    return logs


async def get_dashboard(
    redis: aioredis.Redis,
    url_limit: int = DASHBOARD_URL_LIMIT,
    click_limit: int = DASHBOARD_CLICK_LIMIT,
) -> Dashboard:
    try:
        stats = await get_stats(redis)
        url_logs = await get_url_logs(redis, url_limit)
        click_logs = await get_click_logs(redis, click_limit)
    except RedisError as exc:
        logger.error("Failed to build dashboard: %s", exc)
        raise StoreError("Failed to get stats") from exc
    return Dashboard(stats=stats, url_logs=url_logs, click_logs=click_logs)
