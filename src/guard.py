import logging
from typing import Optional

from fastapi import Depends, Request
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from config import RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW
from errors import Forbidden, MethodNotAllowed, RateLimited
from links.models import rate_limit_key
from store import get_optional_redis

logger = logging.getLogger(__name__)

BOT_PATTERNS = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "curl",
    "wget",
    "python",
    "java",
    "perl",
    "ruby",
    "php",
    "go-http-client",
)

CLIENT_IP_HEADERS = ("X-Forwarded-For", "X-Real-IP", "CF-Connecting-IP")

# Routes accept every method so that a wrong one gets 405 from allow_methods
# instead of falling through to the /api/{code} redirect.
ANY_METHOD = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def is_bot(user_agent: Optional[str]) -> bool:
    user_agent = (user_agent or "").lower()
    return any(pattern in user_agent for pattern in BOT_PATTERNS)


def extract_client_ip(request: Request) -> str:
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            return value.split(",")[0].strip()
    if request.client is None:
        return ""
    return request.client.host


async def check_rate_limit(
    redis: Optional[aioredis.Redis], client_ip: str
) -> bool:
    """
    Allow at most RATE_LIMIT_REQUESTS per window for one IP.

    Every allowed request pushes the expiry out by a full window, so a client
    that keeps calling never sees its counter reset. Store failures allow.
    """
    if redis is None:
        return True

    key = rate_limit_key(client_ip)
    try:
        count = int(await redis.get(key) or 0)
    except RedisError as exc:
        logger.warning("Rate limit lookup failed for %s: %s", client_ip, exc)
        return True

    if count >= RATE_LIMIT_REQUESTS:
        logger.info("Rate limit exceeded for %s", client_ip)
        return False

    try:
        async with redis.pipeline(transaction=False) as pipe:
            pipe.incr(key)
            pipe.expire(key, RATE_LIMIT_WINDOW)
            await pipe.execute()
    except RedisError as exc:
        logger.warning("Rate limit update failed for %s: %s", client_ip, exc)
    return True


def allow_methods(*methods: str):
    allowed = {method.upper() for method in methods}

    def check_method(request: Request) -> None:
        if request.method not in allowed:
            raise MethodNotAllowed()

    return check_method


async def guard_access(
    request: Request,
    redis: Optional[aioredis.Redis] = Depends(get_optional_redis),
) -> None:
    if is_bot(request.headers.get("User-Agent")):
        raise Forbidden()
    if not await check_rate_limit(redis, extract_client_ip(request)):
        raise RateLimited()
