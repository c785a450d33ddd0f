import logging
from typing import Optional

from fastapi import Request
from redis import asyncio as aioredis

from config import REDIS_TIMEOUT
from errors import ConfigurationError

logger = logging.getLogger(__name__)


def connect(url: Optional[str]) -> aioredis.Redis:
    """
    Build the process-wide Redis client. No connection is opened until the
    first command, so an unreachable server is reported per request.
    """
    if not url:
        raise ConfigurationError("Redis not configured")
    try:
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=REDIS_TIMEOUT,
            socket_connect_timeout=REDIS_TIMEOUT,
        )
    except ValueError as exc:
        logger.error("Cannot parse REDIS_URL: %s", exc)
        raise ConfigurationError("Invalid Redis URL") from exc
    return client


def get_optional_redis(request: Request) -> Optional[aioredis.Redis]:
    return getattr(request.app.state, "redis", None)


def get_redis(request: Request) -> aioredis.Redis:
    client = get_optional_redis(request)
    if client is None:
        detail = getattr(request.app.state, "redis_error", None)
        raise ConfigurationError(detail or "Redis not configured")
    return client
