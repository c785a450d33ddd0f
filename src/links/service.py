import logging
from datetime import datetime

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from config import CODE_LENGTH
from errors import NotFound, StoreError
from links.codes import allocate_unique_code
from links.models import created_key, url_key

logger = logging.getLogger(__name__)

PLAIN_HTTP_HOSTS = ("localhost", "127.0.0.1")


def now_iso() -> str:
    """Current server-local time as ISO-8601 with offset, to the second."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


def build_short_url(host: str, code: str) -> str:
    scheme = "http" if host.startswith(PLAIN_HTTP_HOSTS) else "https"
    return f"{scheme}://{host}/api/{code}"


async def shorten_url(
    redis: aioredis.Redis, target_url: str, length: int = CODE_LENGTH
) -> str:
    """Store target_url under a new code and return the code."""
    try:
        code = await allocate_unique_code(redis, target_url, length)
        await redis.set(created_key(code), now_iso())
    except RedisError as exc:
        logger.error("Failed to save short link: %s", exc)
        raise StoreError("Failed to save") from exc

    logger.info("Short link created: %s -> %s", code, target_url)
    return code


async def resolve_code(redis: aioredis.Redis, code: str) -> str:
    if not code:
        raise NotFound()
    try:
        target_url = await redis.get(url_key(code))
    except RedisError as exc:
        logger.error("Lookup of %s failed: %s", code, exc)
        raise StoreError() from exc
    if target_url is None:
        raise NotFound("Link not found")
    return target_url
