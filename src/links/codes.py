import logging
import secrets
import string

from redis import asyncio as aioredis

from config import CODE_LENGTH
from links.models import url_key

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_letters + string.digits

# Path segments under /api/ that belong to other routes.
RESERVED_CODES = {"shorten", "dashboard"}


def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


async def allocate_unique_code(
    redis: aioredis.Redis, target_url: str, length: int = CODE_LENGTH
) -> str:
    """
    Reserve a fresh code for target_url and return it.

    The mapping is written with SET NX, so a candidate is only taken if no
    other writer holds it. Retries until a free code is found.
    """
    while True:
        candidate = generate_code(length)
        if candidate.lower() in RESERVED_CODES:
            continue
        if await redis.set(url_key(candidate), target_url, nx=True):
            return candidate
        logger.debug("Code collision on %s, retrying", candidate)
