import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from config import HOST, LOG_LEVEL, PORT, REDIS_URL
from dashboard.router import router as dashboard_router
from errors import ConfigurationError, InvalidRequest
from links.router import router as links_router
from store import connect, get_optional_redis

import uvicorn

logging.basicConfig(level=LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.redis = None
    app.state.redis_error = None
    try:
        app.state.redis = connect(REDIS_URL)
    except ConfigurationError as exc:
        # Keep serving; store-backed routes answer 500 until this is fixed.
        logger.error("Store unavailable: %s", exc.detail)
        app.state.redis_error = exc.detail
    yield
    if app.state.redis is not None:
        await app.state.redis.aclose()


app = FastAPI(title="Short links", lifespan=lifespan)

# /api/dashboard must be registered ahead of the /api/{code} redirect.
app.include_router(dashboard_router)
app.include_router(links_router)


@app.exception_handler(RequestValidationError)
async def invalid_request_handler(request: Request, exc: RequestValidationError):
    # Bad query parameters are client errors like any other malformed input.
    error = InvalidRequest()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.get("/health")
async def health(request: Request):
    redis = get_optional_redis(request)
    try:
        if redis is not None and await redis.ping():
            return {"status": "ok"}
    except RedisError as exc:
        logger.warning("Health check failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "redis_unavailable"},
    )


if __name__ == "__main__":
    uvicorn.run("main:app", host=HOST, port=PORT, log_level=LOG_LEVEL)
