from fastapi import APIRouter, Depends, Query
from redis import asyncio as aioredis

from config import DASHBOARD_CLICK_LIMIT, DASHBOARD_URL_LIMIT
from dashboard.schemas import Dashboard
from dashboard.service import get_dashboard
from guard import ANY_METHOD, allow_methods, guard_access
from store import get_redis

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.api_route(
    "/dashboard",
    methods=ANY_METHOD,
    response_model=Dashboard,
    dependencies=[Depends(allow_methods("GET")), Depends(guard_access)],
)
async def read_dashboard(
    url_limit: int = Query(DASHBOARD_URL_LIMIT, ge=1, le=1000),
    click_limit: int = Query(DASHBOARD_CLICK_LIMIT, ge=1, le=1000),
    redis: aioredis.Redis = Depends(get_redis),
):
    """Aggregate counters, a sample of stored links and the latest clicks."""
    return await get_dashboard(redis, url_limit, click_limit)
