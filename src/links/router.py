from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from redis import asyncio as aioredis

from clicks.service import build_click_event, record_click_safely
from config import GUARD_REDIRECTS
from errors import InvalidRequest
from guard import ANY_METHOD, allow_methods, guard_access
from links.schemas import ShortenRequest, ShortenResponse
from links.service import build_short_url, resolve_code, shorten_url
from store import get_redis

router = APIRouter(prefix="/api", tags=["links"])

redirect_dependencies = [Depends(guard_access)] if GUARD_REDIRECTS else []


def redirect_to(target_url: str) -> Response:
    """
    302 to the stored URL exactly as it was submitted. Values that cannot go
    into a header verbatim (non latin-1, control characters) are left to
    RedirectResponse, which percent-encodes them.
    """
    try:
        target_url.encode("latin-1")
        verbatim = target_url.isprintable()
    except UnicodeEncodeError:
        verbatim = False
    if not verbatim:
        return RedirectResponse(url=target_url, status_code=status.HTTP_302_FOUND)
    return Response(
        status_code=status.HTTP_302_FOUND, headers={"location": target_url}
    )


@router.api_route(
    "/shorten",
    methods=ANY_METHOD,
    response_model=ShortenResponse,
    dependencies=[Depends(allow_methods("POST")), Depends(guard_access)],
)
async def create_short_link(request: Request):
    """
    Create a short link for the "url" given in the JSON body. The value is
    stored as-is; only a missing or empty url is rejected.
    """
    try:
        payload = ShortenRequest.model_validate_json(await request.body())
    except ValidationError:
        raise InvalidRequest()

    redis = get_redis(request)
    code = await shorten_url(redis, payload.url)
    host = request.headers.get("host", "")
    return ShortenResponse(short_url=build_short_url(host, code))


@router.get("/{code}", dependencies=redirect_dependencies)
async def redirect_to_url(
    code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    redis: aioredis.Redis = Depends(get_redis),
):
    """
    Redirect to the URL stored for the code. Click accounting runs after the
    response and its failures never reach the client.
    """
    target_url = await resolve_code(redis, code)
    background_tasks.add_task(
        record_click_safely, redis, build_click_event(request, code)
    )
    return redirect_to(target_url)
