import pytest
from fastapi import status
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

import clicks.service
from config import RATE_LIMIT_REQUESTS
from links.service import resolve_code
from main import app


@pytest.mark.anyio
async def test_shorten_and_redirect(client: AsyncClient, redis):
    response = await client.post("/api/shorten", json={"url": "https://example.com/page"})
    assert response.status_code == status.HTTP_200_OK
    short_url = response.json()["short_url"]
    assert short_url.startswith("https://test/api/")
    code = short_url.rsplit("/", 1)[-1]
    assert len(code) == 6 and code.isalnum()
    assert await redis.get(f"created:{code}") is not None

    response = await client.get(f"/api/{code}", follow_redirects=False)
    assert response.status_code == status.HTTP_302_FOUND
    assert response.headers.get("location") == "https://example.com/page"


@pytest.mark.anyio
async def test_urls_are_stored_verbatim(client: AsyncClient, shorten):
    for url in ["not a url at all", "ftp://files.example/x?y=1", "javascript:void(0)"]:
        code = await shorten(url)
        response = await client.get(f"/api/{code}", follow_redirects=False)
        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers.get("location") == url


@pytest.mark.anyio
async def test_non_latin1_url_is_percent_encoded_on_redirect(client: AsyncClient, redis, shorten):
    url = "https://example.com/café?q=ü"
    code = await shorten(url)

    assert await redis.get(f"url:{code}") == url
    assert await resolve_code(redis, code) == url

    response = await client.get(f"/api/{code}", follow_redirects=False)
    assert response.status_code == status.HTTP_302_FOUND
    assert response.headers.get("location") == "https://example.com/caf%C3%A9?q=%C3%BC"


@pytest.mark.anyio
async def test_sequential_shortens_get_distinct_codes(shorten):
    codes = [await shorten("https://example.com/same") for _ in range(20)]
    assert len(set(codes)) == len(codes)


@pytest.mark.anyio
async def test_localhost_short_url_uses_http(client: AsyncClient):
    response = await client.post(
        "/api/shorten",
        json={"url": "https://example.com"},
        headers={"Host": "localhost:3000"},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["short_url"].startswith("http://localhost:3000/api/")


@pytest.mark.anyio
async def test_unknown_code_returns_404(client: AsyncClient):
    response = await client.get("/api/doesnotexist", follow_redirects=False)
    assert response.status_code == status.HTTP_404_NOT_FOUND

    response = await client.get("/api/", follow_redirects=False)
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.parametrize(
    "body",
    [
        b"",
        b"not json",
        b"{}",
        b'{"url": ""}',
        b'{"url": 42}',
        b'["https://example.com"]',
    ],
)
@pytest.mark.anyio
async def test_shorten_rejects_invalid_body(client: AsyncClient, body):
    response = await client.post(
        "/api/shorten", content=body, headers={"Content-Type": "application/json"}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.anyio
async def test_shorten_rejects_other_methods(client: AsyncClient):
    response = await client.get("/api/shorten")
    assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    response = await client.put("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED


@pytest.mark.anyio
async def test_bot_user_agent_is_forbidden(client: AsyncClient):
    headers = {"User-Agent": "curl/7.64"}
    response = await client.post(
        "/api/shorten", json={"url": "https://example.com"}, headers=headers
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.get("/api/dashboard", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.anyio
async def test_shorten_rate_limit(client: AsyncClient):
    payload = {"url": "https://example.com"}
    for _ in range(RATE_LIMIT_REQUESTS):
        response = await client.post("/api/shorten", json=payload)
        assert response.status_code == status.HTTP_200_OK

    response = await client.post("/api/shorten", json=payload)
    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    # the limit is per client address
    response = await client.post(
        "/api/shorten", json=payload, headers={"X-Forwarded-For": "198.51.100.20"}
    )
    assert response.status_code == status.HTTP_200_OK


@pytest.mark.anyio
async def test_redirect_counts_one_click(client: AsyncClient, redis, shorten):
    code = await shorten("https://example.com/counted")

    await client.get(
        f"/api/{code}",
        headers={"X-Forwarded-For": "203.0.113.9", "Referer": "https://ref.example"},
        follow_redirects=False,
    )

    assert await redis.get(f"clicks:{code}") == "1"
    assert await redis.get("stats:total_clicks") == "1"
    assert await redis.smembers("stats:unique_visitors") == {"203.0.113.9"}
    assert await redis.get(f"last_click:{code}") is not None
    (entry,) = await redis.zrange("click_logs", 0, -1)
    assert '"referer":"https://ref.example"' in entry


@pytest.mark.anyio
async def test_redirect_survives_accounting_failure(client: AsyncClient, shorten, monkeypatch):
    code = await shorten("https://example.com/still-works")

    async def failing_record_click(redis, event):
        raise RedisConnectionError("connection reset")

    monkeypatch.setattr(clicks.service, "record_click", failing_record_click)

    response = await client.get(f"/api/{code}", follow_redirects=False)
    assert response.status_code == status.HTTP_302_FOUND
    assert response.headers.get("location") == "https://example.com/still-works"


@pytest.mark.anyio
async def test_missing_store_is_configuration_error(client: AsyncClient):
    app.state.redis = None
    app.state.redis_error = "Redis not configured"

    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Redis not configured"}

    response = await client.get("/api/abc123", follow_redirects=False)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

    response = await client.get("/health")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


class DownRedis:
    async def get(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")

    set = get

    async def scan_iter(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")
        yield


@pytest.mark.anyio
async def test_store_outage_is_store_error(client: AsyncClient):
    app.state.redis = DownRedis()

    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Failed to save"}

    response = await client.get("/api/abc123", follow_redirects=False)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Redis error"}

    response = await client.get("/api/dashboard")
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Failed to get stats"}
