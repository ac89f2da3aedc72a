import pytest
from httpx import AsyncClient

from config import ApplicationConfig
from tests.utils.api_helpers import bearer


class RateLimitedConfig(ApplicationConfig):
    RATE_LIMIT_ENABLED = True
    RATE_LIMIT_LOGIN_MAX = 2
    RATE_LIMIT_SESSIONS_MAX = 1


@pytest.fixture
def app_config():
    return RateLimitedConfig


async def bad_login(client: AsyncClient):
    return await client.post("/auth/login", json={"username": "nobody", "password": "wrong"})


@pytest.mark.asyncio
async def test_login_is_throttled_per_client(client: AsyncClient):
    """
    Given a login limit of 2 per window
    When a client keeps failing to log in
    Then the third attempt is refused with 429 before credentials are checked
    And the response says when to come back
    """
    for _ in range(2):
        response = await bad_login(client)
        assert response.status_code == 401

    throttled = await bad_login(client)

    assert throttled.status_code == 429
    error = throttled.json()["error"]
    assert error["code"] == "RATE_LIMITED"
    assert 0 < error["details"]["retry_after"] <= RateLimitedConfig.RATE_LIMIT_LOGIN_WINDOW_SECONDS
    assert throttled.headers["retry-after"] == str(error["details"]["retry_after"])


@pytest.mark.asyncio
async def test_limits_are_counted_per_path(client: AsyncClient):
    for _ in range(3):
        await bad_login(client)

    refresh = await client.post("/auth/refresh")

    assert refresh.status_code == 401
    assert refresh.json()["error"]["code"] == "MISSING_REFRESH_TOKEN"


@pytest.mark.asyncio
async def test_session_routes_are_throttled(client: AsyncClient):
    first = await client.get("/sessions", headers=bearer("not-a-jwt"))
    second = await client.get("/sessions", headers=bearer("not-a-jwt"))

    assert first.status_code == 401
    assert second.status_code == 429
    assert second.json()["error"]["code"] == "RATE_LIMITED"


@pytest.mark.asyncio
async def test_unlimited_routes_are_untouched(client: AsyncClient):
    for _ in range(5):
        response = await client.get("/health")
        assert response.status_code == 200
