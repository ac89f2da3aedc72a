import pytest
from httpx import AsyncClient

from tests.utils.api_helpers import ADMIN_HEADERS, PASSWORD


@pytest.mark.asyncio
async def test_login_pauses_at_mfa_required(client: AsyncClient, create_user):
    """
    Given a subject without a trusted device
    When they log in with the correct password
    Then the flow pauses at MFA_REQUIRED with their OTP options
    And no tokens or session id are returned yet
    """
    await create_user("alice")

    response = await client.post(
        "/auth/login", json={"username": "alice", "password": PASSWORD, "app_id": "web"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["response_type_code"] == "MFA_REQUIRED"
    assert data["context_id"]
    assert data["otp_methods"] == [
        {"value": "***-***-1234", "mfa_option_id": 1},
        {"value": "***-***-9876", "mfa_option_id": 2},
    ]
    assert data["mobile_approve_status"] == "ENABLED"
    assert data["access_token"] is None
    assert data["session_id"] is None
    assert "refresh_token" not in data
    assert "refresh_token" not in response.cookies


@pytest.mark.asyncio
async def test_login_reports_push_not_registered(client: AsyncClient, create_user):
    await create_user("bob", push_enabled=False)

    response = await client.post("/auth/login", json={"username": "bob", "password": PASSWORD})

    assert response.status_code == 200
    assert response.json()["mobile_approve_status"] == "NOT_REGISTERED"


@pytest.mark.asyncio
async def test_unknown_user_and_wrong_password_look_the_same(client: AsyncClient, create_user):
    await create_user("alice")

    unknown = await client.post("/auth/login", json={"username": "nobody", "password": PASSWORD})
    wrong = await client.post("/auth/login", json={"username": "alice", "password": "nope"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()
    assert unknown.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_repeated_failures_lock_the_account(client: AsyncClient, create_user):
    """
    Given LOGIN_MAX_FAILED_ATTEMPTS = 5
    When the wrong password is sent five times
    Then the fifth attempt returns ACCOUNT_LOCKED
    And even the correct password is refused afterwards
    And an admin unlock restores access
    """
    user = await create_user("alice")

    for _ in range(4):
        response = await client.post("/auth/login", json={"username": "alice", "password": "bad"})
        assert response.status_code == 401

    fifth = await client.post("/auth/login", json={"username": "alice", "password": "bad"})
    assert fifth.status_code == 423
    assert fifth.json()["error"]["code"] == "ACCOUNT_LOCKED"

    correct = await client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    assert correct.status_code == 423
    assert correct.json()["error"]["code"] == "ACCOUNT_LOCKED"

    unlock = await client.post(f"/admin/users/{user['id']}/unlock", headers=ADMIN_HEADERS)
    assert unlock.status_code == 200
    assert unlock.json() == {"id": user["id"], "status": "active", "previous_status": "locked"}

    again = await client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    assert again.status_code == 200
    assert again.json()["response_type_code"] == "MFA_REQUIRED"


@pytest.mark.asyncio
async def test_successful_password_resets_failure_count(client: AsyncClient, create_user):
    await create_user("alice")

    for _ in range(4):
        await client.post("/auth/login", json={"username": "alice", "password": "bad"})
    ok = await client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    assert ok.status_code == 200

    # Counter starts from zero again, so four more failures do not lock
    for _ in range(4):
        response = await client.post("/auth/login", json={"username": "alice", "password": "bad"})
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_new_login_supersedes_in_progress_login(client: AsyncClient, create_user):
    """
    Given a login paused at MFA_REQUIRED
    When the same subject logs in again
    Then the first login context can no longer be continued
    """
    await create_user("alice")
    first = await client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    second = await client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    first_context = first.json()["context_id"]
    assert first_context != second.json()["context_id"]

    response = await client.post(
        "/auth/mfa/initiate", json={"context_id": first_context, "method": "sms"}
    )

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "CONTEXT_NOT_ACTIVE"
    assert error["details"] == {"status": "superseded"}


@pytest.mark.asyncio
async def test_login_validation_error_envelope(client: AsyncClient):
    response = await client.post("/auth/login", json={"username": "alice"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]["errors"]


@pytest.mark.asyncio
async def test_login_is_audited(client: AsyncClient, create_user):
    await create_user("alice")
    login = await client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    context_id = login.json()["context_id"]

    response = await client.get(f"/admin/contexts/{context_id}/audit-events", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    actions = [e["action"] for e in response.json()["events"]]
    assert actions == ["login_password_verified"]
