from datetime import timedelta
from uuid import UUID

import pytest
from httpx import AsyncClient

from ciam.domain.base import utcnow
from ciam.domain.entities import AuthContext, AuthTransaction, Session
from tests.utils.api_helpers import ADMIN_HEADERS, PASSWORD


@pytest.mark.asyncio
async def test_admin_routes_require_api_key(client: AsyncClient):
    payload = {"username": "alice", "password": PASSWORD}

    missing = await client.post("/admin/users", json=payload)
    invalid = await client.post(
        "/admin/users", json=payload, headers={"X-Admin-API-Key": "nope"}
    )

    assert missing.status_code == 401
    assert missing.json()["error"]["code"] == "UNAUTHORIZED"
    assert invalid.status_code == 401
    assert invalid.json()["error"]["code"] == "INVALID_API_KEY"


@pytest.mark.asyncio
async def test_create_user(client: AsyncClient, create_user):
    user = await create_user("alice")

    assert user["username"] == "alice"
    assert user["status"] == "active"
    assert user["roles"] == ["customer"]
    assert "password" not in user and "password_hash" not in user

    duplicate = await client.post(
        "/admin/users", json={"username": "alice", "password": PASSWORD}, headers=ADMIN_HEADERS
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "USERNAME_ALREADY_EXISTS"


@pytest.mark.asyncio
async def test_unlock_unknown_user(client: AsyncClient):
    response = await client.post(
        "/admin/users/00000000-0000-0000-0000-000000000000/unlock", headers=ADMIN_HEADERS
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_obligation_for_unknown_document(client: AsyncClient, create_user):
    user = await create_user("alice")

    response = await client.post(
        "/admin/compliance/obligations",
        json={"subject_id": user["id"], "document_id": "missing"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "DOCUMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_audit_trail_of_completed_login(client: AsyncClient, create_user, login_with_otp):
    await create_user("alice")
    step = await login_with_otp()

    response = await client.get(
        f"/admin/contexts/{step['context_id']}/audit-events", headers=ADMIN_HEADERS
    )

    assert response.status_code == 200
    actions = {e["action"] for e in response.json()["events"]}
    assert {"login_password_verified", "mfa_initiated", "mfa_approved", "login_success"} <= actions


@pytest.mark.asyncio
async def test_sweep_expires_overdue_state(client: AsyncClient, create_user, db_session):
    """
    Given an abandoned login whose challenge and context deadlines passed
    And a session past its expiry
    When the expiry sweep runs
    Then all three are closed
    And the abandoned login can no longer be continued
    """
    await create_user("alice")
    login = await client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    context_id = UUID(login.json()["context_id"])
    initiated = await client.post(
        "/auth/mfa/initiate", json={"context_id": str(context_id), "method": "sms"}
    )
    transaction_id = UUID(initiated.json()["transaction_id"])

    past = utcnow() - timedelta(minutes=1)
    context = await db_session.get(AuthContext, context_id)
    context.expires_at = past
    transaction = await db_session.get(AuthTransaction, transaction_id)
    transaction.expires_at = past
    session = await db_session.get(Session, context.session_id)
    session.expires_at = past
    db_session.add_all([context, transaction, session])
    await db_session.commit()

    response = await client.post("/admin/maintenance/sweep", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json() == {
        "sessions_expired": 1,
        "transactions_expired": 1,
        "contexts_expired": 1,
    }

    status_response = await client.get(
        f"/auth/mfa/transactions/{transaction_id}", params={"context_id": str(context_id)}
    )
    assert status_response.json()["status"] == "EXPIRED"

    resumed = await client.post(
        "/auth/mfa/initiate", json={"context_id": str(context_id), "method": "sms"}
    )
    assert resumed.status_code == 410
    assert resumed.json()["error"]["code"] == "CONTEXT_EXPIRED"


@pytest.mark.asyncio
async def test_sweep_closes_session_of_abandoned_login(
    client: AsyncClient, create_user, login_with_otp, db_session
):
    """
    Given a completed login
    And a second login abandoned at the MFA step past its deadline
    When the expiry sweep runs
    Then the session opened by the abandoned login is deactivated
    And it no longer shows up in the session list
    """
    await create_user("alice")
    completed = await login_with_otp()
    abandoned = await client.post(
        "/auth/login", json={"username": "alice", "password": PASSWORD}
    )
    context = await db_session.get(AuthContext, UUID(abandoned.json()["context_id"]))
    abandoned_session_id = context.session_id
    context.expires_at = utcnow() - timedelta(minutes=1)
    db_session.add(context)
    await db_session.commit()

    response = await client.post("/admin/maintenance/sweep", headers=ADMIN_HEADERS)

    assert response.json()["contexts_expired"] == 1
    session = await db_session.get(Session, abandoned_session_id, populate_existing=True)
    assert session.active is False
    assert session.revocation_reason == "context_expired"

    listed = await client.get(
        "/sessions", headers={"Authorization": f"Bearer {completed['access_token']}"}
    )
    assert [s["session_id"] for s in listed.json()["sessions"]] == [completed["session_id"]]
