import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from ciam.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from ciam.depends import get_otp_sender, get_push_notifier, get_unit_of_work
from tests.utils.api_helpers import (
    ADMIN_HEADERS,
    PASSWORD,
    RecordingOtpSender,
    RecordingPushNotifier,
)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///./test_ciam.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def otp_sender():
    return RecordingOtpSender()


@pytest.fixture
def push_notifier():
    return RecordingPushNotifier()


class IntegrationConfig(ApplicationConfig):
    # Flows below log in far more often than a real client would
    RATE_LIMIT_ENABLED = False


@pytest.fixture
def app_config():
    return IntegrationConfig


@pytest_asyncio.fixture
async def client(session_factory, otp_sender, push_notifier, app_config):
    from ciam.api.app import create_app

    app = create_app(app_config)

    # One session per request so concurrent requests never share a connection
    async def override_get_unit_of_work():
        async with session_factory() as session:
            yield SqlAlchemyUnitOfWork(session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_otp_sender] = lambda: otp_sender
    app.dependency_overrides[get_push_notifier] = lambda: push_notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def create_user(client):
    """Factory creating subjects through the admin API"""

    async def _create_user(username="alice", push_enabled=True, **extra):
        payload = {
            "username": username,
            "password": PASSWORD,
            "email": f"{username}@example.com",
            "given_name": username.capitalize(),
            "otp_destinations": [
                {"mfa_option_id": 1, "value": "***-***-1234"},
                {"mfa_option_id": 2, "value": "***-***-9876"},
            ],
            "push_enabled": push_enabled,
            **extra,
        }
        response = await client.post("/admin/users", json=payload, headers=ADMIN_HEADERS)
        assert response.status_code == 201, response.text
        return response.json()

    return _create_user


@pytest_asyncio.fixture
async def login_with_otp(client, otp_sender):
    """Run login + SMS challenge + verify; returns the final step response"""

    async def _login(username="alice", drs_action_token=None):
        payload = {"username": username, "password": PASSWORD, "app_id": "web"}
        if drs_action_token:
            payload["drs_action_token"] = drs_action_token
        login = await client.post("/auth/login", json=payload)
        assert login.status_code == 200, login.text
        body = login.json()
        if body["response_type_code"] != "MFA_REQUIRED":
            return body

        context_id = body["context_id"]
        initiated = await client.post(
            "/auth/mfa/initiate",
            json={"context_id": context_id, "method": "sms", "mfa_option_id": 1},
        )
        assert initiated.status_code == 200, initiated.text
        transaction_id = initiated.json()["transaction_id"]

        verified = await client.post(
            "/auth/mfa/verify",
            json={
                "context_id": context_id,
                "transaction_id": transaction_id,
                "code": otp_sender.codes[transaction_id],
            },
        )
        assert verified.status_code == 200, verified.text
        return verified.json()

    return _login
