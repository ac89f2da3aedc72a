from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import bcrypt
import pytest

from ciam.app.use_cases.auth import MFA_REQUIRED, SUCCESS, LoginCommand, LoginUseCase
from ciam.domain.entities import (
    AuthContext,
    AuthContextStatus,
    TrustedDevice,
    User,
    UserStatus,
)

PASSWORD = "SecurePass123!"


def make_user(**fields) -> User:
    defaults = dict(
        id=uuid4(),
        username="alice",
        password_hash=bcrypt.hashpw(PASSWORD.encode(), bcrypt.gensalt(4)).decode(),
        status=UserStatus.active,
        otp_destinations=[{"mfa_option_id": 1, "value": "***-***-1234"}],
        push_enabled=False,
        roles=["customer"],
    )
    defaults.update(fields)
    return User(**defaults)


@pytest.fixture
def login_uow(mock_uow):
    mock_uow.users.get_by_username = AsyncMock(return_value=None)
    mock_uow.users.update = AsyncMock(side_effect=lambda user: user)
    mock_uow.auth_contexts.get_in_progress_for_subject = AsyncMock(return_value=[])
    mock_uow.auth_contexts.create = AsyncMock(side_effect=lambda context: context)
    mock_uow.auth_contexts.update = AsyncMock(side_effect=lambda context: context)
    mock_uow.sessions.create = AsyncMock(side_effect=lambda session: session)
    mock_uow.sessions.deactivate = AsyncMock(return_value=True)
    mock_uow.refresh_tokens.revoke_all_for_session = AsyncMock(return_value=0)
    mock_uow.refresh_tokens.create = AsyncMock(side_effect=lambda token: token)
    mock_uow.auth_transactions.expire_pending_by_context = AsyncMock(return_value=0)
    mock_uow.trusted_devices.get = AsyncMock(return_value=None)
    mock_uow.compliance_documents.get_applicable = AsyncMock(return_value=[])
    mock_uow.compliance_acceptances.get_by_subject_id = AsyncMock(return_value=[])
    return mock_uow


@pytest.mark.asyncio
async def test_unknown_user_is_invalid_credentials(login_uow, config, clock):
    use_case = LoginUseCase(login_uow, config=config, clock=clock)

    result = await use_case.execute(LoginCommand(username="ghost", password=PASSWORD))

    assert result.is_err()
    assert result.error.code == "INVALID_CREDENTIALS"
    login_uow.audit_events.create.assert_called_once()
    assert login_uow.audit_events.create.call_args.args[0].event_metadata["reason"] == "unknown_user"
    login_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_wrong_password_counts_failures_and_locks(login_uow, config, clock):
    """With LOGIN_MAX_FAILED_ATTEMPTS = 3 the third failure locks the account"""
    user = make_user(failed_login_count=1)
    login_uow.users.get_by_username.return_value = user
    use_case = LoginUseCase(login_uow, config=config, clock=clock)

    second = await use_case.execute(LoginCommand(username="alice", password="wrong"))
    assert second.error.code == "INVALID_CREDENTIALS"
    assert user.failed_login_count == 2
    assert user.status == UserStatus.active

    third = await use_case.execute(LoginCommand(username="alice", password="wrong"))
    assert third.error.code == "ACCOUNT_LOCKED"
    assert user.status == UserStatus.locked
    assert login_uow.audit_events.create.call_args.args[0].action == "account_locked"


@pytest.mark.asyncio
async def test_locked_account_is_refused_even_with_correct_password(login_uow, config, clock):
    login_uow.users.get_by_username.return_value = make_user(status=UserStatus.locked)
    use_case = LoginUseCase(login_uow, config=config, clock=clock)

    result = await use_case.execute(LoginCommand(username="alice", password=PASSWORD))

    assert result.error.code == "ACCOUNT_LOCKED"
    login_uow.sessions.create.assert_not_called()


@pytest.mark.asyncio
async def test_mfa_locked_only_revealed_after_correct_password(login_uow, config, clock):
    login_uow.users.get_by_username.return_value = make_user(status=UserStatus.mfa_locked)
    use_case = LoginUseCase(login_uow, config=config, clock=clock)

    wrong = await use_case.execute(LoginCommand(username="alice", password="wrong"))
    right = await use_case.execute(LoginCommand(username="alice", password=PASSWORD))

    assert wrong.error.code == "INVALID_CREDENTIALS"
    assert right.error.code == "MFA_LOCKED"


@pytest.mark.asyncio
async def test_untrusted_device_pauses_at_mfa_required(login_uow, config, clock):
    user = make_user(failed_login_count=2)
    login_uow.users.get_by_username.return_value = user
    use_case = LoginUseCase(login_uow, config=config, clock=clock)

    result = await use_case.execute(
        LoginCommand(username="alice", password=PASSWORD, app_id="ios", ip_address="10.0.0.1")
    )

    assert result.is_ok()
    response = result.value
    assert response.response_type_code == MFA_REQUIRED
    assert response.otp_methods[0].mfa_option_id == 1
    assert response.mobile_approve_status == "NOT_REGISTERED"
    assert response.access_token is None
    assert user.failed_login_count == 0

    context = login_uow.auth_contexts.create.call_args.args[0]
    assert str(context.id) == response.context_id
    assert context.status == AuthContextStatus.in_progress
    assert context.expires_at == clock.now.replace(minute=15)
    session = login_uow.sessions.create.call_args.args[0]
    assert session.context_id == context.id
    assert context.session_id == session.id
    login_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_trusted_device_skips_mfa(login_uow, config, clock):
    user = make_user()
    login_uow.users.get_by_username.return_value = user
    login_uow.trusted_devices.get.return_value = TrustedDevice(
        subject_id=user.id,
        device_fingerprint="f" * 64,
        trusted_at=clock.now,
        last_used_at=clock.now,
        expires_at=clock.now + timedelta(days=30),
    )
    login_uow.trusted_devices.update = AsyncMock(side_effect=lambda device: device)
    use_case = LoginUseCase(login_uow, config=config, clock=clock)

    result = await use_case.execute(
        LoginCommand(username="alice", password=PASSWORD, drs_action_token="device-token")
    )

    assert result.value.response_type_code == SUCCESS
    assert result.value.access_token
    assert result.value.refresh_token
    context = login_uow.auth_contexts.create.call_args.args[0]
    assert context.status == AuthContextStatus.completed
    assert context.device_trusted is True
    assert user.last_login_at == clock.now


@pytest.mark.asyncio
async def test_new_login_supersedes_previous_one(login_uow, config, clock):
    user = make_user()
    previous = AuthContext(
        subject_id=user.id,
        username="alice",
        session_id=uuid4(),
        created_at=clock.now,
        expires_at=clock.now + timedelta(minutes=15),
    )
    login_uow.users.get_by_username.return_value = user
    login_uow.auth_contexts.get_in_progress_for_subject.return_value = [previous]
    use_case = LoginUseCase(login_uow, config=config, clock=clock)

    result = await use_case.execute(LoginCommand(username="alice", password=PASSWORD))

    assert result.is_ok()
    assert previous.status == AuthContextStatus.superseded
    login_uow.auth_transactions.expire_pending_by_context.assert_called_once_with(
        previous.id, clock.now
    )
    login_uow.sessions.deactivate.assert_called_once_with(
        previous.session_id, "superseded", clock.now
    )
