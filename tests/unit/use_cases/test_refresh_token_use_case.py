from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from ciam.app.services.token_service import hash_refresh_token
from ciam.app.use_cases.auth import RefreshTokenUseCase
from ciam.domain.entities import RefreshToken, Session, User

TOKEN = "opaque-refresh-token"


@pytest.fixture
def subject():
    return User(id=uuid4(), username="alice", password_hash="x" * 60, roles=["customer"])


@pytest.fixture
def session(subject, clock):
    return Session(
        id=uuid4(),
        subject_id=subject.id,
        context_id=uuid4(),
        created_at=clock.now,
        last_seen_at=clock.now,
        expires_at=clock.now + timedelta(days=30),
    )


def make_record(session, clock, **fields) -> RefreshToken:
    defaults = dict(
        id=uuid4(),
        session_id=session.id,
        subject_id=session.subject_id,
        token_hash=hash_refresh_token(TOKEN),
        created_at=clock.now - timedelta(hours=1),
        expires_at=clock.now + timedelta(days=14),
    )
    defaults.update(fields)
    return RefreshToken(**defaults)


@pytest.fixture
def refresh_uow(mock_uow, subject, session):
    mock_uow.refresh_tokens.get_by_token_hash = AsyncMock(return_value=None)
    mock_uow.refresh_tokens.revoke_if_active = AsyncMock(return_value=True)
    mock_uow.refresh_tokens.revoke_all_for_session = AsyncMock(return_value=0)
    mock_uow.refresh_tokens.create = AsyncMock(side_effect=lambda token: token)
    mock_uow.refresh_tokens.get_child = AsyncMock(return_value=None)
    mock_uow.sessions.get_by_id = AsyncMock(return_value=session)
    mock_uow.sessions.touch = AsyncMock(return_value=True)
    mock_uow.sessions.deactivate = AsyncMock(return_value=True)
    mock_uow.users.get_by_id = AsyncMock(return_value=subject)
    return mock_uow


@pytest.mark.asyncio
async def test_missing_token(refresh_uow, config, clock):
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(None)

    assert result.error.code == "MISSING_REFRESH_TOKEN"
    refresh_uow.__aenter__.assert_not_called()


@pytest.mark.asyncio
async def test_rotation_issues_child_token(refresh_uow, session, config, clock):
    record = make_record(session, clock)
    refresh_uow.refresh_tokens.get_by_token_hash.return_value = record
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(TOKEN)

    assert result.is_ok()
    assert result.value.session_id == str(session.id)
    assert result.value.refresh_token != TOKEN
    refresh_uow.refresh_tokens.revoke_if_active.assert_called_once_with(record.id, clock.now)
    child = refresh_uow.refresh_tokens.create.call_args.args[0]
    assert child.parent_token_id == record.id
    assert child.token_hash == hash_refresh_token(result.value.refresh_token)
    assert child.expires_at == clock.now + timedelta(days=14)
    assert refresh_uow.audit_events.create.call_args.args[0].action == "token_refresh"
    refresh_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_reuse_revokes_session_and_hides_details(refresh_uow, session, config, clock):
    """
    A revoked token presented again revokes the session chain. The audit
    event is committed although the call fails, and the client sees only
    the generic error.
    """
    refresh_uow.refresh_tokens.get_by_token_hash.return_value = make_record(
        session, clock, revoked=True, revoked_at=clock.now - timedelta(days=1)
    )
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(TOKEN)

    assert result.error.code == "INVALID_REFRESH_TOKEN"
    assert result.error.details is None
    refresh_uow.refresh_tokens.revoke_all_for_session.assert_called_once_with(
        session.id, clock.now
    )
    refresh_uow.sessions.deactivate.assert_called_once_with(
        session.id, "refresh_token_reuse", clock.now
    )
    audit = refresh_uow.audit_events.create.call_args.args[0]
    assert audit.action == "refresh_token_reuse"
    assert audit.severity.value == "critical"
    refresh_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_expires_exactly_at_deadline(refresh_uow, session, config, clock):
    refresh_uow.refresh_tokens.get_by_token_hash.return_value = make_record(
        session, clock, expires_at=clock.now
    )
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(TOKEN)

    assert result.error.code == "INVALID_REFRESH_TOKEN"
    refresh_uow.refresh_tokens.revoke_if_active.assert_not_called()
    refresh_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_inactive_session_cannot_refresh(refresh_uow, session, config, clock):
    session.active = False
    refresh_uow.refresh_tokens.get_by_token_hash.return_value = make_record(session, clock)
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(TOKEN)

    assert result.error.code == "INVALID_REFRESH_TOKEN"
    refresh_uow.refresh_tokens.create.assert_not_called()


@pytest.mark.asyncio
async def test_losing_the_rotation_race(refresh_uow, session, config, clock):
    refresh_uow.refresh_tokens.get_by_token_hash.return_value = make_record(session, clock)
    refresh_uow.refresh_tokens.revoke_if_active.return_value = False
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(TOKEN)

    assert result.error.code == "INVALID_REFRESH_TOKEN"
    refresh_uow.refresh_tokens.create.assert_not_called()
    refresh_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_duplicate_of_a_fresh_rotation_keeps_the_session(
    refresh_uow, session, config, clock
):
    """
    The same token arriving again right after it was rotated is a lost race
    (two tabs refreshing together), not theft: the winner's token survives.
    """
    record = make_record(
        session, clock, revoked=True, revoked_at=clock.now - timedelta(seconds=2)
    )
    refresh_uow.refresh_tokens.get_by_token_hash.return_value = record
    refresh_uow.refresh_tokens.get_child.return_value = make_record(
        session, clock, token_hash="child", parent_token_id=record.id
    )
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(TOKEN)

    assert result.error.code == "INVALID_REFRESH_TOKEN"
    refresh_uow.refresh_tokens.get_child.assert_called_once_with(record.id)
    refresh_uow.refresh_tokens.revoke_all_for_session.assert_not_called()
    refresh_uow.sessions.deactivate.assert_not_called()
    refresh_uow.audit_events.create.assert_not_called()
    refresh_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_rotated_token_replayed_after_grace_is_reuse(refresh_uow, session, config, clock):
    grace = config.REFRESH_REUSE_GRACE_SECONDS
    record = make_record(
        session, clock, revoked=True, revoked_at=clock.now - timedelta(seconds=grace + 1)
    )
    refresh_uow.refresh_tokens.get_by_token_hash.return_value = record
    refresh_uow.refresh_tokens.get_child.return_value = make_record(
        session, clock, token_hash="child", parent_token_id=record.id
    )
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(TOKEN)

    assert result.error.code == "INVALID_REFRESH_TOKEN"
    refresh_uow.refresh_tokens.revoke_all_for_session.assert_called_once_with(
        session.id, clock.now
    )
    refresh_uow.sessions.deactivate.assert_called_once_with(
        session.id, "refresh_token_reuse", clock.now
    )


@pytest.mark.asyncio
async def test_revoked_without_rotation_is_reuse_even_within_grace(
    refresh_uow, session, config, clock
):
    """A token revoked by logout has no child, so a quick replay is still reuse"""
    refresh_uow.refresh_tokens.get_by_token_hash.return_value = make_record(
        session, clock, revoked=True, revoked_at=clock.now
    )
    use_case = RefreshTokenUseCase(refresh_uow, config=config, clock=clock)

    result = await use_case.execute(TOKEN)

    assert result.error.code == "INVALID_REFRESH_TOKEN"
    refresh_uow.sessions.deactivate.assert_called_once()
