from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from ciam.app.services.session_registry import SessionRegistry
from ciam.domain.entities import Session


@pytest.fixture
def registry_uow(mock_uow):
    mock_uow.sessions.deactivate = AsyncMock(return_value=True)
    mock_uow.sessions.get_active_by_subject_id = AsyncMock(return_value=[])
    mock_uow.refresh_tokens.revoke_all_for_session = AsyncMock(return_value=1)
    return mock_uow


def make_session(clock, subject_id) -> Session:
    return Session(
        id=uuid4(),
        subject_id=subject_id,
        created_at=clock.now,
        last_seen_at=clock.now,
        expires_at=clock.now + timedelta(days=30),
    )


@pytest.mark.asyncio
async def test_deactivate_revokes_the_refresh_chain(registry_uow, config, clock):
    registry = SessionRegistry(registry_uow, config=config, clock=clock)
    session_id = uuid4()

    assert await registry.deactivate(session_id, "logout") is True

    registry_uow.sessions.deactivate.assert_called_once_with(session_id, "logout", clock.now)
    registry_uow.refresh_tokens.revoke_all_for_session.assert_called_once_with(
        session_id, clock.now
    )


@pytest.mark.asyncio
async def test_already_inactive_session_still_loses_its_tokens(registry_uow, config, clock):
    registry_uow.sessions.deactivate.return_value = False
    registry = SessionRegistry(registry_uow, config=config, clock=clock)
    session_id = uuid4()

    assert await registry.deactivate(session_id, "expired") is False

    registry_uow.refresh_tokens.revoke_all_for_session.assert_called_once_with(
        session_id, clock.now
    )


@pytest.mark.asyncio
async def test_deactivate_all_spares_the_current_session(registry_uow, config, clock):
    subject_id = uuid4()
    current, other = make_session(clock, subject_id), make_session(clock, subject_id)
    registry_uow.sessions.get_active_by_subject_id.return_value = [current, other]
    registry = SessionRegistry(registry_uow, config=config, clock=clock)

    count = await registry.deactivate_all_for_subject(
        subject_id, "revoked_by_user", except_session_id=current.id
    )

    assert count == 1
    registry_uow.sessions.deactivate.assert_called_once_with(
        other.id, "revoked_by_user", clock.now
    )
    registry_uow.refresh_tokens.revoke_all_for_session.assert_called_once_with(
        other.id, clock.now
    )
