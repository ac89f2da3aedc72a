from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from config import ApplicationConfig


class FixedClock:
    """Injectable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def config():
    class TestConfig(ApplicationConfig):
        LOGIN_MAX_FAILED_ATTEMPTS = 3
        MFA_MAX_OTP_ATTEMPTS = 3

    return TestConfig


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    # Tests set the AsyncMock repository methods they expect to be awaited
    for name in (
        "users",
        "auth_contexts",
        "auth_transactions",
        "sessions",
        "refresh_tokens",
        "trusted_devices",
        "compliance_documents",
        "compliance_acceptances",
        "audit_events",
    ):
        repository = MagicMock()
        setattr(uow, name, repository)

    uow.audit_events.create = AsyncMock(side_effect=lambda event: event)
    return uow
