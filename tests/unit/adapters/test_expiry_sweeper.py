import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ciam.adapter.services.expiry_sweeper import ExpirySweeper
from ciam.app.use_cases.maintenance import SweepReport
from ciam.libs.result import Return

REPORT = SweepReport(sessions_expired=1, transactions_expired=2, contexts_expired=0)


@asynccontextmanager
async def fake_session():
    yield MagicMock()


def patched_use_case(execute):
    factory = MagicMock()
    factory.return_value.execute = execute
    return patch("ciam.adapter.services.expiry_sweeper.SweepExpiredUseCase", factory)


@pytest.mark.asyncio
async def test_run_once_returns_report():
    with patched_use_case(AsyncMock(return_value=Return.ok(REPORT))):
        report = await ExpirySweeper(fake_session, interval_seconds=60).run_once()

    assert report == REPORT


@pytest.mark.asyncio
async def test_sweeper_survives_failed_runs():
    done = asyncio.Event()
    calls = []

    async def execute():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("database is locked")
        if len(calls) >= 3:
            done.set()
        return Return.ok(REPORT)

    with patched_use_case(execute):
        sweeper = ExpirySweeper(fake_session, interval_seconds=0)
        sweeper.start()
        await asyncio.wait_for(done.wait(), timeout=1)
        await sweeper.stop()

    assert len(calls) >= 3
    assert sweeper._task is None


@pytest.mark.asyncio
async def test_stop_without_start_is_noop():
    sweeper = ExpirySweeper(fake_session, interval_seconds=60)

    await sweeper.stop()

    assert sweeper._task is None
