"""
Sweep Expired Use Case

Periodic cleanup run by the background sweeper:
- sessions past expires_at are deactivated and their token chains revoked
- PENDING transactions past expires_at become EXPIRED
- in-progress login contexts past expires_at become expired, closing the
  session opened at their password step
"""

import logging
from datetime import datetime
from typing import Callable

from pydantic import BaseModel

from config import ApplicationConfig
from ciam.app.services.mfa_transaction_manager import MfaTransactionManager
from ciam.app.services.session_registry import SessionRegistry
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.libs.result import Result, Return

logger = logging.getLogger(__name__)


class SweepReport(BaseModel):
    sessions_expired: int
    transactions_expired: int
    contexts_expired: int


class SweepExpiredUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock

    async def execute(self) -> Result[SweepReport]:
        async with self.uow:
            registry = SessionRegistry(self.uow, config=self.config, clock=self.clock)
            manager = MfaTransactionManager(self.uow, config=self.config, clock=self.clock)

            sessions_expired = await registry.sweep_expired()
            transactions_expired = await manager.sweep_expired()
            contexts_expired = await self._expire_contexts(registry)

            await self.uow.commit()

            report = SweepReport(
                sessions_expired=sessions_expired,
                transactions_expired=transactions_expired,
                contexts_expired=contexts_expired,
            )
            if sessions_expired or transactions_expired or contexts_expired:
                logger.info("Expiry sweep: %s", report.model_dump())
            return Return.ok(report)

    async def _expire_contexts(self, registry: SessionRegistry) -> int:
        """Expire abandoned logins and close the sessions opened for them"""
        count = 0
        for context in await self.uow.auth_contexts.get_overdue(self.clock()):
            if not await self.uow.auth_contexts.expire_if_in_progress(context.id, self.clock()):
                continue
            if context.session_id:
                await registry.deactivate(context.session_id, "context_expired")
            count += 1
        return count
