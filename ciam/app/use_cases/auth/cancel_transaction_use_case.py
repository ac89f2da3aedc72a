"""
Cancel Transaction Use Case

Force-expires a PENDING transaction of a context, e.g. when the user backs
out of a challenge screen.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.locks import context_locks
from ciam.app.services.mfa_transaction_manager import MfaTransactionManager
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent
from ciam.libs.result import Error, Result, Return
from .dtos import CancelTransactionResponse


class CancelTransactionUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock

    async def execute(
        self, context_id: UUID, transaction_id: UUID
    ) -> Result[CancelTransactionResponse]:
        async with context_locks.hold(str(context_id)):
            async with self.uow:
                transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
                if transaction is None or transaction.context_id != context_id:
                    return Return.err(Error("TRANSACTION_NOT_FOUND", "Transaction not found"))

                manager = MfaTransactionManager(self.uow, config=self.config, clock=self.clock)
                cancelled = await manager.cancel(transaction_id)
                if cancelled.is_err():
                    return cancelled

                audit = AuditEvent(
                    subject_id=transaction.subject_id,
                    context_id=context_id,
                    action="transaction_cancelled",
                    category=AuditCategory.mfa,
                    event_metadata={
                        "transaction_id": str(transaction_id),
                        "phase": transaction.phase.value,
                    },
                    created_at=self.clock(),
                )
                await self.uow.audit_events.create(audit)
                await self.uow.commit()

                return Return.ok(
                    CancelTransactionResponse(
                        transaction_id=str(transaction_id),
                        status=cancelled.value.status.value,
                    )
                )
