"""
Respond Push Use Case

Inbound callback from the subject's mobile device approving or denying a
push challenge.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.mfa_transaction_manager import MfaTransactionManager
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent, AuditSeverity, TransactionStatus
from ciam.libs.result import Result, Return
from .dtos import PushResponseResult


class RespondPushUseCase:
    """
    Business Rules:
    - Only a PENDING, unexpired push transaction accepts an answer
    - The first answer wins; later answers get TRANSACTION_NOT_PENDING
    - A wrong number counts as a rejection
    """

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
        self,
        transaction_id: UUID,
        approved: bool,
        selected_number: Optional[int] = None,
    ) -> Result[PushResponseResult]:
        async with self.uow:
            manager = MfaTransactionManager(self.uow, config=self.config, clock=self.clock)
            responded = await manager.respond_push(transaction_id, approved, selected_number)
            if responded.is_err():
                if responded.error.code == "TRANSACTION_EXPIRED":
                    await self.uow.commit()
                return responded

            transaction = responded.value
            rejected = transaction.status == TransactionStatus.REJECTED
            audit = AuditEvent(
                subject_id=transaction.subject_id,
                context_id=transaction.context_id,
                action="mfa_push_rejected" if rejected else "mfa_push_approved",
                category=AuditCategory.mfa,
                severity=AuditSeverity.warning if rejected else AuditSeverity.info,
                event_metadata={
                    "transaction_id": str(transaction.id),
                    "response": transaction.response,
                },
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(
                PushResponseResult(
                    transaction_id=str(transaction.id),
                    status=transaction.status.value,
                )
            )
