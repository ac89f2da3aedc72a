"""
Decline Compliance Use Case

Declining a mandatory document fails the login; declining an optional one
skips it for the rest of this login.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.locks import context_locks
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import (
    AuditCategory,
    AuditSeverity,
    TransactionPhase,
    TransactionStatus,
)
from ciam.libs.result import Error, Result, Return
from .dtos import AuthStepResponse
from .flow import AuthFlow


class DeclineComplianceUseCase:
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
        context_id: UUID,
        transaction_id: UUID,
        document_id: str,
        reason: Optional[str] = None,
    ) -> Result[AuthStepResponse]:
        async with context_locks.hold(str(context_id)):
            async with self.uow:
                flow = AuthFlow(self.uow, config=self.config, clock=self.clock)

                loaded = await flow.load_active_context(context_id)
                if loaded.is_err():
                    return loaded
                context = loaded.value

                step = await flow.transactions.load_pending_step(
                    transaction_id, context.id, TransactionPhase.esign
                )
                if step.is_err():
                    await self.uow.commit()
                    return step
                if step.value.document_id != document_id:
                    return Return.err(
                        Error(
                            "DOCUMENT_MISMATCH",
                            "Document does not match the pending e-sign request",
                            {"expected_document_id": step.value.document_id},
                        )
                    )

                document = await self.uow.compliance_documents.get_by_id(document_id)
                if document is None:
                    return Return.err(Error("DOCUMENT_NOT_FOUND", "Compliance document not found"))

                await flow.transactions.resolve_step(
                    transaction_id, TransactionStatus.REJECTED, "declined"
                )

                if document.mandatory:
                    await flow.fail(context, "ESIGN_DECLINED")
                    await flow.audit(
                        "esign_declined",
                        AuditCategory.compliance,
                        context=context,
                        severity=AuditSeverity.warning,
                        metadata={"document_id": document_id, "mandatory": True, "reason": reason},
                    )
                    await self.uow.commit()
                    return Return.err(
                        Error(
                            "ESIGN_DECLINED",
                            "A mandatory document was declined, please sign in again",
                            {"document_id": document_id},
                        )
                    )

                context.declined_document_ids = [
                    *(context.declined_document_ids or []),
                    document_id,
                ]
                await self.uow.auth_contexts.update(context)
                await flow.audit(
                    "esign_declined",
                    AuditCategory.compliance,
                    context=context,
                    metadata={"document_id": document_id, "mandatory": False, "reason": reason},
                )

                user = await self.uow.users.get_by_id(context.subject_id)
                response = await flow.advance(context, user)
                await self.uow.commit()
                return Return.ok(response)
