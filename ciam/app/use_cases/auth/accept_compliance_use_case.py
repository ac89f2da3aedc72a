"""
Accept Compliance Use Case

Records the e-signature of the document presented at ESIGN_REQUIRED and
continues the login.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.locks import context_locks
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, TransactionPhase, TransactionStatus
from ciam.libs.result import Error, Result, Return
from .dtos import AuthStepResponse
from .flow import AuthFlow


class AcceptComplianceUseCase:
    """
    Business Rules:
    - The document must be the one the step transaction was opened for
    - Acceptance is idempotent per (subject, document, version)
    - Further pending documents pause the flow again with ESIGN_REQUIRED
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
        context_id: UUID,
        transaction_id: UUID,
        document_id: str,
        acceptance_ip: Optional[str] = None,
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

                accepted = await flow.compliance.record_acceptance(
                    context.subject_id,
                    document_id,
                    context_id=context.id,
                    acceptance_ip=acceptance_ip or context.ip_address,
                )
                if accepted.is_err():
                    return accepted

                await flow.transactions.resolve_step(
                    transaction_id, TransactionStatus.APPROVED, "accepted"
                )
                await flow.audit(
                    "esign_accepted",
                    AuditCategory.compliance,
                    context=context,
                    metadata={
                        "document_id": document_id,
                        "version": accepted.value.document_version,
                    },
                )

                user = await self.uow.users.get_by_id(context.subject_id)
                response = await flow.advance(context, user)
                await self.uow.commit()
                return Return.ok(response)
