"""
Use Case: Get Audit Trail (admin)

Every audit event recorded for one login context, oldest first.
"""

from uuid import UUID

from ciam.app.services.unit_of_work import UnitOfWork
from ciam.libs.result import Error, Result, Return
from .dtos import AuditEventInfo, AuditTrailResponse


class GetAuditTrailUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, context_id: UUID) -> Result[AuditTrailResponse]:
        async with self.uow:
            context = await self.uow.auth_contexts.get_by_id(context_id)
            if context is None:
                return Return.err(Error("CONTEXT_NOT_FOUND", "Login context not found"))

            events = await self.uow.audit_events.get_by_context_id(context_id)
            return Return.ok(
                AuditTrailResponse(
                    context_id=str(context_id),
                    events=[
                        AuditEventInfo(
                            action=e.action,
                            category=e.category.value,
                            severity=e.severity.value,
                            subject_id=str(e.subject_id) if e.subject_id else None,
                            session_id=str(e.session_id) if e.session_id else None,
                            event_metadata=e.event_metadata,
                            created_at=e.created_at,
                        )
                        for e in events
                    ],
                )
            )
