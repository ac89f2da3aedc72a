"""
Use Case: Manage Compliance (admin)

Publish legal documents and assign them to individual subjects.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

from ciam.app.services.compliance_tracker import ComplianceTracker
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent
from ciam.libs.result import Error, Result, Return
from .dtos import DocumentResponse, ObligationResponse, PublishDocumentCommand


class ManageComplianceUseCase:
    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self.clock = clock

    async def publish_document(self, command: PublishDocumentCommand) -> Result[DocumentResponse]:
        """
        Publish a document. Republishing with a new version makes every
        subject accept it again on their next login.
        """
        async with self.uow:
            tracker = ComplianceTracker(self.uow, clock=self.clock)
            document = await tracker.publish_document(
                command.document_id,
                command.title,
                command.content,
                command.version,
                mandatory=command.mandatory,
                applies_to_all=command.applies_to_all,
            )

            audit = AuditEvent(
                action="document_published",
                category=AuditCategory.admin,
                event_metadata={"document_id": document.document_id, "version": document.version},
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(
                DocumentResponse(
                    document_id=document.document_id,
                    title=document.title,
                    version=document.version,
                    mandatory=document.mandatory,
                    applies_to_all=document.applies_to_all,
                    active=document.active,
                )
            )

    async def assign_obligation(
        self, subject_id: UUID, document_id: str
    ) -> Result[ObligationResponse]:
        async with self.uow:
            if await self.uow.users.get_by_id(subject_id) is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            tracker = ComplianceTracker(self.uow, clock=self.clock)
            assigned = await tracker.assign_obligation(subject_id, document_id)
            if assigned.is_err():
                return assigned

            audit = AuditEvent(
                subject_id=subject_id,
                action="obligation_assigned",
                category=AuditCategory.admin,
                event_metadata={"document_id": document_id},
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(
                ObligationResponse(subject_id=str(subject_id), document_id=document_id)
            )
