"""
Compliance Tracker

Decides whether a pending legal-document acceptance blocks login
completion and records acceptances.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional
from uuid import UUID

from ciam.app.services.dtos import ComplianceRequirement
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import (
    ComplianceAcceptance,
    ComplianceDocument,
    ComplianceObligation,
)
from ciam.libs.result import Error, Result, Return


class ComplianceTracker:
    """
    Business Rules:
    - A document is pending until its current version is accepted
    - Mandatory documents are presented before optional ones
    - Accepting twice is a no-op apart from refreshing context, IP and time
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self.clock = clock

    async def check_required(
        self, subject_id: UUID, exclude_document_ids: Iterable[str] = ()
    ) -> ComplianceRequirement:
        excluded = set(exclude_document_ids)
        documents = await self.uow.compliance_documents.get_applicable(subject_id)
        acceptances = await self.uow.compliance_acceptances.get_by_subject_id(subject_id)
        accepted = {(a.document_id, a.document_version) for a in acceptances}

        pending = [
            d
            for d in documents
            if (d.document_id, d.version) not in accepted and d.document_id not in excluded
        ]
        if not pending:
            return ComplianceRequirement(required=False)

        # sorted() is stable, so publication order holds within each group
        document = sorted(pending, key=lambda d: not d.mandatory)[0]
        return ComplianceRequirement(
            required=True,
            document_id=document.document_id,
            title=document.title,
            version=document.version,
            mandatory=document.mandatory,
        )

    async def record_acceptance(
        self,
        subject_id: UUID,
        document_id: str,
        context_id: Optional[UUID] = None,
        acceptance_ip: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Result[ComplianceAcceptance]:
        document = await self.uow.compliance_documents.get_by_id(document_id)
        if document is None or not document.active:
            return Return.err(Error("DOCUMENT_NOT_FOUND", "Compliance document not found"))

        accepted_at = timestamp or self.clock()
        acceptance = await self.uow.compliance_acceptances.get(
            subject_id, document_id, document.version
        )
        if acceptance is not None:
            acceptance.context_id = context_id
            acceptance.acceptance_ip = acceptance_ip
            acceptance.accepted_at = accepted_at
            return Return.ok(await self.uow.compliance_acceptances.update(acceptance))

        acceptance = ComplianceAcceptance(
            subject_id=subject_id,
            document_id=document_id,
            document_version=document.version,
            context_id=context_id,
            acceptance_ip=acceptance_ip,
            accepted_at=accepted_at,
        )
        return Return.ok(await self.uow.compliance_acceptances.create(acceptance))

    async def get_document(self, document_id: str) -> Optional[ComplianceDocument]:
        document = await self.uow.compliance_documents.get_by_id(document_id)
        if document is None or not document.active:
            return None
        return document

    async def publish_document(
        self,
        document_id: str,
        title: str,
        content: str,
        version: str,
        mandatory: bool = True,
        applies_to_all: bool = False,
    ) -> ComplianceDocument:
        """Create a document or publish a new version of an existing one"""
        document = await self.uow.compliance_documents.get_by_id(document_id)
        if document is None:
            document = ComplianceDocument(
                document_id=document_id,
                title=title,
                content=content,
                version=version,
                mandatory=mandatory,
                applies_to_all=applies_to_all,
                created_at=self.clock(),
            )
            return await self.uow.compliance_documents.create(document)

        document.title = title
        document.content = content
        document.version = version
        document.mandatory = mandatory
        document.applies_to_all = applies_to_all
        document.active = True
        return await self.uow.compliance_documents.update(document)

    async def assign_obligation(
        self, subject_id: UUID, document_id: str
    ) -> Result[ComplianceObligation]:
        document = await self.uow.compliance_documents.get_by_id(document_id)
        if document is None:
            return Return.err(Error("DOCUMENT_NOT_FOUND", "Compliance document not found"))

        obligation = await self.uow.compliance_documents.get_obligation(subject_id, document_id)
        if obligation is not None:
            return Return.ok(obligation)

        obligation = ComplianceObligation(
            subject_id=subject_id, document_id=document_id, created_at=self.clock()
        )
        return Return.ok(await self.uow.compliance_documents.create_obligation(obligation))
