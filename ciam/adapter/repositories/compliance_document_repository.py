from typing import List, Optional
from uuid import UUID

from sqlmodel import or_, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.app.repositories.compliance_document_repository import IComplianceDocumentRepository
from ciam.domain.entities import ComplianceDocument, ComplianceObligation


class ComplianceDocumentRepository(IComplianceDocumentRepository):
    """ComplianceDocument repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, document_id: str) -> Optional[ComplianceDocument]:
        """Get document by ID"""
        stmt = select(ComplianceDocument).where(ComplianceDocument.document_id == document_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, document: ComplianceDocument) -> ComplianceDocument:
        """Create a new document"""
        self.session.add(document)
        await self.session.flush()
        await self.session.refresh(document)
        return document

    async def update(self, document: ComplianceDocument) -> ComplianceDocument:
        """Update existing document"""
        self.session.add(document)
        await self.session.flush()
        await self.session.refresh(document)
        return document

    async def get_applicable(self, subject_id: UUID) -> List[ComplianceDocument]:
        """Get active documents that apply to everyone or are assigned to the subject"""
        assigned = select(ComplianceObligation.document_id).where(
            ComplianceObligation.subject_id == subject_id
        )
        stmt = (
            select(ComplianceDocument)
            .where(
                ComplianceDocument.active == True,  # noqa: E712
                or_(
                    ComplianceDocument.applies_to_all == True,  # noqa: E712
                    ComplianceDocument.document_id.in_(assigned),
                ),
            )
            .order_by(ComplianceDocument.created_at)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def get_obligation(
        self, subject_id: UUID, document_id: str
    ) -> Optional[ComplianceObligation]:
        """Get a per-subject assignment"""
        stmt = select(ComplianceObligation).where(
            ComplianceObligation.subject_id == subject_id,
            ComplianceObligation.document_id == document_id,
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create_obligation(self, obligation: ComplianceObligation) -> ComplianceObligation:
        """Assign a document to a subject"""
        self.session.add(obligation)
        await self.session.flush()
        await self.session.refresh(obligation)
        return obligation
