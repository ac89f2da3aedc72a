from typing import List, Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.app.repositories.compliance_acceptance_repository import (
    IComplianceAcceptanceRepository,
)
from ciam.domain.entities import ComplianceAcceptance


class ComplianceAcceptanceRepository(IComplianceAcceptanceRepository):
    """ComplianceAcceptance repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(
        self, subject_id: UUID, document_id: str, document_version: str
    ) -> Optional[ComplianceAcceptance]:
        stmt = select(ComplianceAcceptance).where(
            ComplianceAcceptance.subject_id == subject_id,
            ComplianceAcceptance.document_id == document_id,
            ComplianceAcceptance.document_version == document_version,
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_subject_id(self, subject_id: UUID) -> List[ComplianceAcceptance]:
        stmt = select(ComplianceAcceptance).where(ComplianceAcceptance.subject_id == subject_id)
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, acceptance: ComplianceAcceptance) -> ComplianceAcceptance:
        self.session.add(acceptance)
        await self.session.flush()
        await self.session.refresh(acceptance)
        return acceptance

    async def update(self, acceptance: ComplianceAcceptance) -> ComplianceAcceptance:
        self.session.add(acceptance)
        await self.session.flush()
        await self.session.refresh(acceptance)
        return acceptance
