from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ciam.domain.entities import ComplianceAcceptance


class IComplianceAcceptanceRepository(ABC):
    """ComplianceAcceptance repository interface - application layer"""

    @abstractmethod
    async def get(
        self, subject_id: UUID, document_id: str, document_version: str
    ) -> Optional[ComplianceAcceptance]:
        """Get the acceptance of one document version by one subject"""
        pass

    @abstractmethod
    async def get_by_subject_id(self, subject_id: UUID) -> List[ComplianceAcceptance]:
        """Get every acceptance recorded for a subject"""
        pass

    @abstractmethod
    async def create(self, acceptance: ComplianceAcceptance) -> ComplianceAcceptance:
        """Create a new acceptance"""
        pass

    @abstractmethod
    async def update(self, acceptance: ComplianceAcceptance) -> ComplianceAcceptance:
        """Update existing acceptance"""
        pass
