from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ciam.domain.entities import ComplianceDocument, ComplianceObligation


class IComplianceDocumentRepository(ABC):
    """ComplianceDocument repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, document_id: str) -> Optional[ComplianceDocument]:
        """Get document by ID"""
        pass

    @abstractmethod
    async def create(self, document: ComplianceDocument) -> ComplianceDocument:
        """Create a new document"""
        pass

    @abstractmethod
    async def update(self, document: ComplianceDocument) -> ComplianceDocument:
        """Update existing document"""
        pass

    @abstractmethod
    async def get_applicable(self, subject_id: UUID) -> List[ComplianceDocument]:
        """Get active documents that apply to everyone or are assigned to the subject"""
        pass

    @abstractmethod
    async def get_obligation(
        self, subject_id: UUID, document_id: str
    ) -> Optional[ComplianceObligation]:
        """Get a per-subject assignment"""
        pass

    @abstractmethod
    async def create_obligation(self, obligation: ComplianceObligation) -> ComplianceObligation:
        """Assign a document to a subject"""
        pass
