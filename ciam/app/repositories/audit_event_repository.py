from abc import ABC, abstractmethod
from typing import List
from uuid import UUID

from ciam.domain.entities import AuditEvent


class IAuditEventRepository(ABC):
    """AuditEvent repository interface - application layer"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        pass

    @abstractmethod
    async def get_by_context_id(self, context_id: UUID) -> List[AuditEvent]:
        """Get events of one login context, oldest first"""
        pass
