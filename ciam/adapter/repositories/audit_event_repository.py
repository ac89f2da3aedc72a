from typing import List
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.app.repositories.audit_event_repository import IAuditEventRepository
from ciam.domain.entities import AuditEvent


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        self.session.add(audit_event)
        await self.session.flush()
        await self.session.refresh(audit_event)
        return audit_event

    async def get_by_context_id(self, context_id: UUID) -> List[AuditEvent]:
        """Get events of one login context, oldest first"""
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.context_id == context_id)
            .order_by(AuditEvent.created_at)
        )
        result = await self.session.exec(stmt)
        return list(result.all())
