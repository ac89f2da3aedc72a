from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.app.repositories.auth_context_repository import IAuthContextRepository
from ciam.domain.entities import AuthContext, AuthContextStatus


class AuthContextRepository(IAuthContextRepository):
    """AuthContext repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, context_id: UUID) -> Optional[AuthContext]:
        return await self.session.get(AuthContext, context_id, populate_existing=True)

    async def create(self, context: AuthContext) -> AuthContext:
        self.session.add(context)
        await self.session.flush()
        await self.session.refresh(context)
        return context

    async def update(self, context: AuthContext) -> AuthContext:
        self.session.add(context)
        await self.session.flush()
        await self.session.refresh(context)
        return context

    async def get_in_progress_for_subject(self, subject_id: UUID) -> List[AuthContext]:
        stmt = select(AuthContext).where(
            AuthContext.subject_id == subject_id,
            AuthContext.status == AuthContextStatus.in_progress,
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def get_overdue(self, now: datetime) -> List[AuthContext]:
        stmt = select(AuthContext).where(
            AuthContext.status == AuthContextStatus.in_progress,
            AuthContext.expires_at <= now,
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def expire_if_in_progress(self, context_id: UUID, now: datetime) -> bool:
        stmt = (
            update(AuthContext)
            .where(
                AuthContext.id == context_id,
                AuthContext.status == AuthContextStatus.in_progress,
            )
            .values(status=AuthContextStatus.expired, auth_outcome="EXPIRED", completed_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0
