from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.app.repositories.session_repository import ISessionRepository
from ciam.domain.entities import Session


class SessionRepository(ISessionRepository):
    """Session repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, session_id: UUID) -> Optional[Session]:
        """Get session by ID"""
        return await self.session.get(Session, session_id, populate_existing=True)

    async def create(self, session_obj: Session) -> Session:
        """Create a new session"""
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

    async def update(self, session_obj: Session) -> Session:
        """Update existing session"""
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

    async def get_active_by_subject_id(self, subject_id: UUID, now: datetime) -> List[Session]:
        """Get active, unexpired sessions of a subject, newest first"""
        stmt = (
            select(Session)
            .where(
                Session.subject_id == subject_id,
                Session.active == True,  # noqa: E712
                Session.expires_at > now,
            )
            .order_by(Session.created_at.desc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def touch(self, session_id: UUID, now: datetime) -> bool:
        """Update last_seen_at of an active session"""
        stmt = (
            update(Session)
            .where(Session.id == session_id, Session.active == True)  # noqa: E712
            .values(last_seen_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def deactivate(self, session_id: UUID, reason: str, now: datetime) -> bool:
        """Deactivate a session only if it is still active"""
        stmt = (
            update(Session)
            .where(Session.id == session_id, Session.active == True)  # noqa: E712
            .values(active=False, revoked_at=now, revocation_reason=reason)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def get_expired_active(self, now: datetime) -> List[Session]:
        """Get sessions still flagged active whose expires_at has passed"""
        stmt = select(Session).where(
            Session.active == True,  # noqa: E712
            Session.expires_at <= now,
        )
        result = await self.session.exec(stmt)
        return list(result.all())
