"""
Session Registry

One record per authenticated device/browser context. Deactivating a
session always revokes its refresh token chain in the same transaction.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.token_service import TokenService
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import Session

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        uow: UnitOfWork,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock
        self.tokens = TokenService(uow, config=config, clock=clock)

    async def create(
        self,
        subject_id: UUID,
        context_id: Optional[UUID] = None,
        device_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Session:
        now = self.clock()
        session = Session(
            subject_id=subject_id,
            context_id=context_id,
            device_id=device_id,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now,
            last_seen_at=now,
            expires_at=now + timedelta(days=self.config.SESSION_TTL_DAYS),
        )
        return await self.uow.sessions.create(session)

    async def deactivate(self, session_id: UUID, reason: str) -> bool:
        """
        Deactivate a session and revoke its refresh tokens.

        Returns False when the session was already inactive; tokens are
        revoked either way.
        """
        deactivated = await self.uow.sessions.deactivate(session_id, reason, self.clock())
        await self.tokens.revoke_session(session_id)
        return deactivated

    async def deactivate_all_for_subject(
        self, subject_id: UUID, reason: str, except_session_id: Optional[UUID] = None
    ) -> int:
        sessions = await self.uow.sessions.get_active_by_subject_id(subject_id, self.clock())
        count = 0
        for session in sessions:
            if session.id == except_session_id:
                continue
            if await self.deactivate(session.id, reason):
                count += 1
        return count

    async def list_active(self, subject_id: UUID) -> List[Session]:
        return await self.uow.sessions.get_active_by_subject_id(subject_id, self.clock())

    async def sweep_expired(self) -> int:
        """Deactivate sessions past expires_at. Returns count."""
        expired = await self.uow.sessions.get_expired_active(self.clock())
        count = 0
        for session in expired:
            if await self.deactivate(session.id, "expired"):
                count += 1
        if count:
            logger.info("Deactivated %d expired sessions", count)
        return count
