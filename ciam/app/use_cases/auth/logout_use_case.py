"""
Logout Use Case

Ends a session and revokes its refresh tokens. Outstanding access tokens
stay valid until they expire.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.session_registry import SessionRegistry
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent
from ciam.libs.result import Error, Result, Return
from .dtos import LogoutResponse


class LogoutUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock

    async def execute(
        self, session_id: UUID, subject_id: Optional[UUID] = None
    ) -> Result[LogoutResponse]:
        async with self.uow:
            session = await self.uow.sessions.get_by_id(session_id)
            if session is None or (subject_id is not None and session.subject_id != subject_id):
                return Return.err(Error("SESSION_NOT_FOUND", "Session not found"))

            registry = SessionRegistry(self.uow, config=self.config, clock=self.clock)
            revoked = await registry.deactivate(session_id, "logout")

            audit = AuditEvent(
                subject_id=session.subject_id,
                context_id=session.context_id,
                session_id=session_id,
                action="logout",
                category=AuditCategory.session,
                event_metadata={"was_active": revoked},
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(LogoutResponse(session_id=str(session_id), revoked=revoked))
