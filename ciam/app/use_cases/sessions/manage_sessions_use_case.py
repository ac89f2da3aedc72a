"""
Manage Sessions Use Case

Self-service listing and revocation of a subject's sessions.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.session_registry import SessionRegistry
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent
from ciam.libs.result import Error, Result, Return
from .dtos import (
    RevokeOtherSessionsResponse,
    RevokeSessionResponse,
    SessionInfo,
    SessionListResponse,
)


class ManageSessionsUseCase:
    """
    Business Rules:
    - Subjects only see and revoke their own sessions
    - Revoking a session revokes its refresh tokens in the same transaction
    - Revocation is audit-logged
    """

    def __init__(
        self,
        uow: UnitOfWork,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock

    async def list_sessions(
        self, subject_id: UUID, current_session_id: UUID
    ) -> Result[SessionListResponse]:
        async with self.uow:
            registry = SessionRegistry(self.uow, config=self.config, clock=self.clock)
            sessions = await registry.list_active(subject_id)
            return Return.ok(
                SessionListResponse(
                    sessions=[
                        SessionInfo(
                            session_id=str(s.id),
                            device_id=s.device_id,
                            ip_address=s.ip_address,
                            user_agent=s.user_agent,
                            created_at=s.created_at,
                            last_seen_at=s.last_seen_at,
                            expires_at=s.expires_at,
                            current=s.id == current_session_id,
                        )
                        for s in sessions
                    ]
                )
            )

    async def revoke_session(
        self, subject_id: UUID, session_id: UUID
    ) -> Result[RevokeSessionResponse]:
        """
        Revoke one session of the subject.

        Returns:
            Result with revoked flag (False if it was already inactive), or
            SESSION_NOT_FOUND for unknown or foreign sessions
        """
        async with self.uow:
            session = await self.uow.sessions.get_by_id(session_id)
            if session is None or session.subject_id != subject_id:
                return Return.err(Error("SESSION_NOT_FOUND", "Session not found"))

            registry = SessionRegistry(self.uow, config=self.config, clock=self.clock)
            revoked = await registry.deactivate(session_id, "revoked_by_user")

            audit = AuditEvent(
                subject_id=subject_id,
                session_id=session_id,
                action="revoke_session",
                category=AuditCategory.session,
                event_metadata={"revoked": revoked},
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(RevokeSessionResponse(session_id=str(session_id), revoked=revoked))

    async def revoke_other_sessions(
        self, subject_id: UUID, current_session_id: UUID
    ) -> Result[RevokeOtherSessionsResponse]:
        """Log out every other device of the subject"""
        async with self.uow:
            registry = SessionRegistry(self.uow, config=self.config, clock=self.clock)
            count = await registry.deactivate_all_for_subject(
                subject_id, "revoked_by_user", except_session_id=current_session_id
            )

            audit = AuditEvent(
                subject_id=subject_id,
                session_id=current_session_id,
                action="revoke_other_sessions",
                category=AuditCategory.session,
                event_metadata={"revoked_count": count},
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(
                RevokeOtherSessionsResponse(
                    kept_session_id=str(current_session_id), revoked_count=count
                )
            )
