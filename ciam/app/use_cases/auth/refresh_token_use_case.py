"""
Refresh Token Use Case

Handles refresh token rotation for an established session.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.locks import refresh_token_locks
from ciam.app.services.token_service import TokenService, hash_refresh_token
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent, AuditSeverity
from ciam.libs.result import Error, Result, Return
from .dtos import TokenRefreshResponse


class RefreshTokenUseCase:
    """
    Use case for refreshing tokens.

    Business Rules:
    - Refresh token rotation: old token revoked, new token issued, in one
      database transaction
    - Rotations of the same token are serialized in-process; across
      processes the conditional revoke picks a single winner
    - Reuse of a revoked token revokes the whole session (committed even
      though the call fails)
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

    async def execute(self, refresh_token: Optional[str]) -> Result[TokenRefreshResponse]:
        """
        Execute refresh token use case.

        Args:
            refresh_token: The opaque refresh token from the cookie

        Returns:
            Result with TokenRefreshResponse containing new tokens, or Error
        """
        if not refresh_token:
            return Return.err(Error("MISSING_REFRESH_TOKEN", "Refresh token is required"))

        async with refresh_token_locks.hold(hash_refresh_token(refresh_token)):
            async with self.uow:
                service = TokenService(self.uow, config=self.config, clock=self.clock)
                rotated = await service.rotate(refresh_token)

                if rotated.is_err():
                    details = rotated.error.details or {}
                    if details.get("reason") == "reuse_detected":
                        audit = AuditEvent(
                            subject_id=UUID(details["subject_id"]),
                            session_id=UUID(details["session_id"]),
                            action="refresh_token_reuse",
                            category=AuditCategory.token,
                            severity=AuditSeverity.critical,
                            event_metadata={
                                "session_revoked": self.config.REVOKE_SESSION_ON_REFRESH_REUSE
                            },
                            created_at=self.clock(),
                        )
                        await self.uow.audit_events.create(audit)
                        await self.uow.commit()
                    # Only the code and message reach the client
                    return Return.err(Error(rotated.error.code, rotated.error.message))

                token_set = rotated.value
                session = await self.uow.sessions.get_by_id(UUID(token_set.session_id))
                audit = AuditEvent(
                    subject_id=session.subject_id,
                    context_id=session.context_id,
                    session_id=session.id,
                    action="token_refresh",
                    category=AuditCategory.token,
                    created_at=self.clock(),
                )
                await self.uow.audit_events.create(audit)

                await self.uow.commit()

                return Return.ok(
                    TokenRefreshResponse(
                        access_token=token_set.access_token,
                        id_token=token_set.id_token,
                        token_type=token_set.token_type,
                        expires_in=token_set.expires_in,
                        session_id=token_set.session_id,
                        refresh_token=token_set.refresh_token,
                    )
                )
