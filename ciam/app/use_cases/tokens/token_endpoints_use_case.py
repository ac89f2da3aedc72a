"""
OAuth2-style token endpoints: introspection, revocation and userinfo.
"""

from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from pydantic import BaseModel

from config import ApplicationConfig
from ciam.app.services.dtos import IntrospectionResponse
from ciam.app.services.token_service import TokenService, hash_refresh_token
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent
from ciam.libs.result import Error, Result, Return


class UserInfoResponse(BaseModel):
    sub: str
    preferred_username: str
    email: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    roles: List[str]


class RevokeTokenResponse(BaseModel):
    revoked: bool


class TokenEndpointsUseCase:
    """
    Business Rules:
    - Introspection never fails, unknown tokens are simply inactive
    - Revocation is idempotent and reports whether this call revoked anything
      (RFC 7009 callers ignore the flag)
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

    async def introspect(self, token: str) -> Result[IntrospectionResponse]:
        async with self.uow:
            service = TokenService(self.uow, config=self.config, clock=self.clock)
            return Return.ok(await service.introspect(token))

    async def revoke(self, token: str) -> Result[RevokeTokenResponse]:
        async with self.uow:
            service = TokenService(self.uow, config=self.config, clock=self.clock)
            revoked = await service.revoke_refresh_token(token)
            if revoked:
                record = await self.uow.refresh_tokens.get_by_token_hash(hash_refresh_token(token))
                audit = AuditEvent(
                    subject_id=record.subject_id,
                    session_id=record.session_id,
                    action="refresh_token_revoked",
                    category=AuditCategory.token,
                    created_at=self.clock(),
                )
                await self.uow.audit_events.create(audit)
                await self.uow.commit()
            return Return.ok(RevokeTokenResponse(revoked=revoked))

    async def userinfo(self, subject_id: UUID) -> Result[UserInfoResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(subject_id)
            if user is None:
                return Return.err(Error("UNAUTHORIZED", "Subject no longer exists"))
            return Return.ok(
                UserInfoResponse(
                    sub=str(user.id),
                    preferred_username=user.username,
                    email=user.email,
                    given_name=user.given_name,
                    family_name=user.family_name,
                    roles=list(user.roles or []),
                )
            )
