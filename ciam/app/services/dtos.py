"""
Service DTOs

Values handed from the services up to the use cases.
"""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ciam.domain.entities import User


class SubjectClaims(BaseModel):
    """Identity claims embedded in issued tokens"""

    subject_id: UUID
    username: str
    roles: List[str] = Field(default_factory=list)
    email: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "SubjectClaims":
        return cls(
            subject_id=user.id,
            username=user.username,
            roles=list(user.roles or []),
            email=user.email,
            given_name=user.given_name,
            family_name=user.family_name,
        )


class TokenSet(BaseModel):
    """Access, identity and refresh tokens bound to one session"""

    access_token: str
    id_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    session_id: str


class IntrospectionResponse(BaseModel):
    """RFC 7662 style introspection result; only `active` is set for dead tokens"""

    active: bool
    sub: Optional[str] = None
    sid: Optional[str] = None
    token_type: Optional[str] = None
    token_use: Optional[str] = None
    aud: Optional[str] = None
    iss: Optional[str] = None
    exp: Optional[int] = None
    iat: Optional[int] = None
    roles: Optional[List[str]] = None
    username: Optional[str] = None


class ComplianceRequirement(BaseModel):
    """Next document blocking login completion, if any"""

    required: bool
    document_id: Optional[str] = None
    title: Optional[str] = None
    version: Optional[str] = None
    mandatory: bool = False
