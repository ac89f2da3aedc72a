"""
RefreshToken Entity

Persisted record of an opaque refresh token.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from ciam.domain.base import utcnow


class RefreshToken(SQLModel, table=True):
    """
    RefreshToken entity - one row per issued refresh token.

    Business Rules:
    - Only the SHA-256 hash of the token is stored
    - Rotates on every refresh: the old row is revoked, a child row created
    - At most one active (non-revoked, non-expired) row per session
    - Presenting a revoked token is treated as reuse (possible theft)
    - Expires after 14 days
    """

    __tablename__ = "refresh_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    session_id: UUID = Field(foreign_key="sessions.id", nullable=False, index=True)
    subject_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    parent_token_id: Optional[UUID] = Field(default=None)

    token_hash: str = Field(unique=True, index=True, max_length=64)  # SHA-256 output
    revoked: bool = Field(default=False)
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_refresh_token_expires_at", "expires_at"),
        Index("idx_refresh_token_session_revoked", "session_id", "revoked"),
    )

    def is_active(self, now: datetime) -> bool:
        return not self.revoked and now < self.expires_at
