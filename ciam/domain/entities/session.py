"""
Session Entity

One authenticated device/browser context.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from ciam.domain.base import utcnow


class Session(SQLModel, table=True):
    """
    Session entity - one authenticated device context.

    Business Rules:
    - Created on the first successful credential check of a login
    - Refresh tokens reference the session by id (see RefreshToken)
    - Deactivated on logout, expiry sweep, supersession or revocation
    - Expires after 30 days
    """

    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    subject_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    context_id: Optional[UUID] = Field(default=None)
    device_id: Optional[str] = Field(default=None, max_length=128)

    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)

    active: bool = Field(default=True)
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    revocation_reason: Optional[str] = Field(default=None, max_length=100)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_seen_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_session_expires_at", "expires_at"),
        Index("idx_session_subject_active", "subject_id", "active"),
    )

    def is_usable(self, now: datetime) -> bool:
        return self.active and now < self.expires_at
