"""
AuthContext Entity

One login attempt, from credential check to token issuance.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from ciam.domain.base import utcnow
from .enums import AuthContextStatus


class AuthContext(SQLModel, table=True):
    """
    AuthContext entity - the persisted state of a login flow.

    Every orchestrator call after login names the context id; the flags below
    are the only state carried between those calls.

    Business Rules:
    - A new login for the same subject supersedes any in-progress context
    - Expires after 15 minutes if never completed
    - Terminal once completed, failed, superseded or expired
    """

    __tablename__ = "auth_contexts"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    subject_id: UUID = Field(foreign_key="users.id", nullable=False)
    username: str = Field(max_length=100)
    app_id: Optional[str] = Field(default=None, max_length=50)
    app_version: Optional[str] = Field(default=None, max_length=20)

    # Device signal
    device_fingerprint: Optional[str] = Field(default=None, max_length=128)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)

    session_id: Optional[UUID] = Field(default=None)
    status: AuthContextStatus = Field(default=AuthContextStatus.in_progress)

    # Step progress
    device_trusted: bool = Field(default=False)
    mfa_verified: bool = Field(default=False)
    device_bind_resolved: bool = Field(default=False)
    device_bound: bool = Field(default=False)
    declined_document_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    auth_outcome: Optional[str] = Field(default=None, max_length=50)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_auth_context_subject_status", "subject_id", "status"),
        Index("idx_auth_context_expires_at", "expires_at"),
    )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
