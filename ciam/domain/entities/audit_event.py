"""
AuditEvent Entity

Append-only log of authentication, token, device and compliance events.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from ciam.domain.base import utcnow
from .enums import AuditCategory, AuditSeverity


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - immutable record of a state change.

    Business Rules:
    - Immutable (never updated or deleted)
    - Written in the same database transaction as the change it records
    - subject_id nullable for events about unknown usernames
    - Metadata never carries secrets (codes, tokens, passwords)
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    subject_id: Optional[UUID] = Field(default=None, index=True)
    context_id: Optional[UUID] = Field(default=None)
    session_id: Optional[UUID] = Field(default=None)

    action: str = Field(max_length=100)  # e.g., "login_success", "mfa_approved"
    category: AuditCategory = Field(default=AuditCategory.authentication)
    severity: AuditSeverity = Field(default=AuditSeverity.info)
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
        Index("idx_audit_subject_action", "subject_id", "action"),
        Index("idx_audit_context_id", "context_id"),
    )
