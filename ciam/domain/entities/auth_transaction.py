"""
AuthTransaction Entity

One challenge/response instance within a login context (MFA challenge,
e-sign request or device-bind offer). Not a database transaction.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from ciam.domain.base import utcnow
from .enums import MfaMethod, TransactionPhase, TransactionStatus


class AuthTransaction(SQLModel, table=True):
    """
    AuthTransaction entity - a time-bounded step of a login flow.

    Business Rules:
    - At most one PENDING transaction per context_id (partial unique index)
    - PENDING -> APPROVED | REJECTED | EXPIRED; terminal states never change
    - OTP codes are stored as SHA-256 hashes, never in plain text
    - A transaction read at or after expires_at is EXPIRED
    """

    __tablename__ = "auth_transactions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    context_id: UUID = Field(foreign_key="auth_contexts.id", nullable=False)
    subject_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)

    phase: TransactionPhase = Field(default=TransactionPhase.mfa)
    status: TransactionStatus = Field(default=TransactionStatus.PENDING)

    # MFA phase
    method: Optional[MfaMethod] = Field(default=None)
    mfa_option_id: Optional[int] = Field(default=None)
    challenge_hash: Optional[str] = Field(default=None, max_length=64)  # SHA-256 output
    display_number: Optional[int] = Field(default=None)
    attempt_count: int = Field(default=0)

    # E-sign phase
    document_id: Optional[str] = Field(default=None, max_length=100)

    # Submitted code digest, selected number, or step decision
    response: Optional[str] = Field(default=None, max_length=100)
    transaction_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))
    resolved_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_auth_txn_context_id", "context_id"),
        Index("idx_auth_txn_status_expires", "status", "expires_at"),
        Index(
            "uq_auth_txn_one_pending_per_context",
            "context_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
