"""
TrustedDevice Entity

A (subject, device fingerprint) pair exempt from MFA until expiry.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel, UniqueConstraint

from ciam.domain.base import utcnow


class TrustedDevice(SQLModel, table=True):
    """
    TrustedDevice entity - standing MFA exemption for a device.

    Business Rules:
    - One row per (subject_id, device_fingerprint); re-binding refreshes it
    - Expired rows are kept and read as untrusted
    - Revocation is a flag, the row is kept for audit
    """

    __tablename__ = "trusted_devices"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    subject_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    device_fingerprint: str = Field(max_length=128, index=True)

    revoked: bool = Field(default=False)
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Timestamps
    trusted_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_used_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))

    __table_args__ = (
        UniqueConstraint("subject_id", "device_fingerprint", name="uq_trusted_device_subject_fp"),
        Index("idx_trusted_device_expires_at", "expires_at"),
    )

    def is_trusted(self, now: datetime) -> bool:
        return not self.revoked and now < self.expires_at
