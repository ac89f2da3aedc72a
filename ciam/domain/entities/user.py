"""
User Entity

The subject that authenticates.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, JSON, SQLModel

from ciam.domain.base import utcnow
from .enums import UserStatus


class User(SQLModel, table=True):
    """
    User entity - the subject of every login flow.

    Business Rules:
    - Username must be unique
    - Password stored as bcrypt hash (cost factor 12)
    - status=locked blocks every login attempt regardless of password
    - status=mfa_locked blocks login after a correct password (support reset)
    - otp_destinations lists the OTP options offered at MFA_REQUIRED, e.g.
      {"mfa_option_id": 1, "value": "***-***-1234"}; the subject picks sms or
      voice delivery per option
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    given_name: Optional[str] = Field(default=None, max_length=100)
    family_name: Optional[str] = Field(default=None, max_length=100)
    password_hash: str = Field(max_length=60)  # Bcrypt output is 60 chars

    roles: List[str] = Field(default_factory=lambda: ["customer"], sa_column=Column(JSON))
    status: UserStatus = Field(default=UserStatus.active)
    failed_login_count: int = Field(default=0)

    # MFA enrollment
    otp_destinations: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    push_enabled: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
