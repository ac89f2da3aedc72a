"""
Admin Use Case DTOs

Commands and responses for the service-to-service admin surface.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class OtpDestination(BaseModel):
    mfa_option_id: int
    value: str


class CreateUserCommand(BaseModel):
    username: str
    password: str
    email: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    roles: List[str] = Field(default_factory=lambda: ["customer"])
    otp_destinations: List[OtpDestination] = Field(default_factory=list)
    push_enabled: bool = False


class UserResponse(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    status: str
    roles: List[str]
    push_enabled: bool
    otp_destinations: List[OtpDestination]
    created_at: datetime


class UnlockUserResponse(BaseModel):
    id: str
    status: str
    previous_status: str


class PublishDocumentCommand(BaseModel):
    document_id: str
    title: str
    content: str = ""
    version: str = "1"
    mandatory: bool = True
    applies_to_all: bool = False


class DocumentResponse(BaseModel):
    document_id: str
    title: str
    version: str
    mandatory: bool
    applies_to_all: bool
    active: bool


class ObligationResponse(BaseModel):
    subject_id: str
    document_id: str


class AuditEventInfo(BaseModel):
    action: str
    category: str
    severity: str
    subject_id: Optional[str] = None
    session_id: Optional[str] = None
    event_metadata: Optional[dict] = None
    created_at: datetime


class AuditTrailResponse(BaseModel):
    context_id: str
    events: List[AuditEventInfo]
