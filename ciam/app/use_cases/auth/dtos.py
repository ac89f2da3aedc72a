"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for the login flow.
Provides type safety and clear contracts between layers.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Response type codes
# ============================================================================

SUCCESS = "SUCCESS"
MFA_REQUIRED = "MFA_REQUIRED"
MFA_PENDING = "MFA_PENDING"
ESIGN_REQUIRED = "ESIGN_REQUIRED"
DEVICE_BIND_REQUIRED = "DEVICE_BIND_REQUIRED"


# ============================================================================
# Command DTOs
# ============================================================================


class LoginCommand(BaseModel):
    """Credential check input; ip and user agent come from the HTTP layer"""

    username: str
    password: str
    app_id: Optional[str] = None
    app_version: Optional[str] = None
    drs_action_token: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


# ============================================================================
# Response DTOs
# ============================================================================


class OtpMethod(BaseModel):
    """One OTP destination offered at MFA_REQUIRED"""

    value: str
    mfa_option_id: int


class AuthStepResponse(BaseModel):
    """
    Outcome of every login-flow step.

    response_type_code tells the client what to do next; only the fields
    relevant to that code are set. The refresh token never leaves the
    server in the body, the HTTP layer moves it into a cookie.
    """

    response_type_code: str
    context_id: str
    transaction_id: Optional[str] = None
    session_id: Optional[str] = None

    # MFA_REQUIRED
    otp_methods: Optional[List[OtpMethod]] = None
    mobile_approve_status: Optional[str] = None

    # MFA_PENDING
    retry_after: Optional[int] = None
    expires_at: Optional[datetime] = None

    # ESIGN_REQUIRED
    esign_document_id: Optional[str] = None
    esign_document_title: Optional[str] = None
    esign_document_version: Optional[str] = None
    esign_mandatory: Optional[bool] = None

    # SUCCESS
    access_token: Optional[str] = None
    id_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    device_bound: Optional[bool] = None
    refresh_token: Optional[str] = Field(default=None, exclude=True)


class MfaChallengeResponse(BaseModel):
    """Response for MFA initiation"""

    context_id: str
    transaction_id: str
    method: str
    expires_at: datetime
    display_number: Optional[int] = None
    retry_after: Optional[int] = None


class MfaStatusResponse(BaseModel):
    """Response for a transaction status poll"""

    transaction_id: str
    status: str
    method: Optional[str] = None
    expires_at: datetime
    retry_after: Optional[int] = None


class PushResponseResult(BaseModel):
    """Response for the device push callback"""

    transaction_id: str
    status: str


class CancelTransactionResponse(BaseModel):
    transaction_id: str
    status: str


class TokenRefreshResponse(BaseModel):
    """Response for refresh token rotation"""

    access_token: str
    id_token: str
    token_type: str = "Bearer"
    expires_in: int
    session_id: str
    refresh_token: str = Field(exclude=True)


class LogoutResponse(BaseModel):
    session_id: str
    revoked: bool


class ComplianceDocumentResponse(BaseModel):
    document_id: str
    title: str
    content: str
    version: str
    mandatory: bool
