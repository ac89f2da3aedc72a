"""
Authentication Use Cases

All login-flow business logic, fronted by AuthOrchestrator.
"""

from .login_use_case import LoginUseCase
from .initiate_mfa_use_case import InitiateMfaUseCase
from .verify_mfa_use_case import VerifyMfaUseCase
from .mfa_status_use_case import MfaStatusUseCase
from .respond_push_use_case import RespondPushUseCase
from .bind_device_use_case import BindDeviceUseCase
from .accept_compliance_use_case import AcceptComplianceUseCase
from .decline_compliance_use_case import DeclineComplianceUseCase
from .cancel_transaction_use_case import CancelTransactionUseCase
from .get_document_use_case import GetDocumentUseCase
from .refresh_token_use_case import RefreshTokenUseCase
from .logout_use_case import LogoutUseCase
from .orchestrator import AuthOrchestrator
from .dtos import (
    DEVICE_BIND_REQUIRED,
    ESIGN_REQUIRED,
    MFA_PENDING,
    MFA_REQUIRED,
    SUCCESS,
    AuthStepResponse,
    CancelTransactionResponse,
    ComplianceDocumentResponse,
    LoginCommand,
    LogoutResponse,
    MfaChallengeResponse,
    MfaStatusResponse,
    OtpMethod,
    PushResponseResult,
    TokenRefreshResponse,
)

__all__ = [
    # Use Cases
    "LoginUseCase",
    "InitiateMfaUseCase",
    "VerifyMfaUseCase",
    "MfaStatusUseCase",
    "RespondPushUseCase",
    "BindDeviceUseCase",
    "AcceptComplianceUseCase",
    "DeclineComplianceUseCase",
    "CancelTransactionUseCase",
    "GetDocumentUseCase",
    "RefreshTokenUseCase",
    "LogoutUseCase",
    "AuthOrchestrator",
    # Response type codes
    "SUCCESS",
    "MFA_REQUIRED",
    "MFA_PENDING",
    "ESIGN_REQUIRED",
    "DEVICE_BIND_REQUIRED",
    # DTOs - Commands
    "LoginCommand",
    # DTOs - Responses
    "AuthStepResponse",
    "CancelTransactionResponse",
    "ComplianceDocumentResponse",
    "LogoutResponse",
    "MfaChallengeResponse",
    "MfaStatusResponse",
    "PushResponseResult",
    "TokenRefreshResponse",
    # DTOs - Nested Models
    "OtpMethod",
]
