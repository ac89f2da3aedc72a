"""
Admin Use Cases

Service-to-service provisioning of subjects and compliance documents.
"""

from .manage_users_use_case import ManageUsersUseCase
from .manage_compliance_use_case import ManageComplianceUseCase
from .get_audit_trail_use_case import GetAuditTrailUseCase
from .dtos import (
    AuditTrailResponse,
    CreateUserCommand,
    DocumentResponse,
    ObligationResponse,
    OtpDestination,
    PublishDocumentCommand,
    UnlockUserResponse,
    UserResponse,
)

__all__ = [
    "ManageUsersUseCase",
    "ManageComplianceUseCase",
    "GetAuditTrailUseCase",
    "AuditTrailResponse",
    "CreateUserCommand",
    "DocumentResponse",
    "ObligationResponse",
    "OtpDestination",
    "PublishDocumentCommand",
    "UnlockUserResponse",
    "UserResponse",
]
