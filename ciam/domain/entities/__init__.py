"""
CIAM Domain Entities

All domain entities organized by model.
Each entity in its own file, compliance tables grouped together.
"""

# Export all enums
from .enums import (
    AuditCategory,
    AuditSeverity,
    AuthContextStatus,
    MfaMethod,
    MobileApproveStatus,
    TransactionPhase,
    TransactionStatus,
    UserStatus,
)

# Export all entities
from .user import User
from .auth_context import AuthContext
from .session import Session
from .refresh_token import RefreshToken
from .auth_transaction import AuthTransaction
from .trusted_device import TrustedDevice
from .compliance import ComplianceAcceptance, ComplianceDocument, ComplianceObligation
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "AuditCategory",
    "AuditSeverity",
    "AuthContextStatus",
    "MfaMethod",
    "MobileApproveStatus",
    "TransactionPhase",
    "TransactionStatus",
    "UserStatus",
    # Entities
    "User",
    "AuthContext",
    "Session",
    "RefreshToken",
    "AuthTransaction",
    "TrustedDevice",
    "ComplianceDocument",
    "ComplianceObligation",
    "ComplianceAcceptance",
    "AuditEvent",
]
