"""
CIAM Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class UserStatus(str, Enum):
    """Subject account status"""

    active = "active"
    locked = "locked"
    mfa_locked = "mfa_locked"


class MfaMethod(str, Enum):
    """Challenge delivery method"""

    sms = "sms"
    voice = "voice"
    push = "push"


class MobileApproveStatus(str, Enum):
    """Push (mobile approve) enrollment as reported to the caller"""

    NOT_REGISTERED = "NOT_REGISTERED"
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class TransactionStatus(str, Enum):
    """
    Step transaction status.

    PENDING is the only non-terminal state.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class TransactionPhase(str, Enum):
    """Which pause point of the login flow a transaction belongs to"""

    mfa = "mfa"
    esign = "esign"
    device_bind = "device_bind"


class AuthContextStatus(str, Enum):
    """Lifecycle of one login attempt"""

    in_progress = "in_progress"
    completed = "completed"
    failed = "failed"
    superseded = "superseded"
    expired = "expired"


class AuditCategory(str, Enum):
    authentication = "authentication"
    mfa = "mfa"
    token = "token"
    session = "session"
    device = "device"
    compliance = "compliance"
    admin = "admin"


class AuditSeverity(str, Enum):
    info = "info"
    warning = "warning"
    critical = "critical"
