"""
Session Management Use Cases
"""

from .manage_sessions_use_case import ManageSessionsUseCase
from .dtos import (
    RevokeOtherSessionsResponse,
    RevokeSessionResponse,
    SessionInfo,
    SessionListResponse,
)

__all__ = [
    "ManageSessionsUseCase",
    "RevokeOtherSessionsResponse",
    "RevokeSessionResponse",
    "SessionInfo",
    "SessionListResponse",
]
