"""
Token Endpoint Use Cases
"""

from .token_endpoints_use_case import (
    RevokeTokenResponse,
    TokenEndpointsUseCase,
    UserInfoResponse,
)

__all__ = [
    "TokenEndpointsUseCase",
    "RevokeTokenResponse",
    "UserInfoResponse",
]
