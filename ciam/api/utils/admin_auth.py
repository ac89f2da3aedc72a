"""
Service API Key Authentication

Validates the API keys of internal callers: the admin tooling and the
mobile push gateway that relays device answers.
"""

from fastapi import Header, status

from config import ApplicationConfig
from ciam.api.error import ClientError
from ciam.libs.result import Error


def _check_key(presented: str, expected: str, label: str) -> bool:
    if not presented:
        raise ClientError(
            Error("UNAUTHORIZED", f"{label} API key required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    if presented != expected:
        raise ClientError(
            Error("INVALID_API_KEY", f"Invalid {label.lower()} API key"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return True


async def verify_admin_api_key(x_admin_api_key: str = Header(None)):
    """
    Verify admin API key from X-Admin-API-Key header.

    Service-to-service auth for provisioning, distinct from subject JWTs.

    Raises:
        ClientError: 401 if key is missing or invalid
    """
    return _check_key(x_admin_api_key, ApplicationConfig.ADMIN_API_KEY, "Admin")


async def verify_device_callback_key(x_device_callback_key: str = Header(None)):
    """
    Verify the push gateway key from X-Device-Callback-Key header.

    Raises:
        ClientError: 401 if key is missing or invalid
    """
    return _check_key(
        x_device_callback_key, ApplicationConfig.DEVICE_CALLBACK_API_KEY, "Device callback"
    )
