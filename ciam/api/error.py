from typing import Dict, Optional

from fastapi import status

from ciam.libs.result import Error


class ClientError(Exception):
    def __init__(
        self,
        base_error: Error,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_error = base_error
        self.status_code = status_code
        self.headers = headers
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)


# Business error code -> HTTP status. Codes not listed here are server faults.
ERROR_STATUS = {
    # Authentication
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "ACCOUNT_LOCKED": status.HTTP_423_LOCKED,
    "MFA_LOCKED": status.HTTP_423_LOCKED,
    # Challenge
    "INVALID_MFA_CODE": status.HTTP_400_BAD_REQUEST,
    "PUSH_REJECTED": status.HTTP_400_BAD_REQUEST,
    "MFA_METHOD_NOT_AVAILABLE": status.HTTP_400_BAD_REQUEST,
    "MFA_NOT_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "DOCUMENT_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "TRANSACTION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CONTEXT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "TRANSACTION_NOT_PENDING": status.HTTP_409_CONFLICT,
    "TRANSACTION_CONFLICT": status.HTTP_409_CONFLICT,
    "CONTEXT_NOT_ACTIVE": status.HTTP_409_CONFLICT,
    "TRANSACTION_EXPIRED": status.HTTP_410_GONE,
    "CONTEXT_EXPIRED": status.HTTP_410_GONE,
    # Compliance
    "ESIGN_DECLINED": status.HTTP_403_FORBIDDEN,
    "DOCUMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    # Token / session
    "INVALID_REFRESH_TOKEN": status.HTTP_401_UNAUTHORIZED,
    "MISSING_REFRESH_TOKEN": status.HTTP_401_UNAUTHORIZED,
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "INVALID_API_KEY": status.HTTP_401_UNAUTHORIZED,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "SESSION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "DEVICE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    # Admin
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "USERNAME_ALREADY_EXISTS": status.HTTP_409_CONFLICT,
    # Validation
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    # Throttling
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
}


def http_error(error: Error) -> Exception:
    """Map a business error to the exception the app's handlers render"""
    status_code = ERROR_STATUS.get(error.code)
    if status_code is None:
        return ServerError(error)
    return ClientError(error, status_code=status_code)
