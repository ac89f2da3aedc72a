from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Cookie, Depends, Request, Response, status
from pydantic import BaseModel, Field

from config import ApplicationConfig
from ciam.api.error import http_error
from ciam.api.utils.rate_limit import rate_limited
from ciam.app.use_cases.auth import (
    AuthOrchestrator,
    AuthStepResponse,
    LoginCommand,
    LogoutResponse,
    TokenRefreshResponse,
)
from ciam.depends import get_current_user, get_orchestrator

router = APIRouter(prefix="/auth", tags=["Authentication"])

REFRESH_COOKIE_PATH = "/auth"


def set_refresh_cookie(response: Response, refresh_token: Optional[str]) -> None:
    """Refresh tokens only travel as an httpOnly, SameSite=strict cookie"""
    if not refresh_token:
        return
    response.set_cookie(
        key=ApplicationConfig.REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=ApplicationConfig.REFRESH_TOKEN_TTL_DAYS * 24 * 3600,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=ApplicationConfig.REFRESH_COOKIE_SECURE,
        samesite="strict",
    )


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


class LoginRequest(BaseModel):
    """
    Login HTTP request payload

    drs_action_token is the opaque device-risk token from the client SDK;
    its hash becomes the device fingerprint.
    """

    username: str = Field(..., min_length=1, max_length=100, description="Username")
    password: str = Field(..., min_length=1, description="Password")
    app_id: Optional[str] = Field(None, max_length=50, description="Client application id")
    app_version: Optional[str] = Field(None, max_length=20, description="Client version")
    drs_action_token: Optional[str] = Field(None, description="Device risk action token")


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=AuthStepResponse,
    dependencies=[Depends(rate_limited("login"))],
)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Login

    Verifies credentials and runs the flow until the first pause point.
    response_type_code is one of SUCCESS, MFA_REQUIRED, ESIGN_REQUIRED,
    DEVICE_BIND_REQUIRED.

    Raises:
        - 401 Unauthorized: INVALID_CREDENTIALS
        - 423 Locked: ACCOUNT_LOCKED, MFA_LOCKED
    """
    command = LoginCommand(
        username=payload.username,
        password=payload.password,
        app_id=payload.app_id,
        app_version=payload.app_version,
        drs_action_token=payload.drs_action_token,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    result = await orchestrator.login(command)

    if result.is_err():
        raise http_error(result.error)

    set_refresh_cookie(response, result.value.refresh_token)
    return result.value


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=TokenRefreshResponse,
    dependencies=[Depends(rate_limited("refresh"))],
)
async def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(None, alias=ApplicationConfig.REFRESH_COOKIE_NAME),
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Refresh Tokens

    Rotates the refresh token from the cookie: the old token is revoked and
    a new one is set. Presenting a revoked token revokes the whole session.

    Raises:
        - 401 Unauthorized: MISSING_REFRESH_TOKEN, INVALID_REFRESH_TOKEN
    """
    result = await orchestrator.refresh(refresh_token)

    if result.is_err():
        raise http_error(result.error)

    set_refresh_cookie(response, result.value.refresh_token)
    return result.value


@router.post("/logout", status_code=status.HTTP_200_OK, response_model=LogoutResponse)
async def logout(
    response: Response,
    current_user: dict = Depends(get_current_user),
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Logout

    Deactivates the session named by the access token and revokes its
    refresh tokens. The access token itself stays valid until it expires.
    """
    result = await orchestrator.logout(UUID(current_user["sid"]), UUID(current_user["sub"]))

    if result.is_err():
        raise http_error(result.error)

    response.delete_cookie(ApplicationConfig.REFRESH_COOKIE_NAME, path=REFRESH_COOKIE_PATH)
    return result.value
