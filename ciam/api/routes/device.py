from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from ciam.api.error import http_error
from ciam.api.routes.auth import set_refresh_cookie
from ciam.app.use_cases.auth import AuthOrchestrator, AuthStepResponse
from ciam.depends import get_orchestrator

router = APIRouter(prefix="/auth/device", tags=["Device Binding"])


class BindDeviceRequest(BaseModel):
    context_id: UUID = Field(..., description="Login context id")
    transaction_id: UUID = Field(..., description="Device-bind transaction id")
    bind_device: bool = Field(..., description="Trust this device for future logins")


@router.post("/bind", status_code=status.HTTP_200_OK, response_model=AuthStepResponse)
async def bind_device(
    payload: BindDeviceRequest,
    response: Response,
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Answer the Device Binding Offer

    Either answer completes the login. bind_device=true trusts the device
    fingerprint so the next login from it skips MFA.

    Raises:
        - 404 Not Found: TRANSACTION_NOT_FOUND, CONTEXT_NOT_FOUND
        - 409 Conflict: TRANSACTION_NOT_PENDING, CONTEXT_NOT_ACTIVE
        - 410 Gone: TRANSACTION_EXPIRED, CONTEXT_EXPIRED
    """
    result = await orchestrator.bind_device(
        payload.context_id, payload.transaction_id, payload.bind_device
    )

    if result.is_err():
        raise http_error(result.error)

    set_refresh_cookie(response, result.value.refresh_token)
    return result.value
