from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel, Field

from ciam.api.error import http_error
from ciam.api.utils.rate_limit import rate_limited
from ciam.api.routes.auth import set_refresh_cookie
from ciam.api.utils.admin_auth import verify_device_callback_key
from ciam.app.use_cases.auth import (
    AuthOrchestrator,
    AuthStepResponse,
    CancelTransactionResponse,
    MfaChallengeResponse,
    MfaStatusResponse,
    PushResponseResult,
)
from ciam.depends import get_orchestrator
from ciam.domain.entities import MfaMethod

router = APIRouter(
    prefix="/auth/mfa", tags=["MFA"], dependencies=[Depends(rate_limited("mfa"))]
)


def set_retry_after(response: Response, retry_after: Optional[int]) -> None:
    if retry_after:
        response.headers["Retry-After"] = str(retry_after)


class InitiateMfaRequest(BaseModel):
    """
    MFA initiation payload

    OTP methods (sms, voice) need the mfa_option_id of one of the
    destinations listed in the MFA_REQUIRED response.
    """

    context_id: UUID = Field(..., description="Login context id")
    method: MfaMethod = Field(..., description="sms, voice or push")
    mfa_option_id: Optional[int] = Field(None, description="OTP destination option id")


@router.post("/initiate", status_code=status.HTTP_200_OK, response_model=MfaChallengeResponse)
async def initiate_mfa(
    payload: InitiateMfaRequest,
    response: Response,
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Start an MFA Challenge

    Replaces any pending challenge of the same login context. For push the
    response carries display_number, the number the subject must pick on
    their device.

    Raises:
        - 400 Bad Request: MFA_METHOD_NOT_AVAILABLE, MFA_NOT_REQUIRED
        - 404 Not Found: CONTEXT_NOT_FOUND
        - 409 Conflict: CONTEXT_NOT_ACTIVE, TRANSACTION_CONFLICT
        - 410 Gone: CONTEXT_EXPIRED
    """
    result = await orchestrator.initiate_mfa(
        payload.context_id, payload.method, payload.mfa_option_id
    )

    if result.is_err():
        raise http_error(result.error)

    set_retry_after(response, result.value.retry_after)
    return result.value


class VerifyMfaRequest(BaseModel):
    context_id: UUID = Field(..., description="Login context id")
    transaction_id: UUID = Field(..., description="MFA transaction id")
    code: Optional[str] = Field(
        None, min_length=1, max_length=12, description="OTP code (omit for push)"
    )


@router.post("/verify", status_code=status.HTTP_200_OK, response_model=AuthStepResponse)
async def verify_mfa(
    payload: VerifyMfaRequest,
    response: Response,
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Verify an MFA Challenge

    OTP: checks the code. Push: reports the device answer, MFA_PENDING with
    a Retry-After header while the subject has not answered yet. On
    approval the flow resumes and may pause again (ESIGN_REQUIRED,
    DEVICE_BIND_REQUIRED) or complete with tokens.

    Raises:
        - 400 Bad Request: INVALID_MFA_CODE (details.attempts_remaining), PUSH_REJECTED
        - 404 Not Found: TRANSACTION_NOT_FOUND, CONTEXT_NOT_FOUND
        - 409 Conflict: TRANSACTION_NOT_PENDING, CONTEXT_NOT_ACTIVE
        - 410 Gone: TRANSACTION_EXPIRED, CONTEXT_EXPIRED
        - 423 Locked: MFA_LOCKED
    """
    result = await orchestrator.verify_mfa(
        payload.context_id, payload.transaction_id, payload.code
    )

    if result.is_err():
        raise http_error(result.error)

    set_retry_after(response, result.value.retry_after)
    set_refresh_cookie(response, result.value.refresh_token)
    return result.value


@router.get(
    "/transactions/{transaction_id}",
    status_code=status.HTTP_200_OK,
    response_model=MfaStatusResponse,
)
async def get_transaction_status(
    transaction_id: UUID,
    response: Response,
    context_id: UUID = Query(..., description="Login context the transaction belongs to"),
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Poll a Transaction

    Read-only. A pending transaction past its deadline reports EXPIRED.
    Transactions of another login context are reported as not found.
    Pending push challenges carry a Retry-After header.

    Raises:
        - 400 Bad Request: VALIDATION_ERROR (context_id missing)
        - 404 Not Found: TRANSACTION_NOT_FOUND
    """
    result = await orchestrator.mfa_status(transaction_id, context_id)

    if result.is_err():
        raise http_error(result.error)

    set_retry_after(response, result.value.retry_after)
    return result.value


class PushResponseRequest(BaseModel):
    """Answer relayed by the push gateway from the subject's device"""

    approved: bool = Field(..., description="Whether the subject approved the login")
    selected_number: Optional[int] = Field(
        None, ge=0, le=99, description="Number the subject picked on the device"
    )


@router.post(
    "/transactions/{transaction_id}/push-response",
    status_code=status.HTTP_200_OK,
    response_model=PushResponseResult,
)
async def push_response(
    transaction_id: UUID,
    payload: PushResponseRequest,
    _: bool = Depends(verify_device_callback_key),
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Push Device Callback

    Records the device answer. Approval with the wrong number is recorded
    as a rejection. Only the first answer counts.

    Requires X-Device-Callback-Key header.

    Raises:
        - 401 Unauthorized: missing or invalid callback key
        - 404 Not Found: TRANSACTION_NOT_FOUND
        - 409 Conflict: TRANSACTION_NOT_PENDING
        - 410 Gone: TRANSACTION_EXPIRED
    """
    result = await orchestrator.respond_push(
        transaction_id, payload.approved, payload.selected_number
    )

    if result.is_err():
        raise http_error(result.error)

    return result.value


class CancelTransactionRequest(BaseModel):
    context_id: UUID = Field(..., description="Login context id")


@router.post(
    "/transactions/{transaction_id}/cancel",
    status_code=status.HTTP_200_OK,
    response_model=CancelTransactionResponse,
)
async def cancel_transaction(
    transaction_id: UUID,
    payload: CancelTransactionRequest,
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Cancel a Pending Challenge

    The transaction is force-expired; the login context stays open so the
    subject can pick another method.
    """
    result = await orchestrator.cancel_transaction(payload.context_id, transaction_id)

    if result.is_err():
        raise http_error(result.error)

    return result.value
