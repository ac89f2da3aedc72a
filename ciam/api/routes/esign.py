from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from ciam.api.error import http_error
from ciam.api.routes.auth import client_ip, set_refresh_cookie
from ciam.app.use_cases.auth import (
    AuthOrchestrator,
    AuthStepResponse,
    ComplianceDocumentResponse,
)
from ciam.depends import get_orchestrator

router = APIRouter(prefix="/auth/esign", tags=["Compliance"])


@router.get(
    "/documents/{document_id}",
    status_code=status.HTTP_200_OK,
    response_model=ComplianceDocumentResponse,
)
async def get_document(
    document_id: str, orchestrator: AuthOrchestrator = Depends(get_orchestrator)
):
    """Fetch the document shown at ESIGN_REQUIRED"""
    result = await orchestrator.get_document(document_id)

    if result.is_err():
        raise http_error(result.error)

    return result.value


class ESignRequest(BaseModel):
    context_id: UUID = Field(..., description="Login context id")
    transaction_id: UUID = Field(..., description="E-sign transaction id")
    document_id: str = Field(..., min_length=1, max_length=100, description="Document id")


class ESignDeclineRequest(ESignRequest):
    reason: Optional[str] = Field(None, max_length=500, description="Decline reason")


@router.post("/accept", status_code=status.HTTP_200_OK, response_model=AuthStepResponse)
async def accept_document(
    payload: ESignRequest,
    request: Request,
    response: Response,
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Accept a Compliance Document

    Records acceptance of the current version (idempotent) and resumes the
    login flow, which may present the next document.

    Raises:
        - 400 Bad Request: DOCUMENT_MISMATCH
        - 404 Not Found: TRANSACTION_NOT_FOUND, CONTEXT_NOT_FOUND
        - 409 Conflict: TRANSACTION_NOT_PENDING, CONTEXT_NOT_ACTIVE
        - 410 Gone: TRANSACTION_EXPIRED, CONTEXT_EXPIRED
    """
    result = await orchestrator.accept_compliance(
        payload.context_id,
        payload.transaction_id,
        payload.document_id,
        acceptance_ip=client_ip(request),
    )

    if result.is_err():
        raise http_error(result.error)

    set_refresh_cookie(response, result.value.refresh_token)
    return result.value


@router.post("/decline", status_code=status.HTTP_200_OK, response_model=AuthStepResponse)
async def decline_document(
    payload: ESignDeclineRequest,
    response: Response,
    orchestrator: AuthOrchestrator = Depends(get_orchestrator),
):
    """
    Decline a Compliance Document

    Declining a mandatory document ends the login with ESIGN_DECLINED.
    Declining an optional one skips it for this login only.

    Raises:
        - 403 Forbidden: ESIGN_DECLINED
        - 400 Bad Request: DOCUMENT_MISMATCH
        - 404 Not Found: TRANSACTION_NOT_FOUND, CONTEXT_NOT_FOUND
        - 409 Conflict: TRANSACTION_NOT_PENDING, CONTEXT_NOT_ACTIVE
        - 410 Gone: TRANSACTION_EXPIRED, CONTEXT_EXPIRED
    """
    result = await orchestrator.decline_compliance(
        payload.context_id, payload.transaction_id, payload.document_id, payload.reason
    )

    if result.is_err():
        raise http_error(result.error)

    set_refresh_cookie(response, result.value.refresh_token)
    return result.value
