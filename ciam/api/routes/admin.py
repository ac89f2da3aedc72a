"""
Admin API Routes

Service-to-service provisioning secured with X-Admin-API-Key.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from ciam.api.error import ClientError, ServerError
from ciam.api.utils.admin_auth import verify_admin_api_key
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.app.use_cases.admin import (
    AuditTrailResponse,
    CreateUserCommand,
    DocumentResponse,
    GetAuditTrailUseCase,
    ManageComplianceUseCase,
    ManageUsersUseCase,
    ObligationResponse,
    OtpDestination,
    PublishDocumentCommand,
    UnlockUserResponse,
    UserResponse,
)
from ciam.app.use_cases.maintenance import SweepExpiredUseCase, SweepReport
from ciam.depends import get_unit_of_work

router = APIRouter(prefix="/admin", tags=["Admin"])


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100, description="Unique username")
    password: str = Field(..., min_length=8, description="Initial password (min 8 chars)")
    email: Optional[EmailStr] = Field(None, description="Email address")
    given_name: Optional[str] = Field(None, max_length=100)
    family_name: Optional[str] = Field(None, max_length=100)
    roles: List[str] = Field(default_factory=lambda: ["customer"])
    otp_destinations: List[OtpDestination] = Field(
        default_factory=list, description="Masked OTP destinations offered at MFA"
    )
    push_enabled: bool = Field(False, description="Subject has a registered push device")


@router.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def create_user(
    request: CreateUserRequest,
    _: bool = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Create a Subject

    Raises:
        - 401 Unauthorized: missing or invalid admin key
        - 409 Conflict: username already taken
    """
    command = CreateUserCommand(**request.model_dump())

    use_case = ManageUsersUseCase(uow)
    result = await use_case.create_user(command)

    if result.is_err():
        error = result.error
        if error.code == "USERNAME_ALREADY_EXISTS":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    return result.value


@router.post(
    "/users/{user_id}/unlock",
    status_code=status.HTTP_200_OK,
    response_model=UnlockUserResponse,
)
async def unlock_user(
    user_id: UUID,
    _: bool = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Unlock a Subject

    Clears both the password lockout and the MFA lockout.
    """
    use_case = ManageUsersUseCase(uow)
    result = await use_case.unlock_user(user_id)

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


class PublishDocumentRequest(BaseModel):
    document_id: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field("", description="Document body shown to the subject")
    version: str = Field("1", min_length=1, max_length=20)
    mandatory: bool = Field(True, description="Declining ends the login")
    applies_to_all: bool = Field(False, description="Required from every subject")


@router.post(
    "/compliance/documents",
    status_code=status.HTTP_201_CREATED,
    response_model=DocumentResponse,
)
async def publish_document(
    request: PublishDocumentRequest,
    _: bool = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Publish a Compliance Document

    Publishing a new version of an existing document requires every subject
    it applies to to accept it again.
    """
    use_case = ManageComplianceUseCase(uow)
    result = await use_case.publish_document(PublishDocumentCommand(**request.model_dump()))

    if result.is_err():
        raise ServerError(result.error)

    return result.value


class AssignObligationRequest(BaseModel):
    subject_id: UUID = Field(..., description="Subject that must accept the document")
    document_id: str = Field(..., min_length=1, max_length=100)


@router.post(
    "/compliance/obligations",
    status_code=status.HTTP_201_CREATED,
    response_model=ObligationResponse,
)
async def assign_obligation(
    request: AssignObligationRequest,
    _: bool = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Require a Document from One Subject

    Raises:
        - 404 Not Found: USER_NOT_FOUND, DOCUMENT_NOT_FOUND
    """
    use_case = ManageComplianceUseCase(uow)
    result = await use_case.assign_obligation(request.subject_id, request.document_id)

    if result.is_err():
        error = result.error
        if error.code in ("USER_NOT_FOUND", "DOCUMENT_NOT_FOUND"):
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.get(
    "/contexts/{context_id}/audit-events",
    status_code=status.HTTP_200_OK,
    response_model=AuditTrailResponse,
)
async def get_audit_trail(
    context_id: UUID,
    _: bool = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Audit events of one login attempt, oldest first"""
    use_case = GetAuditTrailUseCase(uow)
    result = await use_case.execute(context_id)

    if result.is_err():
        error = result.error
        if error.code == "CONTEXT_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.post(
    "/maintenance/sweep", status_code=status.HTTP_200_OK, response_model=SweepReport
)
async def sweep_expired(
    _: bool = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Run one expiry sweep now instead of waiting for the background task"""
    use_case = SweepExpiredUseCase(uow)
    result = await use_case.execute()

    if result.is_err():
        raise ServerError(result.error)

    return result.value
