from uuid import UUID

from fastapi import APIRouter, Depends, status

from ciam.api.error import ClientError, ServerError
from ciam.api.utils.rate_limit import rate_limited
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.app.use_cases.sessions import (
    ManageSessionsUseCase,
    RevokeOtherSessionsResponse,
    RevokeSessionResponse,
    SessionListResponse,
)
from ciam.depends import get_current_user, get_unit_of_work

router = APIRouter(
    prefix="/sessions", tags=["Sessions"], dependencies=[Depends(rate_limited("sessions"))]
)


@router.get("", status_code=status.HTTP_200_OK, response_model=SessionListResponse)
async def list_sessions(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    List Active Sessions

    Returns the caller's active sessions; the one the access token belongs
    to is flagged current.
    """
    use_case = ManageSessionsUseCase(uow)
    result = await use_case.list_sessions(UUID(current_user["sub"]), UUID(current_user["sid"]))

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.delete(
    "/{session_id}", status_code=status.HTTP_200_OK, response_model=RevokeSessionResponse
)
async def revoke_session(
    session_id: UUID,
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Revoke a Session

    Deactivates the session and revokes its refresh tokens.

    Raises:
        - 404 Not Found: session unknown or owned by another subject
    """
    use_case = ManageSessionsUseCase(uow)
    result = await use_case.revoke_session(UUID(current_user["sub"]), session_id)

    if result.is_err():
        error = result.error
        if error.code == "SESSION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.post(
    "/revoke-others",
    status_code=status.HTTP_200_OK,
    response_model=RevokeOtherSessionsResponse,
)
async def revoke_other_sessions(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Revoke every session of the caller except the current one"""
    use_case = ManageSessionsUseCase(uow)
    result = await use_case.revoke_other_sessions(
        UUID(current_user["sub"]), UUID(current_user["sid"])
    )

    if result.is_err():
        raise ServerError(result.error)

    return result.value
