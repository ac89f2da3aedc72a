from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ciam.api.error import ClientError, ServerError
from ciam.app.services.dtos import IntrospectionResponse
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.app.use_cases.tokens import (
    RevokeTokenResponse,
    TokenEndpointsUseCase,
    UserInfoResponse,
)
from ciam.depends import get_current_user, get_unit_of_work

router = APIRouter(prefix="/oauth2", tags=["OAuth2"])


class TokenRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Access or refresh token")


@router.post(
    "/introspect",
    status_code=status.HTTP_200_OK,
    response_model=IntrospectionResponse,
    response_model_exclude_none=True,
)
async def introspect(request: TokenRequest, uow: UnitOfWork = Depends(get_unit_of_work)):
    """
    Token Introspection

    Accepts access tokens (JWT) and refresh tokens. Unknown, expired and
    revoked tokens answer {"active": false}.
    """
    use_case = TokenEndpointsUseCase(uow)
    result = await use_case.introspect(request.token)

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.post("/revoke", status_code=status.HTTP_200_OK, response_model=RevokeTokenResponse)
async def revoke(request: TokenRequest, uow: UnitOfWork = Depends(get_unit_of_work)):
    """
    Token Revocation

    Revokes a refresh token. Always 200, also for unknown tokens.
    """
    use_case = TokenEndpointsUseCase(uow)
    result = await use_case.revoke(request.token)

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.get("/userinfo", status_code=status.HTTP_200_OK, response_model=UserInfoResponse)
async def userinfo(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Profile claims of the subject the bearer token was issued to"""
    use_case = TokenEndpointsUseCase(uow)
    result = await use_case.userinfo(UUID(current_user["sub"]))

    if result.is_err():
        error = result.error
        if error.code == "UNAUTHORIZED":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        raise ServerError(error)

    return result.value
