from fastapi import APIRouter, status

from ciam.app.services.token_service import TokenService

router = APIRouter(prefix="/.well-known", tags=["Discovery"])


@router.get("/openid-configuration", status_code=status.HTTP_200_OK)
async def openid_configuration():
    return TokenService(None).openid_configuration()


@router.get("/jwks.json", status_code=status.HTTP_200_OK)
async def jwks():
    """Public keys for verifying issued tokens (empty with symmetric signing)"""
    return TokenService(None).jwks()
