from uuid import UUID

from fastapi import APIRouter, Depends, status

from ciam.api.error import ClientError, ServerError
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.app.use_cases.devices import (
    ManageDevicesUseCase,
    RevokeDeviceResponse,
    TrustedDeviceListResponse,
)
from ciam.depends import get_current_user, get_unit_of_work

router = APIRouter(prefix="/devices", tags=["Trusted Devices"])


@router.get("", status_code=status.HTTP_200_OK, response_model=TrustedDeviceListResponse)
async def list_devices(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """List the caller's trusted devices that have not expired"""
    use_case = ManageDevicesUseCase(uow)
    result = await use_case.list_devices(UUID(current_user["sub"]))

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.delete(
    "/{device_fingerprint}",
    status_code=status.HTTP_200_OK,
    response_model=RevokeDeviceResponse,
)
async def revoke_device(
    device_fingerprint: str,
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Revoke Device Trust

    The next login from this device goes through MFA again.

    Raises:
        - 404 Not Found: no active trust for this fingerprint
    """
    use_case = ManageDevicesUseCase(uow)
    result = await use_case.revoke_device(UUID(current_user["sub"]), device_fingerprint)

    if result.is_err():
        error = result.error
        if error.code == "DEVICE_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value
