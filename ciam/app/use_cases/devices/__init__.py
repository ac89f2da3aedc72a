"""
Device Trust Use Cases
"""

from .manage_devices_use_case import (
    ManageDevicesUseCase,
    RevokeDeviceResponse,
    TrustedDeviceInfo,
    TrustedDeviceListResponse,
)

__all__ = [
    "ManageDevicesUseCase",
    "RevokeDeviceResponse",
    "TrustedDeviceInfo",
    "TrustedDeviceListResponse",
]
