"""
Manage Devices Use Case

Lists and revokes the trusted devices of a subject.
"""

from datetime import datetime
from typing import Callable, List
from uuid import UUID

from pydantic import BaseModel

from config import ApplicationConfig
from ciam.app.services.device_trust_service import DeviceTrustService
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent
from ciam.libs.result import Error, Result, Return


class TrustedDeviceInfo(BaseModel):
    device_fingerprint: str
    trusted_at: datetime
    last_used_at: datetime
    expires_at: datetime


class TrustedDeviceListResponse(BaseModel):
    devices: List[TrustedDeviceInfo]


class RevokeDeviceResponse(BaseModel):
    device_fingerprint: str
    revoked: bool


class ManageDevicesUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock

    async def list_devices(self, subject_id: UUID) -> Result[TrustedDeviceListResponse]:
        async with self.uow:
            service = DeviceTrustService(self.uow, config=self.config, clock=self.clock)
            devices = await service.list_for_subject(subject_id)
            return Return.ok(
                TrustedDeviceListResponse(
                    devices=[
                        TrustedDeviceInfo(
                            device_fingerprint=d.device_fingerprint,
                            trusted_at=d.trusted_at,
                            last_used_at=d.last_used_at,
                            expires_at=d.expires_at,
                        )
                        for d in devices
                    ]
                )
            )

    async def revoke_device(
        self, subject_id: UUID, device_fingerprint: str
    ) -> Result[RevokeDeviceResponse]:
        """The next login from a revoked device goes through MFA again"""
        async with self.uow:
            service = DeviceTrustService(self.uow, config=self.config, clock=self.clock)
            if not await service.revoke(device_fingerprint, subject_id=subject_id):
                return Return.err(Error("DEVICE_NOT_FOUND", "Trusted device not found"))

            audit = AuditEvent(
                subject_id=subject_id,
                action="device_revoked",
                category=AuditCategory.device,
                event_metadata={"device_fingerprint": device_fingerprint},
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(
                RevokeDeviceResponse(device_fingerprint=device_fingerprint, revoked=True)
            )
