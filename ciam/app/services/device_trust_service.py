"""
Device Trust Service

A trusted (subject, device fingerprint) pair skips MFA until it expires or
is revoked. Expired records stay in place and simply read as untrusted.
"""

import hashlib
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import TrustedDevice


class DeviceTrustService:
    def __init__(
        self,
        uow: UnitOfWork,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock

    @staticmethod
    def fingerprint_from_action_token(action_token: str) -> str:
        """Derive a stable device fingerprint from the client's device-risk action token"""
        return hashlib.sha256(action_token.strip().encode()).hexdigest()

    async def is_trusted(self, subject_id: UUID, device_fingerprint: Optional[str]) -> bool:
        if not device_fingerprint:
            return False
        device = await self.uow.trusted_devices.get(subject_id, device_fingerprint)
        return device is not None and device.is_trusted(self.clock())

    async def bind(self, subject_id: UUID, device_fingerprint: str) -> TrustedDevice:
        """Trust a device, or refresh the expiry of an existing record"""
        now = self.clock()
        expires_at = now + timedelta(days=self.config.DEVICE_TRUST_DAYS)

        device = await self.uow.trusted_devices.get(subject_id, device_fingerprint)
        if device is None:
            device = TrustedDevice(
                subject_id=subject_id,
                device_fingerprint=device_fingerprint,
                trusted_at=now,
                last_used_at=now,
                expires_at=expires_at,
            )
            return await self.uow.trusted_devices.create(device)

        device.revoked = False
        device.revoked_at = None
        device.trusted_at = now
        device.last_used_at = now
        device.expires_at = expires_at
        return await self.uow.trusted_devices.update(device)

    async def mark_used(self, subject_id: UUID, device_fingerprint: str) -> None:
        device = await self.uow.trusted_devices.get(subject_id, device_fingerprint)
        if device is not None:
            device.last_used_at = self.clock()
            await self.uow.trusted_devices.update(device)

    async def revoke(self, device_fingerprint: str, subject_id: Optional[UUID] = None) -> bool:
        count = await self.uow.trusted_devices.revoke(
            device_fingerprint, self.clock(), subject_id=subject_id
        )
        return count > 0

    async def list_for_subject(self, subject_id: UUID) -> List[TrustedDevice]:
        """Currently trusted devices of a subject"""
        now = self.clock()
        devices = await self.uow.trusted_devices.get_by_subject_id(subject_id)
        return [d for d in devices if d.is_trusted(now)]
