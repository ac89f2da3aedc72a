from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.app.repositories.trusted_device_repository import ITrustedDeviceRepository
from ciam.domain.entities import TrustedDevice


class TrustedDeviceRepository(ITrustedDeviceRepository):
    """TrustedDevice repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, subject_id: UUID, device_fingerprint: str) -> Optional[TrustedDevice]:
        """Get the trust record of a (subject, fingerprint) pair"""
        stmt = (
            select(TrustedDevice)
            .where(
                TrustedDevice.subject_id == subject_id,
                TrustedDevice.device_fingerprint == device_fingerprint,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, device: TrustedDevice) -> TrustedDevice:
        """Create a new trust record"""
        self.session.add(device)
        await self.session.flush()
        await self.session.refresh(device)
        return device

    async def update(self, device: TrustedDevice) -> TrustedDevice:
        """Update existing trust record"""
        self.session.add(device)
        await self.session.flush()
        await self.session.refresh(device)
        return device

    async def get_by_subject_id(self, subject_id: UUID) -> List[TrustedDevice]:
        """Get every trust record of a subject"""
        stmt = (
            select(TrustedDevice)
            .where(TrustedDevice.subject_id == subject_id)
            .order_by(TrustedDevice.trusted_at.desc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def revoke(
        self, device_fingerprint: str, now: datetime, subject_id: Optional[UUID] = None
    ) -> int:
        """Revoke non-revoked records for a fingerprint"""
        stmt = update(TrustedDevice).where(
            TrustedDevice.device_fingerprint == device_fingerprint,
            TrustedDevice.revoked == False,  # noqa: E712
        )
        if subject_id is not None:
            stmt = stmt.where(TrustedDevice.subject_id == subject_id)
        stmt = stmt.values(revoked=True, revoked_at=now)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
