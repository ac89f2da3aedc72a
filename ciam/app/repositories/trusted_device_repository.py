from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ciam.domain.entities import TrustedDevice


class ITrustedDeviceRepository(ABC):
    """TrustedDevice repository interface - application layer"""

    @abstractmethod
    async def get(self, subject_id: UUID, device_fingerprint: str) -> Optional[TrustedDevice]:
        """Get the trust record of a (subject, fingerprint) pair"""
        pass

    @abstractmethod
    async def create(self, device: TrustedDevice) -> TrustedDevice:
        """Create a new trust record"""
        pass

    @abstractmethod
    async def update(self, device: TrustedDevice) -> TrustedDevice:
        """Update existing trust record"""
        pass

    @abstractmethod
    async def get_by_subject_id(self, subject_id: UUID) -> List[TrustedDevice]:
        """Get every trust record of a subject, including revoked and expired"""
        pass

    @abstractmethod
    async def revoke(
        self, device_fingerprint: str, now: datetime, subject_id: Optional[UUID] = None
    ) -> int:
        """Revoke non-revoked records for a fingerprint (optionally one subject's). Returns count."""
        pass
