from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from ciam.domain.entities import RefreshToken


class IRefreshTokenRepository(ABC):
    """RefreshToken repository interface - application layer"""

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[RefreshToken]:
        """Get refresh token record by SHA-256 hash"""
        pass

    @abstractmethod
    async def create(self, token: RefreshToken) -> RefreshToken:
        """Create a new refresh token record"""
        pass

    @abstractmethod
    async def revoke_if_active(self, token_id: UUID, now: datetime) -> bool:
        """
        Compare-and-revoke: revoke the record only if it is not revoked yet.

        Returns True only for the caller whose write flipped the flag.
        """
        pass

    @abstractmethod
    async def revoke_all_for_session(self, session_id: UUID, now: datetime) -> int:
        """Revoke every non-revoked record of a session. Returns count."""
        pass

    @abstractmethod
    async def get_child(self, token_id: UUID) -> Optional[RefreshToken]:
        """Get the record issued when this one was rotated, if any"""
        pass
