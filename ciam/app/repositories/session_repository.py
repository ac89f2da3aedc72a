from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ciam.domain.entities import Session


class ISessionRepository(ABC):
    """Session repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, session_id: UUID) -> Optional[Session]:
        """Get session by ID"""
        pass

    @abstractmethod
    async def create(self, session: Session) -> Session:
        """Create a new session"""
        pass

    @abstractmethod
    async def update(self, session: Session) -> Session:
        """Update existing session"""
        pass

    @abstractmethod
    async def get_active_by_subject_id(self, subject_id: UUID, now: datetime) -> List[Session]:
        """Get active, unexpired sessions of a subject, newest first"""
        pass

    @abstractmethod
    async def touch(self, session_id: UUID, now: datetime) -> bool:
        """Update last_seen_at of an active session"""
        pass

    @abstractmethod
    async def deactivate(self, session_id: UUID, reason: str, now: datetime) -> bool:
        """Deactivate a session only if still active. Returns True if this call did it."""
        pass

    @abstractmethod
    async def get_expired_active(self, now: datetime) -> List[Session]:
        """Get sessions still flagged active whose expires_at has passed"""
        pass
