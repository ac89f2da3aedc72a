from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ciam.domain.entities import AuthContext


class IAuthContextRepository(ABC):
    """AuthContext repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, context_id: UUID) -> Optional[AuthContext]:
        """Get login context by ID"""
        pass

    @abstractmethod
    async def create(self, context: AuthContext) -> AuthContext:
        """Create a new login context"""
        pass

    @abstractmethod
    async def update(self, context: AuthContext) -> AuthContext:
        """Update existing login context"""
        pass

    @abstractmethod
    async def get_in_progress_for_subject(self, subject_id: UUID) -> List[AuthContext]:
        """Get every in-progress context of a subject"""
        pass

    @abstractmethod
    async def get_overdue(self, now: datetime) -> List[AuthContext]:
        """Get in-progress contexts past expires_at"""
        pass

    @abstractmethod
    async def expire_if_in_progress(self, context_id: UUID, now: datetime) -> bool:
        """
        Conditional write in_progress -> expired.

        Returns False when the context already left in_progress.
        """
        pass
