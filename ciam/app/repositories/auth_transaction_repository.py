from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from ciam.domain.entities import AuthTransaction, TransactionStatus


class PendingTransactionConflict(Exception):
    """Raised when a second PENDING transaction is written for one context"""

    def __init__(self, context_id: UUID):
        self.context_id = context_id
        super().__init__(f"Context {context_id} already has a pending transaction")


class IAuthTransactionRepository(ABC):
    """AuthTransaction repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, transaction_id: UUID) -> Optional[AuthTransaction]:
        """Get transaction by ID, reloaded from storage"""
        pass

    @abstractmethod
    async def create(self, transaction: AuthTransaction) -> AuthTransaction:
        """
        Create a new transaction.

        Raises:
            PendingTransactionConflict: the context already has a PENDING row
        """
        pass

    @abstractmethod
    async def transition_status(
        self,
        transaction_id: UUID,
        status: TransactionStatus,
        now: datetime,
        response: Optional[str] = None,
    ) -> bool:
        """
        Conditional write PENDING -> status.

        Returns True only if the row was still PENDING.
        """
        pass

    @abstractmethod
    async def increment_attempts(self, transaction_id: UUID, now: datetime) -> int:
        """Increment attempt_count of a PENDING transaction. Returns the new count (0 if not pending)."""
        pass

    @abstractmethod
    async def expire_pending_by_context(self, context_id: UUID, now: datetime) -> int:
        """Force PENDING transactions of a context to EXPIRED. Returns count."""
        pass

    @abstractmethod
    async def expire_overdue(self, now: datetime) -> int:
        """Move every PENDING transaction past expires_at to EXPIRED. Returns count."""
        pass
