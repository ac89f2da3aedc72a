from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.app.repositories.auth_transaction_repository import (
    IAuthTransactionRepository,
    PendingTransactionConflict,
)
from ciam.domain.entities import AuthTransaction, TransactionStatus


class AuthTransactionRepository(IAuthTransactionRepository):
    """
    AuthTransaction repository implementation using SQLModel.

    Every status change is an UPDATE guarded by status = PENDING, so of two
    concurrent writers (push callback vs. sweep, verify vs. cancel) exactly
    one sees rowcount == 1.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, transaction_id: UUID) -> Optional[AuthTransaction]:
        return await self.session.get(AuthTransaction, transaction_id, populate_existing=True)

    async def create(self, transaction: AuthTransaction) -> AuthTransaction:
        self.session.add(transaction)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            # Partial unique index on (context_id) WHERE status = 'PENDING'
            raise PendingTransactionConflict(transaction.context_id) from exc
        await self.session.refresh(transaction)
        return transaction

    async def transition_status(
        self,
        transaction_id: UUID,
        status: TransactionStatus,
        now: datetime,
        response: Optional[str] = None,
    ) -> bool:
        values = {"status": status, "updated_at": now, "resolved_at": now}
        if response is not None:
            values["response"] = response
        stmt = (
            update(AuthTransaction)
            .where(
                AuthTransaction.id == transaction_id,
                AuthTransaction.status == TransactionStatus.PENDING,
            )
            .values(**values)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def increment_attempts(self, transaction_id: UUID, now: datetime) -> int:
        stmt = (
            update(AuthTransaction)
            .where(
                AuthTransaction.id == transaction_id,
                AuthTransaction.status == TransactionStatus.PENDING,
            )
            .values(attempt_count=AuthTransaction.attempt_count + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        if result.rowcount == 0:
            return 0
        transaction = await self.get_by_id(transaction_id)
        return transaction.attempt_count

    async def expire_pending_by_context(self, context_id: UUID, now: datetime) -> int:
        stmt = (
            update(AuthTransaction)
            .where(
                AuthTransaction.context_id == context_id,
                AuthTransaction.status == TransactionStatus.PENDING,
            )
            .values(status=TransactionStatus.EXPIRED, updated_at=now, resolved_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def expire_overdue(self, now: datetime) -> int:
        stmt = (
            update(AuthTransaction)
            .where(
                AuthTransaction.status == TransactionStatus.PENDING,
                AuthTransaction.expires_at <= now,
            )
            .values(status=TransactionStatus.EXPIRED, updated_at=now, resolved_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
