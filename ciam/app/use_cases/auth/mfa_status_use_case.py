"""
MFA Status Use Case

Read-only poll of a transaction. Expires overdue PENDING transactions on read.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.mfa_transaction_manager import MfaTransactionManager
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import MfaMethod, TransactionStatus
from ciam.libs.result import Error, Result, Return
from .dtos import MfaStatusResponse


class MfaStatusUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock

    async def execute(
        self, transaction_id: UUID, context_id: UUID
    ) -> Result[MfaStatusResponse]:
        async with self.uow:
            manager = MfaTransactionManager(self.uow, config=self.config, clock=self.clock)
            status = await manager.get_status(transaction_id)
            if status.is_err():
                return status

            transaction = status.value
            if transaction.context_id != context_id:
                return Return.err(Error("TRANSACTION_NOT_FOUND", "Transaction not found"))

            await self.uow.commit()

            retry_after = None
            if (
                transaction.status == TransactionStatus.PENDING
                and transaction.method == MfaMethod.push
            ):
                retry_after = self.config.PUSH_POLL_RETRY_AFTER_SECONDS

            return Return.ok(
                MfaStatusResponse(
                    transaction_id=str(transaction.id),
                    status=transaction.status.value,
                    method=transaction.method.value if transaction.method else None,
                    expires_at=transaction.expires_at,
                    retry_after=retry_after,
                )
            )
