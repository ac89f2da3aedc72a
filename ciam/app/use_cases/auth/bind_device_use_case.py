"""
Bind Device Use Case

Answers the DEVICE_BIND_REQUIRED offer. Skipping is allowed and still
completes the login.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.locks import context_locks
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, TransactionPhase, TransactionStatus
from ciam.libs.result import Result, Return
from .dtos import AuthStepResponse
from .flow import AuthFlow


class BindDeviceUseCase:
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
        self, context_id: UUID, transaction_id: UUID, bind_device: bool
    ) -> Result[AuthStepResponse]:
        """
        Execute bind device use case.

        Args:
            context_id: Login context paused at DEVICE_BIND_REQUIRED
            transaction_id: The device-bind step transaction
            bind_device: True to trust the device, False to skip

        Returns:
            Result with the next AuthStepResponse, or Error
        """
        async with context_locks.hold(str(context_id)):
            async with self.uow:
                flow = AuthFlow(self.uow, config=self.config, clock=self.clock)

                loaded = await flow.load_active_context(context_id)
                if loaded.is_err():
                    return loaded
                context = loaded.value

                step = await flow.transactions.load_pending_step(
                    transaction_id, context.id, TransactionPhase.device_bind
                )
                if step.is_err():
                    await self.uow.commit()
                    return step

                if bind_device:
                    await flow.device_trust.bind(context.subject_id, context.device_fingerprint)
                    context.device_bound = True
                    await flow.transactions.resolve_step(
                        transaction_id, TransactionStatus.APPROVED, "bound"
                    )
                else:
                    await flow.transactions.resolve_step(
                        transaction_id, TransactionStatus.REJECTED, "skipped"
                    )

                context.device_bind_resolved = True
                await self.uow.auth_contexts.update(context)
                await flow.audit(
                    "device_bound" if bind_device else "device_bind_skipped",
                    AuditCategory.device,
                    context=context,
                    metadata={"transaction_id": str(transaction_id)},
                )

                user = await self.uow.users.get_by_id(context.subject_id)
                response = await flow.advance(context, user)
                await self.uow.commit()
                return Return.ok(response)
