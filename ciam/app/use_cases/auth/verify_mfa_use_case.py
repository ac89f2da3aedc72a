"""
Verify MFA Use Case

Checks an OTP code, or polls a push challenge, and continues the login
once the challenge is approved.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.locks import context_locks
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import (
    AuditCategory,
    AuditSeverity,
    AuthContext,
    MfaMethod,
    TransactionPhase,
    TransactionStatus,
    UserStatus,
)
from ciam.libs.result import Error, Result, Return
from .dtos import MFA_PENDING, AuthStepResponse
from .flow import AuthFlow


class VerifyMfaUseCase:
    """
    Business Rules:
    - OTP: a wrong code is retryable until the attempt limit, which rejects
      the transaction, MFA-locks the subject and fails the login
    - Push: PENDING answers MFA_PENDING with retry_after; a rejection is
      terminal for the transaction but the context may initiate again
    - On approval the flow continues with compliance, device binding and
      token issuance
    """

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
        self,
        context_id: UUID,
        transaction_id: UUID,
        code: Optional[str] = None,
    ) -> Result[AuthStepResponse]:
        async with context_locks.hold(str(context_id)):
            async with self.uow:
                flow = AuthFlow(self.uow, config=self.config, clock=self.clock)

                loaded = await flow.load_active_context(context_id)
                if loaded.is_err():
                    return loaded
                context = loaded.value

                transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
                if (
                    transaction is None
                    or transaction.context_id != context.id
                    or transaction.phase != TransactionPhase.mfa
                ):
                    return Return.err(Error("TRANSACTION_NOT_FOUND", "Transaction not found"))

                if context.mfa_verified:
                    return Return.err(
                        Error(
                            "TRANSACTION_NOT_PENDING",
                            "MFA was already completed for this login",
                            {"status": transaction.status.value},
                        )
                    )

                if transaction.method == MfaMethod.push:
                    outcome = await self._poll_push(flow, context, transaction.id)
                else:
                    outcome = await self._check_code(flow, context, transaction.id, code)
                if outcome is not None:
                    await self.uow.commit()
                    return outcome

                user = await self.uow.users.get_by_id(context.subject_id)
                context.mfa_verified = True
                await self.uow.auth_contexts.update(context)
                await flow.audit(
                    "mfa_approved",
                    AuditCategory.mfa,
                    context=context,
                    metadata={
                        "transaction_id": str(transaction.id),
                        "method": transaction.method.value,
                    },
                )

                response = await flow.advance(context, user)
                await self.uow.commit()
                return Return.ok(response)

    async def _poll_push(
        self, flow: AuthFlow, context: AuthContext, transaction_id: UUID
    ) -> Optional[Result[AuthStepResponse]]:
        """None when approved, otherwise the result to return"""
        status = await flow.transactions.get_status(transaction_id)
        transaction = status.value

        if transaction.status == TransactionStatus.PENDING:
            return Return.ok(
                AuthStepResponse(
                    response_type_code=MFA_PENDING,
                    context_id=str(context.id),
                    transaction_id=str(transaction.id),
                    retry_after=self.config.PUSH_POLL_RETRY_AFTER_SECONDS,
                    expires_at=transaction.expires_at,
                )
            )
        if transaction.status == TransactionStatus.EXPIRED:
            return Return.err(Error("TRANSACTION_EXPIRED", "Transaction has expired"))
        if transaction.status == TransactionStatus.REJECTED:
            await flow.audit(
                "mfa_push_rejected",
                AuditCategory.mfa,
                context=context,
                severity=AuditSeverity.warning,
                metadata={"transaction_id": str(transaction.id), "response": transaction.response},
            )
            return Return.err(Error("PUSH_REJECTED", "Push notification was rejected"))
        return None

    async def _check_code(
        self,
        flow: AuthFlow,
        context: AuthContext,
        transaction_id: UUID,
        code: Optional[str],
    ) -> Optional[Result[AuthStepResponse]]:
        """None when approved, otherwise the result to return"""
        if not code:
            return Return.err(Error("VALIDATION_ERROR", "Verification code is required"))

        verified = await flow.transactions.verify_otp(transaction_id, code)
        if verified.is_ok():
            return None

        error = verified.error
        if error.code == "INVALID_MFA_CODE":
            await flow.audit(
                "mfa_code_invalid",
                AuditCategory.mfa,
                context=context,
                severity=AuditSeverity.warning,
                metadata={"transaction_id": str(transaction_id), **(error.details or {})},
            )
        elif error.code == "MFA_LOCKED":
            user = await self.uow.users.get_by_id(context.subject_id)
            user.status = UserStatus.mfa_locked
            await self.uow.users.update(user)
            await flow.fail(context, "MFA_LOCKED")
            await flow.audit(
                "mfa_locked",
                AuditCategory.mfa,
                context=context,
                severity=AuditSeverity.critical,
                metadata={"transaction_id": str(transaction_id)},
            )
        return verified
