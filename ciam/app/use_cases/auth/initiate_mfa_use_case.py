"""
Initiate MFA Use Case

Starts an OTP or push challenge for a login paused at MFA_REQUIRED.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.repositories.auth_transaction_repository import PendingTransactionConflict
from ciam.app.services.locks import context_locks
from ciam.app.services.mfa_transaction_manager import MfaTransactionManager
from ciam.app.services.notifications import OtpSender, PushNotifier
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, MfaMethod, UserStatus
from ciam.libs.result import Error, Result, Return
from .dtos import MfaChallengeResponse
from .flow import AuthFlow


class InitiateMfaUseCase:
    """
    Business Rules:
    - Only an in-progress context that has not passed MFA can initiate
    - Initiations for one context are serialized; the newest one wins and
      the previous PENDING transaction becomes EXPIRED
    - OTP methods need a matching mfa_option_id (first option if omitted)
    - Push needs a registered mobile device
    """

    def __init__(
        self,
        uow: UnitOfWork,
        otp_sender: Optional[OtpSender] = None,
        push_notifier: Optional[PushNotifier] = None,
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.otp_sender = otp_sender
        self.push_notifier = push_notifier
        self.config = config
        self.clock = clock

    async def execute(
        self,
        context_id: UUID,
        method: MfaMethod,
        mfa_option_id: Optional[int] = None,
    ) -> Result[MfaChallengeResponse]:
        async with context_locks.hold(str(context_id)):
            async with self.uow:
                flow = AuthFlow(self.uow, config=self.config, clock=self.clock)
                manager = MfaTransactionManager(
                    self.uow,
                    otp_sender=self.otp_sender,
                    push_notifier=self.push_notifier,
                    config=self.config,
                    clock=self.clock,
                )

                loaded = await flow.load_active_context(context_id)
                if loaded.is_err():
                    return loaded
                context = loaded.value

                if context.device_trusted or context.mfa_verified:
                    return Return.err(
                        Error("MFA_NOT_REQUIRED", "This login does not need an MFA challenge")
                    )

                user = await self.uow.users.get_by_id(context.subject_id)
                if user.status == UserStatus.mfa_locked:
                    return Return.err(
                        Error("MFA_LOCKED", "Multi-factor authentication is locked for this account")
                    )

                destination = None
                if method == MfaMethod.push:
                    if not user.push_enabled:
                        return Return.err(
                            Error("MFA_METHOD_NOT_AVAILABLE", "No mobile device registered for push")
                        )
                else:
                    option = self._find_option(user.otp_destinations or [], mfa_option_id)
                    if option is None:
                        return Return.err(
                            Error(
                                "MFA_METHOD_NOT_AVAILABLE",
                                "Requested OTP destination is not available",
                                {"mfa_option_id": mfa_option_id},
                            )
                        )
                    mfa_option_id = option["mfa_option_id"]
                    destination = option["value"]

                try:
                    transaction = await manager.initiate(
                        context.id,
                        user.id,
                        method,
                        mfa_option_id=mfa_option_id,
                        destination=destination,
                    )
                except PendingTransactionConflict:
                    return Return.err(
                        Error(
                            "TRANSACTION_CONFLICT",
                            "Another challenge was started for this login, retry",
                        )
                    )

                await flow.audit(
                    "mfa_initiated",
                    AuditCategory.mfa,
                    context=context,
                    metadata={
                        "transaction_id": str(transaction.id),
                        "method": method.value,
                        "mfa_option_id": mfa_option_id,
                    },
                )
                await self.uow.commit()

                is_push = method == MfaMethod.push
                return Return.ok(
                    MfaChallengeResponse(
                        context_id=str(context.id),
                        transaction_id=str(transaction.id),
                        method=method.value,
                        expires_at=transaction.expires_at,
                        display_number=transaction.display_number if is_push else None,
                        retry_after=self.config.PUSH_POLL_RETRY_AFTER_SECONDS if is_push else None,
                    )
                )

    @staticmethod
    def _find_option(options: list, mfa_option_id: Optional[int]) -> Optional[dict]:
        if not options:
            return None
        if mfa_option_id is None:
            return options[0]
        for option in options:
            if option.get("mfa_option_id") == mfa_option_id:
                return option
        return None
