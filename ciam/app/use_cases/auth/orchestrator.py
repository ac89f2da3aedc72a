"""
Auth Orchestrator

The single caller-facing entry point of the login flow. Each operation runs
one use case in its own Unit of Work; the persisted AuthContext carries the
step state between calls.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.notifications import OtpSender, PushNotifier
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import MfaMethod
from ciam.libs.result import Result
from .accept_compliance_use_case import AcceptComplianceUseCase
from .bind_device_use_case import BindDeviceUseCase
from .cancel_transaction_use_case import CancelTransactionUseCase
from .decline_compliance_use_case import DeclineComplianceUseCase
from .dtos import (
    AuthStepResponse,
    CancelTransactionResponse,
    ComplianceDocumentResponse,
    LoginCommand,
    LogoutResponse,
    MfaChallengeResponse,
    MfaStatusResponse,
    PushResponseResult,
    TokenRefreshResponse,
)
from .get_document_use_case import GetDocumentUseCase
from .initiate_mfa_use_case import InitiateMfaUseCase
from .login_use_case import LoginUseCase
from .logout_use_case import LogoutUseCase
from .mfa_status_use_case import MfaStatusUseCase
from .refresh_token_use_case import RefreshTokenUseCase
from .respond_push_use_case import RespondPushUseCase
from .verify_mfa_use_case import VerifyMfaUseCase


class AuthOrchestrator:
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

    def _options(self) -> dict:
        return {"config": self.config, "clock": self.clock}

    async def login(self, command: LoginCommand) -> Result[AuthStepResponse]:
        return await LoginUseCase(self.uow, **self._options()).execute(command)

    async def initiate_mfa(
        self, context_id: UUID, method: MfaMethod, mfa_option_id: Optional[int] = None
    ) -> Result[MfaChallengeResponse]:
        use_case = InitiateMfaUseCase(
            self.uow,
            otp_sender=self.otp_sender,
            push_notifier=self.push_notifier,
            **self._options(),
        )
        return await use_case.execute(context_id, method, mfa_option_id)

    async def verify_mfa(
        self, context_id: UUID, transaction_id: UUID, code: Optional[str] = None
    ) -> Result[AuthStepResponse]:
        use_case = VerifyMfaUseCase(self.uow, **self._options())
        return await use_case.execute(context_id, transaction_id, code)

    async def mfa_status(
        self, transaction_id: UUID, context_id: UUID
    ) -> Result[MfaStatusResponse]:
        use_case = MfaStatusUseCase(self.uow, **self._options())
        return await use_case.execute(transaction_id, context_id)

    async def respond_push(
        self, transaction_id: UUID, approved: bool, selected_number: Optional[int] = None
    ) -> Result[PushResponseResult]:
        use_case = RespondPushUseCase(self.uow, **self._options())
        return await use_case.execute(transaction_id, approved, selected_number)

    async def bind_device(
        self, context_id: UUID, transaction_id: UUID, bind_device: bool
    ) -> Result[AuthStepResponse]:
        use_case = BindDeviceUseCase(self.uow, **self._options())
        return await use_case.execute(context_id, transaction_id, bind_device)

    async def accept_compliance(
        self,
        context_id: UUID,
        transaction_id: UUID,
        document_id: str,
        acceptance_ip: Optional[str] = None,
    ) -> Result[AuthStepResponse]:
        use_case = AcceptComplianceUseCase(self.uow, **self._options())
        return await use_case.execute(context_id, transaction_id, document_id, acceptance_ip)

    async def decline_compliance(
        self,
        context_id: UUID,
        transaction_id: UUID,
        document_id: str,
        reason: Optional[str] = None,
    ) -> Result[AuthStepResponse]:
        use_case = DeclineComplianceUseCase(self.uow, **self._options())
        return await use_case.execute(context_id, transaction_id, document_id, reason)

    async def cancel_transaction(
        self, context_id: UUID, transaction_id: UUID
    ) -> Result[CancelTransactionResponse]:
        use_case = CancelTransactionUseCase(self.uow, **self._options())
        return await use_case.execute(context_id, transaction_id)

    async def get_document(self, document_id: str) -> Result[ComplianceDocumentResponse]:
        return await GetDocumentUseCase(self.uow).execute(document_id)

    async def refresh(self, refresh_token: Optional[str]) -> Result[TokenRefreshResponse]:
        return await RefreshTokenUseCase(self.uow, **self._options()).execute(refresh_token)

    async def logout(
        self, session_id: UUID, subject_id: Optional[UUID] = None
    ) -> Result[LogoutResponse]:
        return await LogoutUseCase(self.uow, **self._options()).execute(session_id, subject_id)
