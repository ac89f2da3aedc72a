"""
Login flow steps shared by the auth use cases.

After the credential check, and after each pause point is resolved, the flow
re-runs the same tail: compliance, device binding offer, token issuance.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.compliance_tracker import ComplianceTracker
from ciam.app.services.device_trust_service import DeviceTrustService
from ciam.app.services.dtos import SubjectClaims
from ciam.app.services.mfa_transaction_manager import MfaTransactionManager
from ciam.app.services.session_registry import SessionRegistry
from ciam.app.services.token_service import TokenService
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import (
    AuditCategory,
    AuditEvent,
    AuditSeverity,
    AuthContext,
    AuthContextStatus,
    TransactionPhase,
    User,
)
from ciam.libs.result import Error, Result, Return
from .dtos import (
    DEVICE_BIND_REQUIRED,
    ESIGN_REQUIRED,
    SUCCESS,
    AuthStepResponse,
)


class AuthFlow:
    """
    Steps 5-7 of a login, plus context bookkeeping.

    Business Rules:
    - A pending document (not declined in this context) pauses the flow
      with ESIGN_REQUIRED
    - An untrusted device with a known fingerprint is offered binding once
    - Otherwise tokens are issued and the context completes
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
        self.transactions = MfaTransactionManager(uow, config=config, clock=clock)
        self.compliance = ComplianceTracker(uow, clock=clock)
        self.device_trust = DeviceTrustService(uow, config=config, clock=clock)
        self.sessions = SessionRegistry(uow, config=config, clock=clock)
        self.tokens = TokenService(uow, config=config, clock=clock)

    async def load_active_context(self, context_id: UUID) -> Result[AuthContext]:
        context = await self.uow.auth_contexts.get_by_id(context_id)
        if context is None:
            return Return.err(Error("CONTEXT_NOT_FOUND", "Login context not found"))
        if context.status == AuthContextStatus.in_progress and context.is_expired(self.clock()):
            # Closed here and committed although the call fails
            await self.expire(context)
            await self.uow.commit()
        if context.status == AuthContextStatus.expired:
            return Return.err(
                Error("CONTEXT_EXPIRED", "Login context has expired, please sign in again")
            )
        if context.status != AuthContextStatus.in_progress:
            return Return.err(
                Error(
                    "CONTEXT_NOT_ACTIVE",
                    "Login context is no longer active",
                    {"status": context.status.value},
                )
            )
        return Return.ok(context)

    async def advance(self, context: AuthContext, user: User) -> AuthStepResponse:
        """Run compliance, device-bind and token issuance in that order"""
        requirement = await self.compliance.check_required(
            user.id, exclude_document_ids=context.declined_document_ids or []
        )
        if requirement.required:
            transaction = await self.transactions.open_step(
                context, TransactionPhase.esign, document_id=requirement.document_id
            )
            await self.audit(
                "esign_required",
                AuditCategory.compliance,
                context=context,
                metadata={"document_id": requirement.document_id, "version": requirement.version},
            )
            return AuthStepResponse(
                response_type_code=ESIGN_REQUIRED,
                context_id=str(context.id),
                transaction_id=str(transaction.id),
                expires_at=transaction.expires_at,
                esign_document_id=requirement.document_id,
                esign_document_title=requirement.title,
                esign_document_version=requirement.version,
                esign_mandatory=requirement.mandatory,
            )

        if (
            not context.device_trusted
            and context.device_fingerprint
            and not context.device_bind_resolved
        ):
            transaction = await self.transactions.open_step(context, TransactionPhase.device_bind)
            return AuthStepResponse(
                response_type_code=DEVICE_BIND_REQUIRED,
                context_id=str(context.id),
                transaction_id=str(transaction.id),
                expires_at=transaction.expires_at,
            )

        return await self._complete(context, user)

    async def _complete(self, context: AuthContext, user: User) -> AuthStepResponse:
        now = self.clock()
        token_set = await self.tokens.issue_set(context.session_id, SubjectClaims.from_user(user))

        context.status = AuthContextStatus.completed
        context.auth_outcome = SUCCESS
        context.completed_at = now
        await self.uow.auth_contexts.update(context)

        user.last_login_at = now
        await self.uow.users.update(user)

        if context.device_trusted:
            await self.device_trust.mark_used(user.id, context.device_fingerprint)

        await self.audit(
            "login_success",
            AuditCategory.authentication,
            context=context,
            metadata={
                "device_trusted": context.device_trusted,
                "mfa_verified": context.mfa_verified,
                "device_bound": context.device_bound,
            },
        )
        return AuthStepResponse(
            response_type_code=SUCCESS,
            context_id=str(context.id),
            session_id=token_set.session_id,
            access_token=token_set.access_token,
            id_token=token_set.id_token,
            token_type=token_set.token_type,
            expires_in=token_set.expires_in,
            refresh_token=token_set.refresh_token,
            device_bound=context.device_bound,
        )

    async def fail(self, context: AuthContext, outcome: str) -> None:
        """Terminal failure: the context and its session are closed"""
        await self._close(context, AuthContextStatus.failed, outcome, outcome.lower())

    async def expire(self, context: AuthContext) -> None:
        """Abandoned login: the session opened at the password step goes too"""
        await self._close(context, AuthContextStatus.expired, "EXPIRED", "context_expired")
        await self.audit(
            "login_expired",
            AuditCategory.authentication,
            context=context,
            severity=AuditSeverity.warning,
        )

    async def _close(
        self, context: AuthContext, status: AuthContextStatus, outcome: str, reason: str
    ) -> None:
        context.status = status
        context.auth_outcome = outcome
        context.completed_at = self.clock()
        await self.uow.auth_contexts.update(context)
        await self.transactions.expire_pending_for_context(context.id)
        if context.session_id:
            await self.sessions.deactivate(context.session_id, reason)

    async def audit(
        self,
        action: str,
        category: AuditCategory,
        context: Optional[AuthContext] = None,
        subject_id: Optional[UUID] = None,
        severity: AuditSeverity = AuditSeverity.info,
        metadata: Optional[dict] = None,
    ) -> AuditEvent:
        event = AuditEvent(
            subject_id=context.subject_id if context is not None else subject_id,
            context_id=context.id if context is not None else None,
            session_id=context.session_id if context is not None else None,
            action=action,
            category=category,
            severity=severity,
            event_metadata=metadata,
            created_at=self.clock(),
        )
        return await self.uow.audit_events.create(event)
