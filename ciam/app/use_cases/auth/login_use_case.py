"""
Login Use Case

Credential check and the first pass through the login flow.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable
from uuid import uuid4

import bcrypt

from config import ApplicationConfig
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import (
    AuditCategory,
    AuditSeverity,
    AuthContext,
    AuthContextStatus,
    MobileApproveStatus,
    User,
    UserStatus,
)
from ciam.libs.result import Error, Result, Return
from .dtos import MFA_REQUIRED, AuthStepResponse, LoginCommand, OtpMethod
from .flow import AuthFlow

logger = logging.getLogger(__name__)

# Hash checked when the username is unknown so both failure paths cost one bcrypt
_DUMMY_HASH = bcrypt.hashpw(b"dummy_password", bcrypt.gensalt(12))


class LoginUseCase:
    """
    Use case for the credential step of a login.

    Business Rules:
    - Unknown username and wrong password return the same INVALID_CREDENTIALS
    - A locked account returns ACCOUNT_LOCKED on every attempt, before the
      password is even checked
    - LOGIN_MAX_FAILED_ATTEMPTS consecutive failures lock the account
    - An MFA-locked account returns MFA_LOCKED, only after a correct password
    - A new login supersedes any in-progress login of the same subject
    - A trusted device skips MFA; otherwise the flow pauses at MFA_REQUIRED
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

    async def execute(self, command: LoginCommand) -> Result[AuthStepResponse]:
        """
        Execute login use case.

        Args:
            command: Credentials plus client and device signal

        Returns:
            Result with AuthStepResponse (SUCCESS, MFA_REQUIRED, ESIGN_REQUIRED
            or DEVICE_BIND_REQUIRED), or Error
        """
        async with self.uow:
            flow = AuthFlow(self.uow, config=self.config, clock=self.clock)
            user = await self.uow.users.get_by_username(command.username)

            if user is None:
                bcrypt.checkpw(command.password.encode(), _DUMMY_HASH)
                await flow.audit(
                    "login_failed",
                    AuditCategory.authentication,
                    severity=AuditSeverity.warning,
                    metadata={"username": command.username, "reason": "unknown_user"},
                )
                await self.uow.commit()
                return Return.err(
                    Error("INVALID_CREDENTIALS", "Invalid username or password")
                )

            if user.status == UserStatus.locked:
                await flow.audit(
                    "login_blocked",
                    AuditCategory.authentication,
                    subject_id=user.id,
                    severity=AuditSeverity.warning,
                    metadata={"reason": "account_locked"},
                )
                await self.uow.commit()
                return Return.err(Error("ACCOUNT_LOCKED", "Account is locked"))

            if not bcrypt.checkpw(command.password.encode(), user.password_hash.encode()):
                return await self._reject_password(flow, user)

            if user.status == UserStatus.mfa_locked:
                await flow.audit(
                    "login_blocked",
                    AuditCategory.authentication,
                    subject_id=user.id,
                    severity=AuditSeverity.warning,
                    metadata={"reason": "mfa_locked"},
                )
                await self.uow.commit()
                return Return.err(
                    Error("MFA_LOCKED", "Multi-factor authentication is locked for this account")
                )

            if user.failed_login_count:
                user.failed_login_count = 0
                await self.uow.users.update(user)

            await self._supersede_in_progress(flow, user)

            fingerprint = None
            if command.drs_action_token:
                fingerprint = flow.device_trust.fingerprint_from_action_token(
                    command.drs_action_token
                )

            now = self.clock()
            context_id = uuid4()
            session = await flow.sessions.create(
                user.id,
                context_id=context_id,
                device_id=fingerprint,
                ip_address=command.ip_address,
                user_agent=command.user_agent,
            )
            context = AuthContext(
                id=context_id,
                subject_id=user.id,
                username=user.username,
                app_id=command.app_id,
                app_version=command.app_version,
                device_fingerprint=fingerprint,
                ip_address=command.ip_address,
                user_agent=command.user_agent,
                session_id=session.id,
                device_trusted=await flow.device_trust.is_trusted(user.id, fingerprint),
                declined_document_ids=[],
                created_at=now,
                expires_at=now + timedelta(minutes=self.config.AUTH_CONTEXT_TTL_MINUTES),
            )
            context = await self.uow.auth_contexts.create(context)

            await flow.audit(
                "login_password_verified",
                AuditCategory.authentication,
                context=context,
                metadata={
                    "app_id": command.app_id,
                    "ip_address": command.ip_address,
                    "device_trusted": context.device_trusted,
                },
            )

            if context.device_trusted:
                response = await flow.advance(context, user)
            else:
                response = self._mfa_required(context, user)

            await self.uow.commit()
            return Return.ok(response)

    async def _reject_password(self, flow: AuthFlow, user: User) -> Result[AuthStepResponse]:
        user.failed_login_count += 1
        max_attempts = self.config.LOGIN_MAX_FAILED_ATTEMPTS
        locked = bool(max_attempts) and user.failed_login_count >= max_attempts
        if locked:
            user.status = UserStatus.locked
            logger.warning(
                "Account %s locked after %d failed logins", user.id, user.failed_login_count
            )
        await self.uow.users.update(user)

        await flow.audit(
            "account_locked" if locked else "login_failed",
            AuditCategory.authentication,
            subject_id=user.id,
            severity=AuditSeverity.critical if locked else AuditSeverity.warning,
            metadata={"reason": "bad_password", "failed_login_count": user.failed_login_count},
        )
        await self.uow.commit()

        if locked:
            return Return.err(Error("ACCOUNT_LOCKED", "Account is locked"))
        return Return.err(Error("INVALID_CREDENTIALS", "Invalid username or password"))

    async def _supersede_in_progress(self, flow: AuthFlow, user: User) -> None:
        for previous in await self.uow.auth_contexts.get_in_progress_for_subject(user.id):
            await flow.transactions.expire_pending_for_context(previous.id)
            if previous.session_id:
                await flow.sessions.deactivate(previous.session_id, "superseded")
            previous.status = AuthContextStatus.superseded
            previous.auth_outcome = "SUPERSEDED"
            previous.completed_at = self.clock()
            await self.uow.auth_contexts.update(previous)

    @staticmethod
    def _mfa_required(context: AuthContext, user: User) -> AuthStepResponse:
        otp_methods = [
            OtpMethod(value=d["value"], mfa_option_id=d["mfa_option_id"])
            for d in (user.otp_destinations or [])
        ]
        return AuthStepResponse(
            response_type_code=MFA_REQUIRED,
            context_id=str(context.id),
            otp_methods=otp_methods,
            mobile_approve_status=(
                MobileApproveStatus.ENABLED.value
                if user.push_enabled
                else MobileApproveStatus.NOT_REGISTERED.value
            ),
        )
