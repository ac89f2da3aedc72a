"""
MFA Transaction Manager

Owns every AuthTransaction of a login context: MFA challenges (OTP or
push) as well as the e-sign and device-bind step transactions, so that the
one-PENDING-per-context rule covers every pause point of a login.

State machine:
    PENDING -> APPROVED | REJECTED | EXPIRED   (terminal, never left)

Every transition is a conditional write that only succeeds while the row is
still PENDING. A caller that loses the race re-reads the row and reports
whatever state won.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from config import ApplicationConfig
from ciam.app.services.notifications import OtpSender, PushNotifier
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import (
    AuthContext,
    AuthTransaction,
    MfaMethod,
    TransactionPhase,
    TransactionStatus,
)
from ciam.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)

PUSH_CHOICE_COUNT = 3

_secure_random = secrets.SystemRandom()


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


def generate_otp(digits: int) -> str:
    """Cryptographically random zero-padded numeric code"""
    return f"{secrets.randbelow(10 ** digits):0{digits}d}"


def generate_push_numbers() -> tuple:
    """
    Pick the number shown on the login screen and the choices shown on the
    phone: the display number plus two distinct decoys from 1-9, shuffled.
    """
    display_number = secrets.randbelow(9) + 1
    decoys = _secure_random.sample([n for n in range(1, 10) if n != display_number], 2)
    choices = [display_number, *decoys]
    _secure_random.shuffle(choices)
    return display_number, choices


class MfaTransactionManager:
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

    # ------------------------------------------------------------------
    # MFA challenges
    # ------------------------------------------------------------------

    async def initiate(
        self,
        context_id: UUID,
        subject_id: UUID,
        method: MfaMethod,
        mfa_option_id: Optional[int] = None,
        destination: Optional[str] = None,
    ) -> AuthTransaction:
        """
        Start a new MFA challenge for a context.

        Any PENDING transaction of the context is expired first. The OTP code
        leaves this method only through the OtpSender.

        Raises:
            PendingTransactionConflict: another writer created a PENDING
                transaction for the context concurrently
        """
        now = self.clock()
        await self.uow.auth_transactions.expire_pending_by_context(context_id, now)

        transaction = AuthTransaction(
            context_id=context_id,
            subject_id=subject_id,
            phase=TransactionPhase.mfa,
            method=method,
            mfa_option_id=mfa_option_id,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(seconds=self.config.MFA_TRANSACTION_TTL_SECONDS),
        )

        code = None
        choices = None
        if method == MfaMethod.push:
            transaction.display_number, choices = generate_push_numbers()
            transaction.transaction_metadata = {"push_choices": choices}
        else:
            code = generate_otp(self.config.MFA_OTP_DIGITS)
            transaction.challenge_hash = hash_code(code)
            transaction.transaction_metadata = {"destination": destination}

        transaction = await self.uow.auth_transactions.create(transaction)

        if method == MfaMethod.push:
            if self.push_notifier is not None:
                await self.push_notifier.notify(subject_id, transaction.id, choices)
        elif self.otp_sender is not None:
            await self.otp_sender.send(subject_id, transaction.id, method, destination, code)

        logger.info(
            "MFA transaction %s initiated (context=%s, method=%s)",
            transaction.id,
            context_id,
            method.value,
        )
        return transaction

    async def verify_otp(self, transaction_id: UUID, code: str) -> Result[AuthTransaction]:
        """
        Check an OTP code.

        A mismatch leaves the transaction PENDING (retryable) until the
        attempt limit is reached, which rejects it and returns MFA_LOCKED.
        Re-verifying an APPROVED transaction returns it unchanged.
        """
        transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
        if transaction is None or transaction.phase != TransactionPhase.mfa:
            return Return.err(Error("TRANSACTION_NOT_FOUND", "Transaction not found"))

        if transaction.method == MfaMethod.push:
            return Return.err(
                Error("MFA_METHOD_NOT_AVAILABLE", "Push transactions do not accept a code")
            )

        if transaction.status == TransactionStatus.APPROVED:
            return Return.ok(transaction)

        pending = await self._ensure_pending(transaction)
        if pending.is_err():
            return pending

        now = self.clock()
        if not hmac.compare_digest(hash_code(code), transaction.challenge_hash or ""):
            return await self._record_mismatch(transaction, now)

        if await self.uow.auth_transactions.transition_status(
            transaction.id, TransactionStatus.APPROVED, now, response="code_verified"
        ):
            logger.info("MFA transaction %s approved", transaction.id)
        return await self._reload_outcome(transaction.id)

    async def _record_mismatch(
        self, transaction: AuthTransaction, now: datetime
    ) -> Result[AuthTransaction]:
        attempts = await self.uow.auth_transactions.increment_attempts(transaction.id, now)
        if attempts == 0:
            # Resolved by someone else between the read and the write
            return await self._reload_outcome(transaction.id)

        max_attempts = self.config.MFA_MAX_OTP_ATTEMPTS
        if max_attempts and attempts >= max_attempts:
            await self.uow.auth_transactions.transition_status(
                transaction.id, TransactionStatus.REJECTED, now, response="attempts_exhausted"
            )
            logger.warning(
                "MFA transaction %s rejected after %d failed attempts",
                transaction.id,
                attempts,
            )
            return Return.err(
                Error(
                    "MFA_LOCKED",
                    "Too many invalid verification codes",
                    {"attempts_remaining": 0},
                )
            )

        details = {"attempts": attempts}
        if max_attempts:
            details["attempts_remaining"] = max_attempts - attempts
        return Return.err(Error("INVALID_MFA_CODE", "Invalid verification code", details))

    async def respond_push(
        self,
        transaction_id: UUID,
        approved: bool,
        selected_number: Optional[int] = None,
    ) -> Result[AuthTransaction]:
        """
        Apply the device's answer to a push challenge.

        Picking a number other than the display number counts as a rejection.
        """
        transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
        if transaction is None or transaction.phase != TransactionPhase.mfa:
            return Return.err(Error("TRANSACTION_NOT_FOUND", "Transaction not found"))
        if transaction.method != MfaMethod.push:
            return Return.err(
                Error("MFA_METHOD_NOT_AVAILABLE", "Transaction is not a push challenge")
            )

        pending = await self._ensure_pending(transaction)
        if pending.is_err():
            return pending

        number_matches = selected_number is None or selected_number == transaction.display_number
        if approved and number_matches:
            status, response = TransactionStatus.APPROVED, "approved"
        elif approved:
            status, response = TransactionStatus.REJECTED, "number_mismatch"
        else:
            status, response = TransactionStatus.REJECTED, "denied"

        if not await self.uow.auth_transactions.transition_status(
            transaction.id, status, self.clock(), response=response
        ):
            return Return.err(
                Error("TRANSACTION_NOT_PENDING", "Transaction is no longer pending")
            )

        if status == TransactionStatus.REJECTED:
            logger.warning("Push transaction %s rejected (%s)", transaction.id, response)
        return Return.ok(await self.uow.auth_transactions.get_by_id(transaction.id))

    async def get_status(self, transaction_id: UUID) -> Result[AuthTransaction]:
        """
        Current state of a transaction. A PENDING transaction read at or
        after its deadline is expired on the spot.
        """
        transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
        if transaction is None:
            return Return.err(Error("TRANSACTION_NOT_FOUND", "Transaction not found"))

        if transaction.is_pending and transaction.is_expired(self.clock()):
            await self.uow.auth_transactions.transition_status(
                transaction.id, TransactionStatus.EXPIRED, self.clock()
            )
            transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
        return Return.ok(transaction)

    # ------------------------------------------------------------------
    # E-sign and device-bind steps
    # ------------------------------------------------------------------

    async def open_step(
        self,
        context: AuthContext,
        phase: TransactionPhase,
        document_id: Optional[str] = None,
    ) -> AuthTransaction:
        """Open a step transaction that lives as long as its context"""
        now = self.clock()
        await self.uow.auth_transactions.expire_pending_by_context(context.id, now)
        transaction = AuthTransaction(
            context_id=context.id,
            subject_id=context.subject_id,
            phase=phase,
            document_id=document_id,
            created_at=now,
            updated_at=now,
            expires_at=context.expires_at,
        )
        return await self.uow.auth_transactions.create(transaction)

    async def load_pending_step(
        self, transaction_id: UUID, context_id: UUID, phase: TransactionPhase
    ) -> Result[AuthTransaction]:
        """The PENDING transaction of the given phase belonging to the context"""
        transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
        if (
            transaction is None
            or transaction.context_id != context_id
            or transaction.phase != phase
        ):
            return Return.err(Error("TRANSACTION_NOT_FOUND", "Transaction not found"))
        return await self._ensure_pending(transaction)

    async def resolve_step(
        self, transaction_id: UUID, status: TransactionStatus, response: str
    ) -> bool:
        return await self.uow.auth_transactions.transition_status(
            transaction_id, status, self.clock(), response=response
        )

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def cancel(self, transaction_id: UUID) -> Result[AuthTransaction]:
        """Force-expire a PENDING transaction"""
        transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
        if transaction is None:
            return Return.err(Error("TRANSACTION_NOT_FOUND", "Transaction not found"))
        if not await self.uow.auth_transactions.transition_status(
            transaction.id, TransactionStatus.EXPIRED, self.clock(), response="cancelled"
        ):
            return Return.err(
                Error("TRANSACTION_NOT_PENDING", "Transaction is no longer pending")
            )
        return Return.ok(await self.uow.auth_transactions.get_by_id(transaction.id))

    async def expire_pending_for_context(self, context_id: UUID) -> int:
        return await self.uow.auth_transactions.expire_pending_by_context(
            context_id, self.clock()
        )

    async def sweep_expired(self) -> int:
        count = await self.uow.auth_transactions.expire_overdue(self.clock())
        if count:
            logger.info("Expired %d overdue transactions", count)
        return count

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_pending(self, transaction: AuthTransaction) -> Result[AuthTransaction]:
        if transaction.status == TransactionStatus.EXPIRED:
            return Return.err(Error("TRANSACTION_EXPIRED", "Transaction has expired"))
        if transaction.status != TransactionStatus.PENDING:
            return Return.err(
                Error("TRANSACTION_NOT_PENDING", "Transaction is no longer pending")
            )

        now = self.clock()
        if transaction.is_expired(now):
            await self.uow.auth_transactions.transition_status(
                transaction.id, TransactionStatus.EXPIRED, now
            )
            return Return.err(Error("TRANSACTION_EXPIRED", "Transaction has expired"))
        return Return.ok(transaction)

    async def _reload_outcome(self, transaction_id: UUID) -> Result[AuthTransaction]:
        transaction = await self.uow.auth_transactions.get_by_id(transaction_id)
        if transaction.status == TransactionStatus.APPROVED:
            return Return.ok(transaction)
        if transaction.status == TransactionStatus.EXPIRED:
            return Return.err(Error("TRANSACTION_EXPIRED", "Transaction has expired"))
        return Return.err(Error("TRANSACTION_NOT_PENDING", "Transaction is no longer pending"))
