from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from ciam.app.services.mfa_transaction_manager import (
    MfaTransactionManager,
    generate_otp,
    generate_push_numbers,
    hash_code,
)
from ciam.domain.entities import AuthTransaction, MfaMethod, TransactionStatus
from tests.utils.api_helpers import RecordingOtpSender


def make_transaction(clock, **overrides):
    fields = dict(
        context_id=uuid4(),
        subject_id=uuid4(),
        method=MfaMethod.sms,
        challenge_hash=hash_code("123456"),
        created_at=clock.now,
        updated_at=clock.now,
        expires_at=clock.now + timedelta(seconds=120),
    )
    fields.update(overrides)
    return AuthTransaction(**fields)


@pytest.fixture
def txn_uow(mock_uow):
    """auth_transactions backed by a single in-memory row"""
    state = {}
    repo = mock_uow.auth_transactions

    async def get_by_id(transaction_id):
        row = state.get("row")
        return row if row is not None and row.id == transaction_id else None

    async def transition_status(transaction_id, status, now, response=None):
        row = state["row"]
        if row.status != TransactionStatus.PENDING:
            return False
        row.status = status
        row.response = response
        row.resolved_at = now
        return True

    async def increment_attempts(transaction_id, now):
        row = state["row"]
        if row.status != TransactionStatus.PENDING:
            return 0
        row.attempt_count += 1
        return row.attempt_count

    repo.get_by_id = AsyncMock(side_effect=get_by_id)
    repo.transition_status = AsyncMock(side_effect=transition_status)
    repo.increment_attempts = AsyncMock(side_effect=increment_attempts)
    repo.expire_pending_by_context = AsyncMock(return_value=0)
    repo.create = AsyncMock(side_effect=lambda row: state.update(row=row) or row)
    mock_uow.state = state
    return mock_uow


def test_generate_otp_is_zero_padded_digits():
    for _ in range(50):
        code = generate_otp(6)
        assert len(code) == 6
        assert code.isdigit()


def test_push_numbers_contain_display_number_and_two_decoys():
    for _ in range(50):
        display_number, choices = generate_push_numbers()
        assert display_number in choices
        assert len(set(choices)) == 3
        assert all(1 <= n <= 9 for n in choices)


@pytest.mark.asyncio
async def test_initiate_otp_stores_only_the_hash(txn_uow, config, clock):
    sender = RecordingOtpSender()
    manager = MfaTransactionManager(txn_uow, otp_sender=sender, config=config, clock=clock)
    context_id = uuid4()

    transaction = await manager.initiate(
        context_id, uuid4(), MfaMethod.sms, mfa_option_id=1, destination="***-***-1234"
    )

    code = sender.codes[str(transaction.id)]
    assert transaction.challenge_hash == hash_code(code)
    assert code not in str(transaction.transaction_metadata)
    assert transaction.expires_at == clock.now + timedelta(
        seconds=config.MFA_TRANSACTION_TTL_SECONDS
    )
    txn_uow.auth_transactions.expire_pending_by_context.assert_called_once_with(
        context_id, clock.now
    )


@pytest.mark.asyncio
async def test_verify_otp_correct_code_approves(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(clock)
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    result = await manager.verify_otp(transaction.id, "123456")

    assert result.is_ok()
    assert transaction.status == TransactionStatus.APPROVED


@pytest.mark.asyncio
async def test_verify_otp_mismatch_is_retryable(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(clock)
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    result = await manager.verify_otp(transaction.id, "000000")

    assert result.is_err()
    assert result.error.code == "INVALID_MFA_CODE"
    assert result.error.details == {"attempts": 1, "attempts_remaining": 2}
    assert transaction.status == TransactionStatus.PENDING

    assert (await manager.verify_otp(transaction.id, "123456")).is_ok()


@pytest.mark.asyncio
async def test_verify_otp_locks_at_attempt_limit(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(clock)
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    for _ in range(config.MFA_MAX_OTP_ATTEMPTS - 1):
        result = await manager.verify_otp(transaction.id, "000000")
        assert result.error.code == "INVALID_MFA_CODE"

    result = await manager.verify_otp(transaction.id, "000000")
    assert result.error.code == "MFA_LOCKED"
    assert transaction.status == TransactionStatus.REJECTED
    assert transaction.response == "attempts_exhausted"

    # The correct code no longer helps
    result = await manager.verify_otp(transaction.id, "123456")
    assert result.error.code == "TRANSACTION_NOT_PENDING"


@pytest.mark.asyncio
async def test_verify_otp_expires_exactly_at_deadline(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(clock)
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    clock.now = transaction.expires_at
    result = await manager.verify_otp(transaction.id, "123456")

    assert result.error.code == "TRANSACTION_EXPIRED"
    assert transaction.status == TransactionStatus.EXPIRED


@pytest.mark.asyncio
async def test_get_status_expires_overdue_pending(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(
        clock, method=MfaMethod.push, challenge_hash=None, display_number=4
    )
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    assert (await manager.get_status(transaction.id)).value.status == TransactionStatus.PENDING

    clock.now += timedelta(seconds=120)
    assert (await manager.get_status(transaction.id)).value.status == TransactionStatus.EXPIRED


@pytest.mark.asyncio
async def test_respond_push_wrong_number_rejects(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(
        clock, method=MfaMethod.push, challenge_hash=None, display_number=4
    )
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    result = await manager.respond_push(transaction.id, approved=True, selected_number=7)

    assert result.is_ok()
    assert result.value.status == TransactionStatus.REJECTED
    assert result.value.response == "number_mismatch"


@pytest.mark.asyncio
async def test_respond_push_after_resolution_is_not_pending(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(
        clock, method=MfaMethod.push, challenge_hash=None, display_number=4
    )
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    first = await manager.respond_push(transaction.id, approved=True, selected_number=4)
    second = await manager.respond_push(transaction.id, approved=False)

    assert first.value.status == TransactionStatus.APPROVED
    assert second.error.code == "TRANSACTION_NOT_PENDING"
    assert transaction.status == TransactionStatus.APPROVED


@pytest.mark.asyncio
async def test_respond_push_losing_the_race(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(
        clock, method=MfaMethod.push, challenge_hash=None, display_number=4
    )
    # Another writer resolves the row between our read and our write
    txn_uow.auth_transactions.transition_status = AsyncMock(return_value=False)
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    result = await manager.respond_push(transaction.id, approved=True, selected_number=4)

    assert result.error.code == "TRANSACTION_NOT_PENDING"


@pytest.mark.asyncio
async def test_push_transaction_refuses_codes(txn_uow, config, clock):
    txn_uow.state["row"] = transaction = make_transaction(
        clock, method=MfaMethod.push, challenge_hash=None, display_number=4
    )
    manager = MfaTransactionManager(txn_uow, config=config, clock=clock)

    result = await manager.verify_otp(transaction.id, "123456")

    assert result.error.code == "MFA_METHOD_NOT_AVAILABLE"
