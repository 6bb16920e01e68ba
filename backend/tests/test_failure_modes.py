"""
Failure Injection Tests.

Validates retry classification, backoff and that a failed attempt
never leaves partial ledger state behind.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, OperationalError

from backend.app.core.exceptions import InsufficientBalanceError
from backend.app.core.reliability import backoff_delay, is_transient, with_retry
from backend.app.domain.ledger.ledger_store import LedgerStore
from backend.app.models.coupon_transaction import CouponTransaction


def _operational_error():
    return OperationalError("UPDATE coupon_accounts", {}, ConnectionError("connection reset"))


def test_transient_classification():
    assert is_transient(_operational_error())
    assert is_transient(ConnectionError("refused"))
    assert is_transient(asyncio.TimeoutError())
    
    assert not is_transient(IntegrityError("INSERT", {}, Exception("duplicate key")))
    assert not is_transient(InsufficientBalanceError(balance=0, required=5))
    assert not is_transient(ValueError("boom"))


def test_backoff_grows_fourfold():
    assert backoff_delay(1, 0.1) == pytest.approx(0.1)
    assert backoff_delay(2, 0.1) == pytest.approx(0.4)
    assert backoff_delay(3, 0.1) == pytest.approx(1.6)


@pytest.mark.asyncio
async def test_retry_recovers_from_transient_failure():
    calls = {"n": 0}
    
    async def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise _operational_error()
        return 42
    
    assert await with_retry(flaky, attempts=3, base_delay=0) == 42
    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_retry_gives_up_after_attempts():
    operation = AsyncMock(side_effect=_operational_error())
    
    with pytest.raises(OperationalError):
        await with_retry(operation, attempts=3, base_delay=0)
    assert operation.await_count == 3


@pytest.mark.asyncio
async def test_permanent_error_not_retried():
    operation = AsyncMock(side_effect=InsufficientBalanceError(balance=1, required=2))
    
    with pytest.raises(InsufficientBalanceError):
        await with_retry(operation, attempts=3, base_delay=0)
    assert operation.await_count == 1


@pytest.mark.asyncio
async def test_retry_sleeps_with_backoff(mocker):
    sleep = mocker.patch("backend.app.core.reliability.asyncio.sleep", new_callable=AsyncMock)
    operation = AsyncMock(side_effect=[_operational_error(), _operational_error(), "ok"])
    
    assert await with_retry(operation, attempts=3, base_delay=0.1) == "ok"
    
    delays = [c.args[0] for c in sleep.await_args_list]
    assert delays == [pytest.approx(0.1), pytest.approx(0.4)]


@pytest.mark.asyncio
async def test_failed_attempt_rolls_back_before_retry(mutator, db_session, mocker):
    """Failure after the balance write is undone; the retry applies exactly once."""
    real_apply = LedgerStore.apply
    calls = {"n": 0}
    
    async def apply_then_fail(session, account, delta, entry):
        calls["n"] += 1
        result = await real_apply(session, account, delta, entry)
        if calls["n"] == 1:
            raise _operational_error()
        return result
    
    mocker.patch.object(LedgerStore, "apply", side_effect=apply_then_fail)
    
    result = await mutator.add(25)
    
    assert calls["n"] == 2
    assert result.account.balance == 25
    account = await mutator.store.get_account()
    assert account.balance == 25
    count = await db_session.scalar(select(func.count(CouponTransaction.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_exhausted_retries_leave_ledger_untouched(mutator, db_session, mocker):
    mocker.patch.object(LedgerStore, "apply", side_effect=_operational_error())
    
    with pytest.raises(OperationalError):
        await mutator.add(10)
    
    mocker.stopall()
    account = await mutator.store.get_account()
    assert account.balance == 0
    count = await db_session.scalar(select(func.count(CouponTransaction.id)))
    assert count == 0
