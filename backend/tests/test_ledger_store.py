"""
Ledger Store Tests.

Validates account bootstrap, atomic commits and history reads.
"""

import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import select, func

from backend.app.core.exceptions import ConstraintViolationError
from backend.app.domain.ledger.ledger_store import AccountDelta, TransactionFilter
from backend.app.models.coupon_account import CouponAccount
from backend.app.models.coupon_enums import TransactionKind
from backend.app.models.coupon_transaction import CouponTransaction


def _entry(kind, amount, reason="test"):
    return CouponTransaction(kind=kind, amount=amount, reason=reason)


@pytest.mark.asyncio
async def test_account_created_on_first_read(store, db_session):
    account = await store.get_account()
    
    assert account.id == 1
    assert account.balance == 0
    assert account.total_used == 0
    
    # Second read must not create another row
    await store.get_account()
    count = await db_session.scalar(select(func.count(CouponAccount.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_commit_stamps_resulting_balance(store):
    first = await store.commit(AccountDelta(balance=30), _entry(TransactionKind.ADD, 30))
    second = await store.commit(
        AccountDelta(balance=-12, total_used=12), _entry(TransactionKind.CONSUME, -12)
    )
    
    assert first.previous_balance == 0
    assert first.transaction.resulting_balance == 30
    assert second.previous_balance == 30
    assert second.transaction.resulting_balance == 18
    assert second.account.balance == 18
    assert second.account.total_used == 12


@pytest.mark.asyncio
async def test_commit_rejects_negative_balance_without_writing(store, db_session):
    await store.commit(AccountDelta(balance=5), _entry(TransactionKind.ADD, 5))
    
    with pytest.raises(ConstraintViolationError) as exc_info:
        await store.commit(AccountDelta(balance=-6), _entry(TransactionKind.ADJUST, -6))
    assert exc_info.value.details == {"balance": 5, "delta": -6}
    
    account = await store.get_account()
    assert account.balance == 5
    count = await db_session.scalar(select(func.count(CouponTransaction.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_commit_rejects_shrinking_total_used(store):
    with pytest.raises(ConstraintViolationError):
        await store.commit(
            AccountDelta(balance=0, total_used=-1), _entry(TransactionKind.ADJUST, 0)
        )


@pytest.mark.asyncio
async def test_list_transactions_newest_first_with_total(store):
    for amount in (1, 2, 3, 4, 5):
        await store.commit(AccountDelta(balance=amount), _entry(TransactionKind.ADD, amount))
    
    page, total = await store.list_transactions(TransactionFilter(page=1, page_size=2))
    assert total == 5
    assert [tx.amount for tx in page] == [5, 4]
    
    last_page, _ = await store.list_transactions(TransactionFilter(page=3, page_size=2))
    assert [tx.amount for tx in last_page] == [1]


@pytest.mark.asyncio
async def test_list_transactions_filters_kind_and_window(store, db_session):
    await store.get_account()
    old = datetime.now(timezone.utc) - timedelta(days=40)
    db_session.add_all([
        CouponTransaction(kind=TransactionKind.ADD, amount=10, resulting_balance=10, reason="old", created_at=old),
        CouponTransaction(kind=TransactionKind.ADJUST, amount=-2, resulting_balance=8, reason="fix"),
        CouponTransaction(kind=TransactionKind.ADD, amount=3, resulting_balance=11, reason="new"),
    ])
    await db_session.commit()
    
    adds, total = await store.list_transactions(TransactionFilter(kind=TransactionKind.ADD))
    assert total == 2
    assert {tx.reason for tx in adds} == {"old", "new"}
    
    recent, total = await store.list_transactions(
        TransactionFilter(start=datetime.now(timezone.utc) - timedelta(days=7))
    )
    assert total == 2
    assert {tx.reason for tx in recent} == {"fix", "new"}
