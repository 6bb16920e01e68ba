"""
Ledger Store.

Durable persistence of the coupon account and its append-only transaction log.

Every write runs inside `LedgerStore.unit_of_work()`:
1. Acquire the process-wide ledger write lock
2. Open a fresh session and transaction
3. SELECT ... FOR UPDATE the singleton account row
4. Caller validates and calls `apply()` for the balance change
5. Commit, or roll back on any exception
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, List, NamedTuple, Optional, Tuple

from sqlalchemy import select, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.exceptions import ConstraintViolationError
from backend.app.models.coupon_account import CouponAccount, LEDGER_ACCOUNT_ID
from backend.app.models.coupon_enums import TransactionKind
from backend.app.models.coupon_transaction import CouponTransaction

logger = logging.getLogger("wastetrack.ledger")

_write_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = weakref.WeakKeyDictionary()


def ledger_write_lock() -> asyncio.Lock:
    """
    Lock serializing ledger and stock writers within this process.
    
    One lock per event loop; the row lock taken inside the transaction
    covers writers in other processes.
    """
    loop = asyncio.get_running_loop()
    lock = _write_locks.get(loop)
    if lock is None:
        lock = asyncio.Lock()
        _write_locks[loop] = lock
    return lock


@dataclass(frozen=True)
class AccountDelta:
    """Change to apply to the account row."""
    balance: int
    total_used: int = 0


@dataclass
class TransactionFilter:
    """History query: [start, end) window, kind, 1-based page."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    kind: Optional[TransactionKind] = None
    page: int = 1
    page_size: int = 50


class CommitResult(NamedTuple):
    account: CouponAccount
    transaction: CouponTransaction
    previous_balance: int


class LedgerStore:
    """Persistence gateway for the coupon ledger."""
    
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
    
    async def get_account(self) -> CouponAccount:
        """
        Return the singleton account, creating it with zero values if absent.
        
        Never fails with "not found".
        """
        async with self.session_factory() as session:
            account = await session.get(CouponAccount, LEDGER_ACCOUNT_ID)
            if account is not None:
                return account
        
        await self._ensure_account()
        async with self.session_factory() as session:
            return await session.get(CouponAccount, LEDGER_ACCOUNT_ID)
    
    async def _ensure_account(self) -> None:
        async with self.session_factory() as session:
            if await session.get(CouponAccount, LEDGER_ACCOUNT_ID) is not None:
                return
            session.add(CouponAccount(id=LEDGER_ACCOUNT_ID, balance=0, total_used=0))
            try:
                await session.commit()
                logger.info("Initialized coupon account")
            except IntegrityError:
                # Another process created it first
                await session.rollback()
    
    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[Tuple[AsyncSession, CouponAccount]]:
        """
        Open one atomic, serialized write transaction with the account row locked.
        
        Yields:
            (session, account) - the session's transaction commits when the
            block exits normally and rolls back if it raises.
        """
        async with ledger_write_lock():
            await self._ensure_account()
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(CouponAccount)
                        .where(CouponAccount.id == LEDGER_ACCOUNT_ID)
                        .with_for_update()
                    )
                    account = result.scalar_one()
                    yield session, account
    
    @staticmethod
    async def apply(
        session: AsyncSession,
        account: CouponAccount,
        delta: AccountDelta,
        entry: CouponTransaction
    ) -> CouponTransaction:
        """
        Apply `delta` to the locked account and insert `entry`.
        
        Must be called inside `unit_of_work()`. Stamps `entry.resulting_balance`
        from the locked row.
        
        Raises:
            ConstraintViolationError: If balance would go negative or total_used would shrink
        """
        new_balance = account.balance + delta.balance
        if new_balance < 0:
            raise ConstraintViolationError(
                "Balance cannot go negative",
                details={"balance": account.balance, "delta": delta.balance}
            )
        if delta.total_used < 0:
            raise ConstraintViolationError(
                "Total used can only increase",
                details={"delta": delta.total_used}
            )
        
        account.balance = new_balance
        account.total_used = account.total_used + delta.total_used
        
        entry.resulting_balance = new_balance
        session.add(entry)
        await session.flush()
        return entry
    
    async def commit(self, delta: AccountDelta, entry: CouponTransaction) -> CommitResult:
        """
        Apply `delta` and insert `entry` as one atomic unit.
        
        Returns:
            CommitResult with the updated account, the stored transaction and
            the balance the locked row held before the change
        """
        async with self.unit_of_work() as (session, account):
            previous_balance = account.balance
            await self.apply(session, account, delta, entry)
        
        logger.info(
            "Ledger %s %+d -> balance %d",
            entry.kind.value, entry.amount, entry.resulting_balance
        )
        return CommitResult(account, entry, previous_balance)
    
    async def list_transactions(self, filters: TransactionFilter) -> Tuple[List[CouponTransaction], int]:
        """
        Read a page of history, newest first.
        
        Returns:
            (transactions on this page, total matching count)
        """
        conditions = []
        if filters.start is not None:
            conditions.append(CouponTransaction.created_at >= filters.start)
        if filters.end is not None:
            conditions.append(CouponTransaction.created_at < filters.end)
        if filters.kind is not None:
            conditions.append(CouponTransaction.kind == filters.kind)
        
        offset = (filters.page - 1) * filters.page_size
        
        async with self.session_factory() as session:
            total_result = await session.execute(
                select(func.count(CouponTransaction.id)).where(*conditions)
            )
            total = total_result.scalar()
            
            result = await session.execute(
                select(CouponTransaction)
                .where(*conditions)
                .order_by(desc(CouponTransaction.created_at), desc(CouponTransaction.id))
                .offset(offset)
                .limit(filters.page_size)
            )
            return list(result.scalars().all()), total
    
    async def all_transactions(self, start: Optional[datetime] = None) -> List[CouponTransaction]:
        """Full history in application order (oldest first)."""
        query = select(CouponTransaction).order_by(CouponTransaction.created_at, CouponTransaction.id)
        if start is not None:
            query = query.where(CouponTransaction.created_at >= start)
        
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
