"""
Balance Mutator (Domain Logic).

Single entry point for every non-redemption coupon balance change:
Add, Adjust and Consume. Each call produces exactly one transaction record.

Flow per call:
1. Validate the request itself (amount, reason)
2. Commit the delta through the ledger store, wrapped in retry
3. Translate a balance rejection from the locked row into the caller-facing outcome

The balance is only ever checked against the locked row, never a prior read.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from backend.app.core.exceptions import (
    ConstraintViolationError,
    InsufficientBalanceError,
    InvalidAmountError,
    MissingReasonError,
)
from backend.app.core.reliability import with_retry
from backend.app.domain.ledger.ledger_store import AccountDelta, CommitResult, LedgerStore
from backend.app.models.coupon_enums import TransactionKind
from backend.app.models.coupon_transaction import CouponTransaction

logger = logging.getLogger("wastetrack.ledger")


class ConsumeStatus(str, enum.Enum):
    APPLIED = "APPLIED"
    SKIPPED_INSUFFICIENT_FUNDS = "SKIPPED_INSUFFICIENT_FUNDS"


@dataclass(frozen=True)
class ConsumeOutcome:
    """
    Result of an automatic debit.
    
    A shortfall is a normal outcome, not an error: `transaction` is None and
    the balance is untouched.
    """
    status: ConsumeStatus
    requested: int
    balance: int
    transaction: Optional[CouponTransaction] = None
    
    @property
    def applied(self) -> bool:
        return self.status == ConsumeStatus.APPLIED


def _require_int(amount, missing_message: str = "Amount must be a positive number") -> int:
    if amount is None:
        raise InvalidAmountError(missing_message)
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError("Amount must be a whole number of coupons")
    return amount


class BalanceMutator:
    
    def __init__(self, store: LedgerStore):
        self.store = store
    
    async def _commit(self, delta: AccountDelta, entry: CouponTransaction) -> CommitResult:
        return await with_retry(
            lambda: self.store.commit(delta, self._fresh(entry)),
            description=f"coupon {entry.kind.value.lower()}"
        )
    
    @staticmethod
    def _fresh(entry: CouponTransaction) -> CouponTransaction:
        # A failed attempt may have attached the instance to a dead session
        return CouponTransaction(
            kind=entry.kind,
            amount=entry.amount,
            reason=entry.reason,
            notes=entry.notes,
            linked_waste_record_id=entry.linked_waste_record_id,
            linked_redemption_id=entry.linked_redemption_id,
        )
    
    async def add(self, amount: int, notes: Optional[str] = None) -> CommitResult:
        """
        Top up the balance.
        
        Raises:
            InvalidAmountError: If amount <= 0
        """
        amount = _require_int(amount)
        if amount <= 0:
            raise InvalidAmountError("Amount must be a positive number", details={"amount": amount})
        
        entry = CouponTransaction(
            kind=TransactionKind.ADD,
            amount=amount,
            reason="Admin added coupons",
            notes=notes,
        )
        return await self._commit(AccountDelta(balance=amount), entry)
    
    async def adjust(self, amount: int, reason: Optional[str], notes: Optional[str] = None) -> CommitResult:
        """
        Manually correct the balance in either direction.
        
        Raises:
            InvalidAmountError: If amount == 0
            MissingReasonError: If reason is empty
            InsufficientBalanceError: If the result would be negative
        """
        amount = _require_int(amount, missing_message="Amount cannot be zero")
        if amount == 0:
            raise InvalidAmountError("Amount cannot be zero", details={"amount": amount})
        if reason is None or not reason.strip():
            raise MissingReasonError()
        
        entry = CouponTransaction(
            kind=TransactionKind.ADJUST,
            amount=amount,
            reason=reason.strip(),
            notes=notes,
        )
        try:
            return await self._commit(AccountDelta(balance=amount), entry)
        except ConstraintViolationError as exc:
            raise InsufficientBalanceError(
                balance=exc.details.get("balance", 0),
                required=-amount,
                message="Adjustment would result in negative balance"
            ) from exc
    
    async def consume(self, waste_record_id: Optional[int], amount: int) -> ConsumeOutcome:
        """
        Automatic debit for processed waste.
        
        Never raises for a shortfall: logs it and returns a skipped outcome so
        waste recording is never blocked by the coupon balance.
        
        Raises:
            InvalidAmountError: If amount <= 0 (caller bug)
        """
        amount = _require_int(amount)
        if amount <= 0:
            raise InvalidAmountError("Amount must be a positive number", details={"amount": amount})
        
        entry = CouponTransaction(
            kind=TransactionKind.CONSUME,
            amount=-amount,
            reason="Waste record processed",
            notes=f"Auto-consumed {amount} coupon(s) for waste processing",
            linked_waste_record_id=waste_record_id,
        )
        try:
            result = await self._commit(AccountDelta(balance=-amount, total_used=amount), entry)
        except ConstraintViolationError as exc:
            return self._skip(waste_record_id, amount, exc.details.get("balance", 0))
        
        return ConsumeOutcome(
            status=ConsumeStatus.APPLIED,
            requested=amount,
            balance=result.account.balance,
            transaction=result.transaction,
        )
    
    @staticmethod
    def _skip(waste_record_id: Optional[int], amount: int, balance: int) -> ConsumeOutcome:
        logger.warning(
            "Insufficient coupon balance, skipping consumption for waste record %s "
            "(requested %d, available %d)",
            waste_record_id, amount, balance
        )
        return ConsumeOutcome(
            status=ConsumeStatus.SKIPPED_INSUFFICIENT_FUNDS,
            requested=amount,
            balance=balance,
        )
