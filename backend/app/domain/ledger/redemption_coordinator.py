"""
Redemption Coordinator (Domain Logic).

Exchanges coupons for inventory stock as one all-or-nothing unit spanning
the coupon account and the inventory item.

Flow (single ledger unit of work):
1. Lock the account row (unit of work) and the item row
2. Check item exists, is active, has stock; check balance covers item.cost * quantity
3. Decrement stock, debit balance, grow total_used
4. Insert the Redemption and its CONSUME transaction

Any failed check raises before a single row changes.
"""

import logging
from typing import NamedTuple, Optional

from sqlalchemy import select

from backend.app.core.exceptions import (
    InsufficientBalanceError,
    InsufficientStockError,
    InvalidAmountError,
    ItemInactiveError,
    ItemNotFoundError,
)
from backend.app.core.reliability import with_retry
from backend.app.domain.ledger.ledger_store import AccountDelta, LedgerStore
from backend.app.models.coupon_enums import TransactionKind
from backend.app.models.coupon_transaction import CouponTransaction
from backend.app.models.inventory_item import InventoryItem
from backend.app.models.redemption import Redemption

logger = logging.getLogger("wastetrack.ledger")


class RedemptionResult(NamedTuple):
    redemption: Redemption
    item: InventoryItem
    transaction: CouponTransaction
    new_balance: int


class RedemptionCoordinator:
    
    def __init__(self, store: LedgerStore):
        self.store = store
    
    async def redeem(
        self,
        item_id: int,
        quantity: int = 1,
        notes: Optional[str] = None,
        user_id: Optional[int] = None
    ) -> RedemptionResult:
        """
        Redeem `quantity` units of an inventory item.
        
        Raises:
            InvalidAmountError: quantity < 1
            ItemNotFoundError: No such item
            ItemInactiveError: Item is deactivated
            InsufficientStockError: item.stock < quantity
            InsufficientBalanceError: balance < item.cost * quantity
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidAmountError("Quantity must be at least 1", details={"quantity": quantity})
        
        result = await with_retry(
            lambda: self._redeem_once(item_id, quantity, notes, user_id),
            description="item redemption"
        )
        logger.info(
            "Redeemed %dx %s for %d coupons -> balance %d",
            quantity, result.item.name, result.redemption.total_cost, result.new_balance
        )
        return result
    
    async def _redeem_once(
        self,
        item_id: int,
        quantity: int,
        notes: Optional[str],
        user_id: Optional[int]
    ) -> RedemptionResult:
        async with self.store.unit_of_work() as (session, account):
            item_result = await session.execute(
                select(InventoryItem).where(InventoryItem.id == item_id).with_for_update()
            )
            item = item_result.scalar_one_or_none()
            
            if not item:
                raise ItemNotFoundError(item_id)
            if not item.is_active:
                raise ItemInactiveError(item_id)
            if item.stock < quantity:
                raise InsufficientStockError(item_id, item.stock, quantity)
            
            # Frozen here; later price changes never reach this redemption
            total_cost = item.cost * quantity
            
            if account.balance < total_cost:
                raise InsufficientBalanceError(
                    balance=account.balance,
                    required=total_cost,
                    message="Not enough coupons to redeem this item"
                )
            
            item.stock = item.stock - quantity
            
            redemption = Redemption(
                item_id=item.id,
                quantity=quantity,
                total_cost=total_cost,
                notes=notes,
                redeemed_by_user_id=user_id,
            )
            session.add(redemption)
            await session.flush()  # To get redemption.id
            
            entry = CouponTransaction(
                kind=TransactionKind.CONSUME,
                amount=-total_cost,
                reason=f"Redeemed {quantity}x {item.name}",
                notes=notes,
                linked_redemption_id=redemption.id,
            )
            await self.store.apply(
                session, account, AccountDelta(balance=-total_cost, total_used=total_cost), entry
            )
        
        return RedemptionResult(redemption, item, entry, account.balance)
