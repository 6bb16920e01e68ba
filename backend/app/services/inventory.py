"""
Inventory Service.

Admin CRUD for the rewards shop. Every write that can touch `stock` runs in
the ledger unit of work so it serializes with redemptions.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.app.core.exceptions import (
    DuplicateItemError,
    InvalidAmountError,
    InvalidStockError,
    ItemInUseError,
    ItemNotFoundError,
)
from backend.app.core.reliability import with_retry
from backend.app.domain.ledger.ledger_store import LedgerStore
from backend.app.models.inventory_item import InventoryItem
from backend.app.models.redemption import Redemption
from backend.app.schemas.inventory import InventoryItemCreate, InventoryItemUpdate

logger = logging.getLogger("wastetrack.inventory")

RECENT_REDEMPTIONS = 10


def _check_cost(cost: Optional[int]) -> None:
    if cost is not None and cost < 1:
        raise InvalidAmountError("Cost must be at least 1 coupon", details={"cost": cost})


def _check_stock(stock: Optional[int]) -> None:
    if stock is not None and stock < 0:
        raise InvalidStockError(details={"stock": stock})


async def _name_taken(session: AsyncSession, name: str, exclude_id: Optional[int] = None) -> bool:
    query = select(InventoryItem.id).where(InventoryItem.name == name)
    if exclude_id is not None:
        query = query.where(InventoryItem.id != exclude_id)
    result = await session.execute(query)
    return result.first() is not None


async def _locked_item(session: AsyncSession, item_id: int) -> InventoryItem:
    result = await session.execute(
        select(InventoryItem).where(InventoryItem.id == item_id).with_for_update()
    )
    item = result.scalar_one_or_none()
    if not item:
        raise ItemNotFoundError(item_id)
    return item


class InventoryService:
    
    def __init__(self, store: LedgerStore):
        self.store = store
    
    @staticmethod
    async def list_items(db: AsyncSession, active_only: bool = True) -> List[InventoryItem]:
        query = select(InventoryItem).order_by(InventoryItem.name)
        if active_only:
            query = query.where(InventoryItem.is_active == True)
        result = await db.execute(query)
        return list(result.scalars().all())
    
    @staticmethod
    async def get_item(db: AsyncSession, item_id: int) -> Tuple[InventoryItem, List[Redemption]]:
        """
        Fetch an item and its most recent redemptions.
        
        Raises:
            ItemNotFoundError: If no such item
        """
        item = await db.get(InventoryItem, item_id)
        if not item:
            raise ItemNotFoundError(item_id)
        
        result = await db.execute(
            select(Redemption)
            .where(Redemption.item_id == item_id)
            .order_by(desc(Redemption.created_at), desc(Redemption.id))
            .limit(RECENT_REDEMPTIONS)
        )
        return item, list(result.scalars().all())
    
    async def create_item(self, data: InventoryItemCreate) -> InventoryItem:
        _check_cost(data.cost)
        _check_stock(data.stock)
        
        item = await with_retry(lambda: self._create_once(data), description="inventory create")
        logger.info("Created inventory item %s (%s)", item.id, item.name)
        return item
    
    async def _create_once(self, data: InventoryItemCreate) -> InventoryItem:
        try:
            async with self.store.session_factory() as session:
                if await _name_taken(session, data.name):
                    raise DuplicateItemError(data.name)
                
                item = InventoryItem(
                    name=data.name,
                    description=data.description,
                    cost=data.cost,
                    stock=data.stock,
                    is_active=data.is_active
                )
                session.add(item)
                await session.commit()
        except IntegrityError:
            raise DuplicateItemError(data.name)
        return item
    
    async def update_item(self, item_id: int, data: InventoryItemUpdate) -> InventoryItem:
        """
        Partially update an item; only fields present in the request change.
        
        Raises:
            ItemNotFoundError, InvalidAmountError, InvalidStockError, DuplicateItemError
        """
        changes = data.model_dump(exclude_unset=True)
        _check_cost(changes.get("cost"))
        _check_stock(changes.get("stock"))
        
        return await with_retry(
            lambda: self._update_once(item_id, changes), description="inventory update"
        )
    
    async def _update_once(self, item_id: int, changes: dict) -> InventoryItem:
        try:
            async with self.store.unit_of_work() as (session, _account):
                item = await _locked_item(session, item_id)
                
                if "name" in changes and await _name_taken(session, changes["name"], exclude_id=item_id):
                    raise DuplicateItemError(changes["name"])
                
                for field, value in changes.items():
                    if value is None and field in ("name", "cost", "stock", "is_active"):
                        continue
                    setattr(item, field, value)
                await session.flush()
        except IntegrityError:
            raise DuplicateItemError(changes.get("name", ""))
        
        return item
    
    async def adjust_stock(self, item_id: int, adjustment: int) -> InventoryItem:
        """
        Add (or remove, when negative) units of stock.
        
        Raises:
            ItemNotFoundError: If no such item
            InvalidStockError: If stock would go negative
        """
        item = await with_retry(
            lambda: self._adjust_stock_once(item_id, adjustment), description="stock adjustment"
        )
        logger.info("Stock of item %s adjusted by %+d -> %d", item_id, adjustment, item.stock)
        return item
    
    async def _adjust_stock_once(self, item_id: int, adjustment: int) -> InventoryItem:
        async with self.store.unit_of_work() as (session, _account):
            item = await _locked_item(session, item_id)
            
            new_stock = item.stock + adjustment
            if new_stock < 0:
                raise InvalidStockError(details={"stock": item.stock, "adjustment": adjustment})
            
            item.stock = new_stock
            await session.flush()
        return item
    
    async def delete_item(self, item_id: int) -> None:
        """
        Delete an item that has never been redeemed.
        
        Raises:
            ItemNotFoundError: If no such item
            ItemInUseError: If redemptions reference it
        """
        await with_retry(lambda: self._delete_once(item_id), description="inventory delete")
        logger.info("Deleted inventory item %s", item_id)
    
    async def _delete_once(self, item_id: int) -> None:
        async with self.store.unit_of_work() as (session, _account):
            item = await _locked_item(session, item_id)
            
            result = await session.execute(
                select(func.count(Redemption.id)).where(Redemption.item_id == item_id)
            )
            if result.scalar():
                raise ItemInUseError(item_id)
            
            await session.delete(item)
    
    @staticmethod
    async def redemption_history(db: AsyncSession, page: int, limit: int) -> Tuple[List[Redemption], int]:
        """Redemptions newest first, with their items loaded."""
        total_result = await db.execute(select(func.count(Redemption.id)))
        total = total_result.scalar()
        
        result = await db.execute(
            select(Redemption)
            .options(selectinload(Redemption.item))
            .order_by(desc(Redemption.created_at), desc(Redemption.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total
