"""
Inventory (Rewards Shop) API Endpoints.

Browsing is public, redemption needs any signed-in user, and catalogue
management is admin-only.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_inventory_service, get_redemption_coordinator
from backend.app.core.guards import require_admin, require_any_user
from backend.app.db.session import get_db
from backend.app.domain.ledger.redemption_coordinator import RedemptionCoordinator
from backend.app.schemas.common import Pagination
from backend.app.schemas.coupon import CouponTransactionResponse
from backend.app.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemDetailResponse,
    InventoryItemResponse,
    InventoryItemUpdate,
    RedeemRequest,
    RedeemResponse,
    RedemptionHistoryEntry,
    RedemptionHistoryResponse,
    RedemptionResponse,
    StockAdjustRequest,
)
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.inventory import InventoryService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("", response_model=List[InventoryItemResponse])
async def list_items(
    active_only: bool = Query(True, alias="activeOnly"),
    db: AsyncSession = Depends(get_db)
):
    """
    List reward items sorted by name.
    """
    items = await InventoryService.list_items(db, active_only=active_only)
    return [InventoryItemResponse.model_validate(item) for item in items]


@router.get("/redemptions/history", response_model=RedemptionHistoryResponse)
async def redemption_history(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    current_user: dict = Depends(require_any_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Redemption history, newest first.
    """
    redemptions, total = await InventoryService.redemption_history(db, page, limit)
    
    entries = []
    for redemption in redemptions:
        entry = RedemptionResponse.model_validate(redemption).model_dump()
        entries.append(RedemptionHistoryEntry(
            **entry,
            item_name=redemption.item.name,
            item_description=redemption.item.description
        ))
    
    return RedemptionHistoryResponse(
        redemptions=entries,
        pagination=Pagination.build(page, limit, total)
    )


@router.get("/{item_id}", response_model=InventoryItemDetailResponse)
async def get_item(item_id: int, db: AsyncSession = Depends(get_db)):
    """
    Get one item with its 10 most recent redemptions.
    """
    item, redemptions = await InventoryService.get_item(db, item_id)
    detail = InventoryItemResponse.model_validate(item).model_dump()
    return InventoryItemDetailResponse(
        **detail,
        redemptions=[RedemptionResponse.model_validate(r) for r in redemptions]
    )


@router.post("", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    data: InventoryItemCreate,
    current_user: dict = Depends(require_admin),
    service: InventoryService = Depends(get_inventory_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a reward item (Admin only).
    """
    item = await service.create_item(data)
    
    await log_event(
        db=db,
        action=AuditAction.INVENTORY_ITEM_CREATED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        metadata={"item_id": item.id, "name": item.name, "cost": item.cost, "stock": item.stock}
    )
    
    return InventoryItemResponse.model_validate(item)


@router.patch("/{item_id}", response_model=InventoryItemResponse)
async def update_item(
    item_id: int,
    data: InventoryItemUpdate,
    current_user: dict = Depends(require_admin),
    service: InventoryService = Depends(get_inventory_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Partially update a reward item (Admin only).
    
    Cost changes never affect past redemptions.
    """
    item = await service.update_item(item_id, data)
    
    await log_event(
        db=db,
        action=AuditAction.INVENTORY_ITEM_UPDATED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        metadata={"item_id": item.id, "changes": data.model_dump(exclude_unset=True)}
    )
    
    return InventoryItemResponse.model_validate(item)


@router.patch("/{item_id}/stock", response_model=InventoryItemResponse)
async def adjust_stock(
    item_id: int,
    request: StockAdjustRequest,
    current_user: dict = Depends(require_admin),
    service: InventoryService = Depends(get_inventory_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Increase or decrease stock (Admin only).
    """
    item = await service.adjust_stock(item_id, request.adjustment)
    
    await log_event(
        db=db,
        action=AuditAction.INVENTORY_STOCK_ADJUSTED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        metadata={"item_id": item.id, "adjustment": request.adjustment, "stock": item.stock}
    )
    
    return InventoryItemResponse.model_validate(item)


@router.delete("/{item_id}")
async def delete_item(
    item_id: int,
    current_user: dict = Depends(require_admin),
    service: InventoryService = Depends(get_inventory_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a never-redeemed item (Admin only).
    """
    await service.delete_item(item_id)
    
    await log_event(
        db=db,
        action=AuditAction.INVENTORY_ITEM_DELETED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        metadata={"item_id": item_id}
    )
    
    return {"message": "Inventory item deleted successfully"}


@router.post("/{item_id}/redeem", response_model=RedeemResponse)
async def redeem_item(
    item_id: int,
    request: RedeemRequest,
    current_user: dict = Depends(require_any_user),
    coordinator: RedemptionCoordinator = Depends(get_redemption_coordinator),
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange coupons for stock.
    
    Stock, balance, the redemption and its ledger entry change together or not at all.
    """
    result = await coordinator.redeem(
        item_id,
        quantity=request.quantity,
        notes=request.notes,
        user_id=current_user["user_id"]
    )
    
    await log_event(
        db=db,
        action=AuditAction.ITEM_REDEEMED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        metadata={
            "item_id": item_id,
            "redemption_id": result.redemption.id,
            "quantity": request.quantity,
            "total_cost": result.redemption.total_cost
        }
    )
    
    return RedeemResponse(
        redemption=RedemptionResponse.model_validate(result.redemption),
        item=InventoryItemResponse.model_validate(result.item),
        transaction=CouponTransactionResponse.model_validate(result.transaction),
        new_balance=result.new_balance
    )
