"""
Inventory (rewards shop) Pydantic schemas.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional, List

from backend.app.schemas.common import CamelModel, Pagination
from backend.app.schemas.coupon import CouponTransactionResponse


class InventoryItemCreate(CamelModel):
    """Schema for creating a reward item."""
    name: str = Field(..., min_length=1, max_length=191)
    description: Optional[str] = Field(None, max_length=500)
    cost: int
    stock: int = 0
    is_active: bool = True


class InventoryItemUpdate(CamelModel):
    """Schema for partially updating a reward item."""
    name: Optional[str] = Field(None, min_length=1, max_length=191)
    description: Optional[str] = Field(None, max_length=500)
    cost: Optional[int] = None
    stock: Optional[int] = None
    is_active: Optional[bool] = None


class StockAdjustRequest(CamelModel):
    adjustment: int


class InventoryItemResponse(CamelModel):
    id: int
    name: str
    description: Optional[str]
    cost: int
    stock: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class RedemptionResponse(CamelModel):
    id: int
    item_id: int
    quantity: int
    total_cost: int
    notes: Optional[str]
    redeemed_by_user_id: Optional[int]
    created_at: datetime


class InventoryItemDetailResponse(InventoryItemResponse):
    """Item with its most recent redemptions."""
    redemptions: List[RedemptionResponse] = []


class RedeemRequest(CamelModel):
    quantity: int = 1
    notes: Optional[str] = Field(None, max_length=2000)


class RedeemResponse(CamelModel):
    redemption: RedemptionResponse
    item: InventoryItemResponse
    transaction: CouponTransactionResponse
    new_balance: int


class RedemptionHistoryEntry(RedemptionResponse):
    item_name: str
    item_description: Optional[str]


class RedemptionHistoryResponse(CamelModel):
    redemptions: List[RedemptionHistoryEntry]
    pagination: Pagination
