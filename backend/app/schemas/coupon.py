"""
Coupon ledger Pydantic schemas.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional, List

from backend.app.models.coupon_enums import TransactionKind
from backend.app.schemas.common import CamelModel, Pagination


class CouponAddRequest(CamelModel):
    """Admin top-up. Presence and sign are checked by the ledger, not here, so errors stay 400."""
    amount: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=2000)


class CouponAdjustRequest(CamelModel):
    """Manual correction in either direction."""
    amount: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)


class CouponTransactionResponse(CamelModel):
    id: int
    kind: TransactionKind
    amount: int
    resulting_balance: int
    reason: str
    notes: Optional[str]
    linked_waste_record_id: Optional[int]
    linked_redemption_id: Optional[int]
    created_at: datetime


class CouponBalanceResponse(CamelModel):
    balance: int
    used: int
    available: int


class CouponMutationResponse(CamelModel):
    """Response for add and adjust."""
    previous_balance: int
    added_amount: int
    new_balance: int
    transaction: CouponTransactionResponse


class CouponTransactionListResponse(CamelModel):
    data: List[CouponTransactionResponse]
    pagination: Pagination


class CouponSummaryBucket(CamelModel):
    period: str
    added: int = 0
    used: int = 0
    adjusted: int = 0
    transactions: int = 0


class CouponSummaryResponse(CamelModel):
    period: str
    data: List[CouponSummaryBucket]
