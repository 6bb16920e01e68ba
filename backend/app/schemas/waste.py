"""
Waste submission Pydantic schemas.
"""

from pydantic import Field
import datetime as dt
from typing import Optional

from backend.app.schemas.common import CamelModel


class WasteRecordCreate(CamelModel):
    """Amounts per waste category; the date is assigned by the server."""
    recyclable: float = Field(..., ge=0)
    biodegradable: float = Field(..., ge=0)
    non_biodegradable: float = Field(..., ge=0)


class CouponConsumption(CamelModel):
    """What happened to the coupon ledger for this submission."""
    status: str  # APPLIED, SKIPPED_INSUFFICIENT_FUNDS, NOT_REQUIRED, FAILED
    amount: int
    transaction_id: Optional[int] = None
    balance: Optional[int] = None


class WasteRecordResponse(CamelModel):
    id: int
    date: dt.date
    recorded_at: dt.datetime
    recyclable: float
    biodegradable: float
    non_biodegradable: float
    total: float
    coupon: CouponConsumption
