"""
Waste Recording Service.

Persists a waste submission, then debits coupons for it. The coupon step is
best-effort: a shortfall or ledger failure is logged and reported, never raised.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import async_sessionmaker

from backend.app.core.config import settings
from backend.app.core.reliability import with_retry
from backend.app.domain.ledger.balance_mutator import BalanceMutator
from backend.app.models.waste_record import WasteRecord
from backend.app.schemas.waste import CouponConsumption, WasteRecordCreate, WasteRecordResponse

logger = logging.getLogger("wastetrack.waste")


def coupons_for(total_waste: float, rate: int) -> int:
    """Coupons owed for a submission, rounded to whole coupons."""
    return int(round(total_waste * rate))


class WasteRecordingService:
    
    def __init__(self, session_factory: async_sessionmaker, mutator: BalanceMutator):
        self.session_factory = session_factory
        self.mutator = mutator
    
    async def _insert(self, data: WasteRecordCreate) -> WasteRecord:
        recorded_at = datetime.now(timezone.utc)
        async with self.session_factory() as session:
            record = WasteRecord(
                recyclable=data.recyclable,
                biodegradable=data.biodegradable,
                non_biodegradable=data.non_biodegradable,
                date=recorded_at.date(),
                recorded_at=recorded_at
            )
            session.add(record)
            await session.commit()
        return record
    
    async def submit(self, data: WasteRecordCreate) -> WasteRecordResponse:
        """
        Record waste volumes and consume coupons for them.
        
        Returns:
            The stored record plus the coupon outcome
        """
        record = await with_retry(lambda: self._insert(data), description="waste record insert")
        
        amount = coupons_for(record.total, settings.coupon_consumption_rate)
        coupon = await self._consume(record.id, amount)
        
        return WasteRecordResponse(
            id=record.id,
            date=record.date,
            recorded_at=record.recorded_at,
            recyclable=record.recyclable,
            biodegradable=record.biodegradable,
            non_biodegradable=record.non_biodegradable,
            total=record.total,
            coupon=coupon
        )
    
    async def _consume(self, waste_record_id: int, amount: int) -> CouponConsumption:
        if amount <= 0:
            return CouponConsumption(status="NOT_REQUIRED", amount=0)
        
        try:
            outcome = await self.mutator.consume(waste_record_id, amount)
        except Exception:
            # Waste logging must succeed regardless of the ledger
            logger.exception("Could not consume coupons for waste record %s", waste_record_id)
            return CouponConsumption(status="FAILED", amount=amount)
        
        if outcome.applied:
            logger.info("Consumed %d coupons for waste record %s", amount, waste_record_id)
        
        return CouponConsumption(
            status=outcome.status.value,
            amount=amount,
            transaction_id=outcome.transaction.id if outcome.transaction else None,
            balance=outcome.balance
        )
