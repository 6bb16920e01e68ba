"""
Coupon Transaction database model.

Append-only log of every balance change.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, Index
from backend.app.db.session import Base, utcnow
from backend.app.models.coupon_enums import TransactionKind


class CouponTransaction(Base):
    """
    Coupon Transaction model.
    
    Immutable record of one balance change. `resulting_balance` is the account
    balance right after this entry was applied and is never recomputed.
    NO updates or deletions allowed.
    """
    __tablename__ = "coupon_transactions"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    kind = Column(Enum(TransactionKind), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Signed
    resulting_balance = Column(Integer, nullable=False)
    
    reason = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    
    # Weak back-references (lookup only)
    linked_waste_record_id = Column(Integer, nullable=True, index=True)
    linked_redemption_id = Column(Integer, nullable=True, index=True)
    
    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    __table_args__ = (
        Index("ix_coupon_transactions_created_at_id", "created_at", "id"),
    )
    
    def __repr__(self):
        return f"<CouponTransaction(id={self.id}, kind='{self.kind.value}', amount={self.amount})>"
