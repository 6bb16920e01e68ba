"""
Coupon Account database model.

Singleton row holding the current coupon balance.
"""

from sqlalchemy import Column, Integer, DateTime, CheckConstraint
from backend.app.db.session import Base, utcnow

# The one and only account row
LEDGER_ACCOUNT_ID = 1


class CouponAccount(Base):
    """
    Coupon Account model.
    
    Exactly one row exists (id = 1), created lazily on first access.
    Only the ledger store mutates it, always under a row lock.
    """
    __tablename__ = "coupon_accounts"
    
    id = Column(Integer, primary_key=True, autoincrement=False)
    
    balance = Column(Integer, nullable=False, default=0)
    total_used = Column(Integer, nullable=False, default=0)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    
    __table_args__ = (
        CheckConstraint(f"id = {LEDGER_ACCOUNT_ID}", name="ck_coupon_accounts_singleton"),
        CheckConstraint("balance >= 0", name="ck_coupon_accounts_balance_non_negative"),
        CheckConstraint("total_used >= 0", name="ck_coupon_accounts_total_used_non_negative"),
    )
    
    def __repr__(self):
        return f"<CouponAccount(balance={self.balance}, total_used={self.total_used})>"
