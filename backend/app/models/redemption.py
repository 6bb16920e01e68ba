"""
Redemption database model.

Immutable record of coupons exchanged for inventory stock.
"""

from sqlalchemy import Column, Integer, Text, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from backend.app.db.session import Base, utcnow


class Redemption(Base):
    """
    Redemption model.
    
    `total_cost` is item.cost * quantity frozen at redemption time;
    later price changes never touch it.
    """
    __tablename__ = "inventory_redemptions"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    total_cost = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    
    # Who redeemed (from the access token, None for internal callers)
    redeemed_by_user_id = Column(Integer, nullable=True, index=True)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    item = relationship("InventoryItem", lazy="raise")
    
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_inventory_redemptions_quantity_positive"),
    )
    
    def __repr__(self):
        return f"<Redemption(id={self.id}, item_id={self.item_id}, quantity={self.quantity}, total_cost={self.total_cost})>"
