"""
Inventory Item database model.

Rewards that can be bought with coupons.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint
from backend.app.db.session import Base, utcnow


class InventoryItem(Base):
    """
    Inventory Item model.
    
    `stock` is decremented by redemptions inside the ledger unit of work.
    """
    __tablename__ = "inventory_items"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    name = Column(String(191), unique=True, nullable=False)
    description = Column(String(500), nullable=True)
    
    cost = Column(Integer, nullable=False, default=1)  # Coupons per unit
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    
    __table_args__ = (
        CheckConstraint("cost >= 1", name="ck_inventory_items_cost_positive"),
        CheckConstraint("stock >= 0", name="ck_inventory_items_stock_non_negative"),
    )
    
    def __repr__(self):
        return f"<InventoryItem(id={self.id}, name='{self.name}', cost={self.cost}, stock={self.stock})>"
