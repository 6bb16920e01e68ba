"""
Audit logging service for tracking admin actions and redemptions.

Provides centralized logging for accountability. Audit rows are never part of
balance computation.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Coupon ledger
    COUPONS_ADDED = "COUPONS_ADDED"
    COUPONS_ADJUSTED = "COUPONS_ADJUSTED"
    
    # Rewards shop
    INVENTORY_ITEM_CREATED = "INVENTORY_ITEM_CREATED"
    INVENTORY_ITEM_UPDATED = "INVENTORY_ITEM_UPDATED"
    INVENTORY_STOCK_ADJUSTED = "INVENTORY_STOCK_ADJUSTED"
    INVENTORY_ITEM_DELETED = "INVENTORY_ITEM_DELETED"
    ITEM_REDEEMED = "ITEM_REDEEMED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an admin or user event to the audit log.
    
    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        metadata: Additional context as JSON
        
    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        meta_data=metadata
    )
    
    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)
    
    return audit_log

