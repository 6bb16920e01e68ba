"""
Database seeding script for the rewards shop.

Creates the coupon account and a starter set of reward items for testing
and development. Run this script after database is set up but before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import AsyncSessionLocal, Base, engine
from backend.app.domain.ledger.ledger_store import LedgerStore
from backend.app.models.inventory_item import InventoryItem
from backend.app.models.redemption import Redemption
from backend.app.models.coupon_transaction import CouponTransaction
from backend.app.models.waste_record import WasteRecord
from backend.app.models.audit_log import AuditLog
from sqlalchemy import select

STARTER_ITEMS = [
    {"name": "Reusable Shopping Bag", "description": "Cotton tote bag", "cost": 5, "stock": 50},
    {"name": "Steel Water Bottle", "description": "750ml insulated bottle", "cost": 15, "stock": 20},
    {"name": "Compost Bin", "description": "Kitchen compost caddy", "cost": 30, "stock": 10},
    {"name": "Bamboo Cutlery Set", "description": "Fork, knife, spoon and straw", "cost": 8, "stock": 25},
]


async def seed_inventory():
    """
    Seed the coupon account and starter reward items.
    
    Items that already exist (by name) are left untouched.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    print("🌱 Starting inventory seeding...")
    
    account = await LedgerStore(AsyncSessionLocal).get_account()
    print(f"ℹ️  Coupon account ready (balance: {account.balance})")
    
    async with AsyncSessionLocal() as db:
        created = 0
        for data in STARTER_ITEMS:
            result = await db.execute(
                select(InventoryItem).where(InventoryItem.name == data["name"])
            )
            if result.scalar_one_or_none():
                print(f"ℹ️  {data['name']} already exists, skipping")
                continue
            
            db.add(InventoryItem(**data))
            created += 1
            print(f"✅ Created {data['name']} ({data['cost']} coupons, stock {data['stock']})")
        
        await db.commit()
    
    await engine.dispose()
    print(f"\n🎉 Inventory seeding completed: {created} new item(s)")
    print("\nNote: top up coupons via POST /v1/coupon/add with an ADMIN token")


if __name__ == "__main__":
    asyncio.run(seed_inventory())
