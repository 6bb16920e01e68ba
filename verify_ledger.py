"""
Ledger consistency check.

Replays every coupon transaction against the configured database and
exits non-zero if the stored balance or any snapshot has drifted.
"""

import asyncio
import sys

from backend.app.db.session import AsyncSessionLocal, engine
from backend.app.domain.ledger.ledger_store import LedgerStore
from backend.app.services.coupon_queries import CouponQueryService


async def run_verification() -> int:
    print("\n--- Replaying coupon ledger ---")
    queries = CouponQueryService(LedgerStore(AsyncSessionLocal))
    
    try:
        audit = await queries.verify_ledger()
    finally:
        await engine.dispose()
    
    print(f"Transactions replayed: {audit.transaction_count}")
    print(f"Stored balance:        {audit.balance}")
    print(f"Replayed balance:      {audit.replayed_balance}")
    
    if audit.consistent:
        print("✅ Ledger is consistent")
        return 0
    
    if audit.first_mismatch_id is not None:
        print(f"❌ Snapshot drift starting at transaction {audit.first_mismatch_id}")
    else:
        print("❌ Stored balance does not match the transaction log")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(run_verification()))
