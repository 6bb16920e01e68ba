"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import coupon, inventory, waste

router = APIRouter()

# Coupon ledger endpoints
router.include_router(coupon.router)

# Rewards shop endpoints
router.include_router(inventory.router)

# Waste submission endpoints
router.include_router(waste.router)
