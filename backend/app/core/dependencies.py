"""
FastAPI dependencies.

Authentication from bearer tokens, plus wiring for the ledger components so
every request shares one session factory (overridable in tests).
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import async_sessionmaker

from backend.app.core.jwt import decode_access_token
from backend.app.db.session import get_session_factory
from backend.app.domain.ledger.balance_mutator import BalanceMutator
from backend.app.domain.ledger.ledger_store import LedgerStore
from backend.app.domain.ledger.redemption_coordinator import RedemptionCoordinator
from backend.app.services.coupon_queries import CouponQueryService
from backend.app.services.inventory import InventoryService
from backend.app.services.waste_recording import WasteRecordingService

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """
    FastAPI dependency for JWT authentication.
    
    Validates the token signature and expiry and requires sub, user_id and role claims.
    
    Returns:
        Decoded token payload containing user information
        
    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    return payload


def get_ledger_store(
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> LedgerStore:
    return LedgerStore(session_factory)


def get_balance_mutator(store: LedgerStore = Depends(get_ledger_store)) -> BalanceMutator:
    return BalanceMutator(store)


def get_redemption_coordinator(store: LedgerStore = Depends(get_ledger_store)) -> RedemptionCoordinator:
    return RedemptionCoordinator(store)


def get_coupon_queries(store: LedgerStore = Depends(get_ledger_store)) -> CouponQueryService:
    return CouponQueryService(store)


def get_inventory_service(store: LedgerStore = Depends(get_ledger_store)) -> InventoryService:
    return InventoryService(store)


def get_waste_recording_service(
    store: LedgerStore = Depends(get_ledger_store)
) -> WasteRecordingService:
    return WasteRecordingService(store.session_factory, BalanceMutator(store))
