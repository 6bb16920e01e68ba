"""
Coupon Ledger API Endpoints.

Balance, history and summary are public; top-ups and manual adjustments are admin-only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_balance_mutator, get_coupon_queries
from backend.app.core.guards import require_admin
from backend.app.db.session import get_db
from backend.app.domain.ledger.balance_mutator import BalanceMutator
from backend.app.domain.ledger.ledger_store import CommitResult
from backend.app.schemas.coupon import (
    CouponAddRequest,
    CouponAdjustRequest,
    CouponBalanceResponse,
    CouponMutationResponse,
    CouponSummaryResponse,
    CouponTransactionListResponse,
    CouponTransactionResponse,
)
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.coupon_queries import CouponQueryService, parse_transaction_filter

router = APIRouter(prefix="/coupon", tags=["Coupons"])


def _mutation_response(result: CommitResult) -> CouponMutationResponse:
    return CouponMutationResponse(
        previous_balance=result.previous_balance,
        added_amount=result.transaction.amount,
        new_balance=result.account.balance,
        transaction=CouponTransactionResponse.model_validate(result.transaction)
    )


@router.get("/balance", response_model=CouponBalanceResponse)
async def get_balance(queries: CouponQueryService = Depends(get_coupon_queries)):
    """
    Get the current coupon balance.
    
    Initializes the ledger with a zero balance on first access.
    """
    return await queries.get_balance()


@router.get("/transactions", response_model=CouponTransactionListResponse)
async def list_transactions(
    period: Optional[str] = Query(None, description="all, year, month, week, day, hour"),
    type: Optional[str] = Query(None, description="ADD, CONSUME, ADJUST"),
    page: Optional[str] = Query(None, description="Page number (1-based)"),
    limit: Optional[str] = Query(None, description="Items per page (max 200)"),
    year: Optional[str] = Query(None),
    month: Optional[str] = Query(None, description="1-12"),
    queries: CouponQueryService = Depends(get_coupon_queries)
):
    """
    Transaction history, newest first.
    
    Returns 400 for unknown periods/types or out-of-range numbers.
    """
    filters = parse_transaction_filter(
        period=period, type=type, page=page, limit=limit, year=year, month=month
    )
    return await queries.list_transactions(filters)


@router.get("/summary", response_model=CouponSummaryResponse)
async def get_summary(
    period: Optional[str] = Query(None, description="year, month, day, hour"),
    queries: CouponQueryService = Depends(get_coupon_queries)
):
    """
    Added/used/adjusted totals per period bucket.
    """
    return await queries.summarize(period)


@router.post("/add", response_model=CouponMutationResponse)
async def add_coupons(
    request: CouponAddRequest,
    current_user: dict = Depends(require_admin),
    mutator: BalanceMutator = Depends(get_balance_mutator),
    db: AsyncSession = Depends(get_db)
):
    """
    Add coupons to the balance (Admin only).
    """
    result = await mutator.add(request.amount, request.notes)
    
    await log_event(
        db=db,
        action=AuditAction.COUPONS_ADDED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        metadata={
            "amount": request.amount,
            "transaction_id": result.transaction.id,
            "new_balance": result.account.balance
        }
    )
    
    return _mutation_response(result)


@router.post("/adjust", response_model=CouponMutationResponse)
async def adjust_coupons(
    request: CouponAdjustRequest,
    current_user: dict = Depends(require_admin),
    mutator: BalanceMutator = Depends(get_balance_mutator),
    db: AsyncSession = Depends(get_db)
):
    """
    Manually adjust the balance up or down (Admin only).
    
    A reason is required and the balance can never go negative.
    """
    result = await mutator.adjust(request.amount, request.reason, request.notes)
    
    await log_event(
        db=db,
        action=AuditAction.COUPONS_ADJUSTED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        metadata={
            "amount": request.amount,
            "reason": result.transaction.reason,
            "transaction_id": result.transaction.id,
            "new_balance": result.account.balance
        }
    )
    
    return _mutation_response(result)
