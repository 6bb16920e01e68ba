"""
Coupon Query Service.

Balance read, filtered transaction history, periodic summaries and a full
replay check of the ledger. Focused on READ-ONLY operations.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from backend.app.core.exceptions import InvalidQueryError
from backend.app.core.reliability import with_retry
from backend.app.domain.ledger.ledger_store import LedgerStore, TransactionFilter
from backend.app.models.coupon_enums import TransactionKind
from backend.app.schemas.common import Pagination
from backend.app.schemas.coupon import (
    CouponBalanceResponse,
    CouponSummaryBucket,
    CouponSummaryResponse,
    CouponTransactionListResponse,
    CouponTransactionResponse,
)

HISTORY_PERIODS = ("all", "year", "month", "week", "day", "hour")
SUMMARY_PERIODS = ("year", "month", "day", "hour")
MAX_PAGE_SIZE = 200

# Bucket key formats per summary period (UTC)
SUMMARY_KEY_FORMATS = {
    "year": "%Y",
    "month": "%Y-%m",
    "day": "%Y-%m-%d",
    "hour": "%Y-%m-%dT%H",
}


@dataclass
class LedgerAudit:
    """Outcome of replaying the transaction log against the account."""
    consistent: bool
    balance: int
    replayed_balance: int
    transaction_count: int
    first_mismatch_id: Optional[int] = None


def _parse_int(name: str, raw: Optional[str], default: Optional[int], low: int, high: int) -> Optional[int]:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidQueryError(f"'{name}' must be an integer", details={name: raw})
    if value < low or value > high:
        raise InvalidQueryError(
            f"'{name}' must be between {low} and {high}", details={name: value}
        )
    return value


def _month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def _next_month_start(year: int, month: int) -> datetime:
    if month == 12:
        return _month_start(year + 1, 1)
    return _month_start(year, month + 1)


def resolve_period_window(
    period: str,
    year: Optional[int] = None,
    month: Optional[int] = None,
    now: Optional[datetime] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Translate a period filter into a [start, end) UTC window.
    
    An explicit month selects that calendar month (of `year`, default this year);
    an explicit year selects that calendar year. Otherwise:
    year/month -> current calendar year/month, week -> last 7 days,
    day -> since midnight, hour -> last 60 minutes, all -> unbounded.
    """
    now = now or datetime.now(timezone.utc)
    target_year = year or now.year
    
    if month is not None or (period == "month" and year is None):
        target_month = month or now.month
        return _month_start(target_year, target_month), _next_month_start(target_year, target_month)
    if year is not None or period == "year":
        return _month_start(target_year, 1), _month_start(target_year + 1, 1)
    if period == "week":
        return now - timedelta(days=7), None
    if period == "day":
        return now.replace(hour=0, minute=0, second=0, microsecond=0), None
    if period == "hour":
        return now - timedelta(hours=1), None
    return None, None


def parse_transaction_filter(
    period: Optional[str] = None,
    type: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    year: Optional[str] = None,
    month: Optional[str] = None,
    now: Optional[datetime] = None
) -> TransactionFilter:
    """
    Validate raw history query parameters.
    
    Raises:
        InvalidQueryError: On any unknown period/type or out-of-range number
    """
    period = (period or "all").lower()
    if period not in HISTORY_PERIODS:
        raise InvalidQueryError(
            f"Unknown period '{period}'", details={"allowed": list(HISTORY_PERIODS)}
        )
    
    kind = None
    if type:
        try:
            kind = TransactionKind(type.upper())
        except ValueError:
            raise InvalidQueryError(
                f"Unknown transaction type '{type}'",
                details={"allowed": [k.value for k in TransactionKind]}
            )
    
    page_num = _parse_int("page", page, 1, 1, 1_000_000)
    page_size = _parse_int("limit", limit, 50, 1, MAX_PAGE_SIZE)
    year_num = _parse_int("year", year, None, 1970, 9999)
    month_num = _parse_int("month", month, None, 1, 12)
    
    start, end = resolve_period_window(period, year_num, month_num, now)
    return TransactionFilter(start=start, end=end, kind=kind, page=page_num, page_size=page_size)


class CouponQueryService:
    
    def __init__(self, store: LedgerStore):
        self.store = store
    
    async def get_balance(self) -> CouponBalanceResponse:
        account = await with_retry(self.store.get_account, description="coupon balance read")
        return CouponBalanceResponse(
            balance=account.balance,
            used=account.total_used,
            available=account.balance
        )
    
    async def list_transactions(self, filters: TransactionFilter) -> CouponTransactionListResponse:
        transactions, total = await with_retry(
            lambda: self.store.list_transactions(filters),
            description="coupon history read"
        )
        return CouponTransactionListResponse(
            data=[CouponTransactionResponse.model_validate(tx) for tx in transactions],
            pagination=Pagination.build(filters.page, filters.page_size, total)
        )
    
    async def summarize(self, period: Optional[str] = None, now: Optional[datetime] = None) -> CouponSummaryResponse:
        """
        Aggregate transactions into chronological buckets.
        
        `month` buckets cover the current calendar year; other periods cover all history.
        """
        period = (period or "month").lower()
        if period not in SUMMARY_PERIODS:
            raise InvalidQueryError(
                f"Unknown summary period '{period}'", details={"allowed": list(SUMMARY_PERIODS)}
            )
        
        start = None
        if period == "month":
            now = now or datetime.now(timezone.utc)
            start = _month_start(now.year, 1)
        
        transactions = await with_retry(
            lambda: self.store.all_transactions(start=start),
            description="coupon summary read"
        )
        
        key_format = SUMMARY_KEY_FORMATS[period]
        buckets: Dict[str, CouponSummaryBucket] = {}
        for tx in transactions:
            key = tx.created_at.strftime(key_format)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = CouponSummaryBucket(period=key)
            
            bucket.transactions += 1
            if tx.kind == TransactionKind.ADD:
                bucket.added += tx.amount
            elif tx.kind == TransactionKind.CONSUME:
                bucket.used += abs(tx.amount)
            elif tx.kind == TransactionKind.ADJUST:
                bucket.adjusted += tx.amount
        
        return CouponSummaryResponse(period=period, data=list(buckets.values()))
    
    async def verify_ledger(self) -> LedgerAudit:
        """
        Replay every transaction amount from zero in application order.
        
        Consistent when each snapshot equals the running sum and the final
        sum equals the stored balance.
        """
        transactions = await with_retry(self.store.all_transactions, description="ledger replay")
        account = await with_retry(self.store.get_account, description="coupon balance read")
        
        running = 0
        first_mismatch = None
        for tx in transactions:
            running += tx.amount
            if first_mismatch is None and tx.resulting_balance != running:
                first_mismatch = tx.id
        
        return LedgerAudit(
            consistent=first_mismatch is None and running == account.balance,
            balance=account.balance,
            replayed_balance=running,
            transaction_count=len(transactions),
            first_mismatch_id=first_mismatch
        )
