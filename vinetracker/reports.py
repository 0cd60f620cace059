"""
Yearly ETV reporting over already-filtered orders.

Pure reductions over in-memory Order collections; no storage access.
"""
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Dict, Iterable, List, Optional

from vinetracker.config import config
from vinetracker.models import Order

MONTHS = range(1, 13)


@dataclass
class MonthlyBucket:
    """Totals for one calendar month."""
    month: int
    count: int = 0
    etv: float = 0.0
    adjusted_etv: float = 0.0

    def add(self, order: Order) -> None:
        self.count += 1
        self.etv += order.etv
        self.adjusted_etv += order.adjusted_etv

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "month": self.month,
            "count": self.count,
            "etv": round(self.etv, 2),
            "adjusted_etv": round(self.adjusted_etv, 2),
        }


@dataclass
class YearSummary:
    """Yearly totals with their monthly breakdown."""
    months: List[MonthlyBucket]
    count: int = 0
    etv: float = 0.0
    adjusted_etv: float = 0.0
    needs_review: int = 0
    by_month: Dict[int, MonthlyBucket] = field(init=False, repr=False)

    def __post_init__(self):
        self.by_month = {bucket.month: bucket for bucket in self.months}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "count": self.count,
            "etv": round(self.etv, 2),
            "adjusted_etv": round(self.adjusted_etv, 2),
            "needs_review": self.needs_review,
            "months": [bucket.to_dict() for bucket in self.months],
        }


def monthly_breakdown(orders: Iterable[Order], tz: Optional[tzinfo] = None) -> List[MonthlyBucket]:
    """
    Partition orders into 12 buckets by the local month of ordered_at.

    Args:
        orders: Orders for one year, already filtered
        tz: Timezone for month boundaries (default: configured timezone)

    Returns:
        Exactly 12 buckets for months 1-12, zero-filled where empty
    """
    tz = tz or config.orders.tzinfo
    buckets = {month: MonthlyBucket(month) for month in MONTHS}

    for order in orders:
        buckets[order.ordered_at.astimezone(tz).month].add(order)

    return [buckets[month] for month in MONTHS]


def summarize_year(
    orders: Iterable[Order],
    tz: Optional[tzinfo] = None,
    thrift_factor: float = config.orders.thrift_factor,
) -> YearSummary:
    """Monthly breakdown plus yearly totals and the count of orders needing review."""
    orders = list(orders)
    months = monthly_breakdown(orders, tz)

    return YearSummary(
        months=months,
        count=sum(bucket.count for bucket in months),
        etv=sum(bucket.etv for bucket in months),
        adjusted_etv=sum(bucket.adjusted_etv for bucket in months),
        needs_review=sum(1 for order in orders if order.needs_review(thrift_factor)),
    )
