"""
Domain models for VineTracker.

Provides dataclasses for stored orders and spreadsheet import rows.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from vinetracker.config import THRIFT_FACTOR


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class OrderType(str, Enum):
    """Order line types from the program's order report."""
    ORDER = "ORDER"
    CANCELLATION = "CANCELLATION"

    @classmethod
    def parse(cls, value: Optional[str]) -> "OrderType":
        """Map a raw 'Order Type' cell to an OrderType (unknown types are plain orders)."""
        if value and str(value).strip().upper() == cls.CANCELLATION.value:
            return cls.CANCELLATION
        return cls.ORDER


# ═══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: Optional[datetime]) -> Optional[datetime]:
    """Convert a datetime to the naive UTC form stored in DuckDB."""
    if value is None:
        return None
    return to_utc(value).replace(tzinfo=None)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a spreadsheet date cell (datetime, date or ISO string)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    if not text:
        return None
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def _parse_amount(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(str(value).strip().replace("$", "").replace(",", ""))
    except ValueError:
        return 0.0


# ═══════════════════════════════════════════════════════════════════════════════
# DATACLASSES
# ═══════════════════════════════════════════════════════════════════════════════

# Column order used by every SELECT that materializes an Order
ORDER_COLUMNS = (
    "number",
    "asin",
    "product",
    "ordered_at",
    "delivered_at",
    "etv",
    "etv_factor",
    "cancelled_at",
    "etv_reason",
    "notes",
)


@dataclass
class Order:
    """A stored order."""
    number: str
    asin: Optional[str]
    product: Optional[str]
    ordered_at: datetime
    etv: float
    delivered_at: Optional[datetime] = None
    etv_factor: Optional[float] = None
    cancelled_at: Optional[datetime] = None
    etv_reason: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "Order":
        """Create Order from a DuckDB row in ORDER_COLUMNS order."""
        data = dict(zip(ORDER_COLUMNS, row))
        return cls(
            number=data["number"],
            asin=data["asin"],
            product=data["product"],
            ordered_at=to_utc(data["ordered_at"]),
            delivered_at=to_utc(data["delivered_at"]),
            etv=float(data["etv"] or 0),
            etv_factor=float(data["etv_factor"]) if data["etv_factor"] is not None else None,
            cancelled_at=to_utc(data["cancelled_at"]),
            etv_reason=data["etv_reason"],
            notes=data["notes"],
        )

    @property
    def adjusted_etv(self) -> float:
        """Taxable value: etv scaled by the factor (absent factor counts as 0)."""
        return self.etv * (self.etv_factor if self.etv_factor is not None else 0)

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None

    def needs_review(self, thrift_factor: float = THRIFT_FACTOR) -> bool:
        """Check if the ETV factor still needs a human decision."""
        if self.etv == 0:
            return False
        if self.etv_factor is None:
            return True
        return (
            self.etv_factor != thrift_factor
            and self.etv_factor != 1
            and self.etv_reason is None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "number": self.number,
            "asin": self.asin,
            "product": self.product,
            "ordered_at": self.ordered_at.isoformat() if self.ordered_at else None,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "etv": self.etv,
            "etv_factor": self.etv_factor,
            "adjusted_etv": round(self.adjusted_etv, 2),
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "etv_reason": self.etv_reason,
            "notes": self.notes,
        }


@dataclass
class ImportRow:
    """One line of an order report, already parsed from the spreadsheet."""
    number: str
    asin: Optional[str]
    product: Optional[str]
    ordered_at: datetime
    etv: float
    order_type: OrderType = OrderType.ORDER
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    etv_factor: Optional[float] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ImportRow":
        """
        Create ImportRow from a report record keyed by its column labels.

        Expected labels: 'Order Number', 'ASIN', 'Product Name', 'Order Type',
        'Order Date', 'Shipped Date', 'Cancelled Date', 'Estimated Tax Value'
        and optionally 'ETV Factor'.
        """
        def text(key: str) -> Optional[str]:
            value = record.get(key)
            if value is None:
                return None
            return str(value).strip() or None

        etv_factor = record.get("ETV Factor")
        if etv_factor is not None and str(etv_factor).strip() != "":
            etv_factor = float(str(etv_factor).strip())
        else:
            etv_factor = None

        return cls(
            number=text("Order Number") or "",
            asin=text("ASIN"),
            product=text("Product Name"),
            order_type=OrderType.parse(text("Order Type")),
            ordered_at=parse_timestamp(record.get("Order Date")),
            delivered_at=parse_timestamp(record.get("Shipped Date")),
            cancelled_at=parse_timestamp(record.get("Cancelled Date")),
            etv=_parse_amount(record.get("Estimated Tax Value")),
            etv_factor=etv_factor,
        )

    @property
    def is_cancellation(self) -> bool:
        return self.order_type == OrderType.CANCELLATION


@dataclass
class ImportResult:
    """Outcome of a bulk import."""
    inserted: int = 0
    duplicates: int = 0
    cancelled: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.duplicates + self.failed

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "cancelled": self.cancelled,
            "failed": self.failed,
            "errors": list(self.errors),
        }
