"""
Order filter options and calendar bound helpers.

OrderFilter is the single options value accepted by the order query engine.
Bounds are computed as local calendar days/years and converted to the naive
UTC form the orders table stores.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from enum import Enum
from typing import Any, Mapping, Optional

from vinetracker.config import config
from vinetracker.models import to_storage
from vinetracker.validators import (
    is_date_search,
    parse_int_param,
    validate_non_negative_int,
    validate_search_date,
    validate_year,
)

# Last representable instant of a day at millisecond precision
END_OF_DAY = time(23, 59, 59, 999000)

TRUTHY = {"1", "true", "yes", "on"}


class SortField(str, Enum):
    """Sortable order columns, keyed by their external names."""
    ORDERED_AT = "orderedAt"
    ETV = "etv"
    ETV_FACTOR = "etvFactor"
    ADJUSTED_ETV = "adjustedEtv"

    @classmethod
    def parse(cls, value: Any) -> "SortField":
        """Map a raw sort value; anything unrecognized sorts by order date."""
        if isinstance(value, cls):
            return value
        for member in (cls.ETV, cls.ETV_FACTOR, cls.ADJUSTED_ETV):
            if value == member.value:
                return member
        return cls.ORDERED_AT


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Any) -> "SortDirection":
        """Ascending only for exactly 'asc'; everything else is descending."""
        if isinstance(value, cls):
            return value
        return cls.ASC if value == "asc" else cls.DESC


@dataclass(frozen=True)
class DateBounds:
    """Inclusive local-time range on one date column."""
    start: datetime
    end: datetime

    @property
    def start_storage(self) -> datetime:
        """Start as naive UTC, ready to bind."""
        return to_storage(self.start)

    @property
    def end_storage(self) -> datetime:
        """End as naive UTC, ready to bind."""
        return to_storage(self.end)

    def contains(self, value: Optional[datetime]) -> bool:
        """Check whether an aware datetime falls within the bounds."""
        if value is None:
            return False
        return self.start <= value <= self.end


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> DateBounds:
    """Bounds for a single local calendar day, 00:00:00.000 to 23:59:59.999."""
    tz = tz or config.orders.tzinfo
    return DateBounds(
        start=datetime.combine(day, time.min, tzinfo=tz),
        end=datetime.combine(day, END_OF_DAY, tzinfo=tz),
    )


def year_bounds(year: int, tz: Optional[tzinfo] = None) -> DateBounds:
    """Bounds for a local calendar year, Jan 1 00:00:00.000 to Dec 31 23:59:59.999."""
    tz = tz or config.orders.tzinfo
    return DateBounds(
        start=datetime.combine(date(year, 1, 1), time.min, tzinfo=tz),
        end=datetime.combine(date(year, 12, 31), END_OF_DAY, tzinfo=tz),
    )


@dataclass(frozen=True)
class OrderFilter:
    """
    Options for the order query engine.

    Attributes:
        cancelled: False excludes cancelled orders; True returns only cancelled orders
        non_adjusted_only: Only orders whose ETV factor still needs review
        year: Calendar year bound (2000-3000) on order date, or delivery date
              when by_delivered is set
        by_delivered: Apply date bounds to delivered_at instead of ordered_at
        search: YYYY-MM-DD for a single-day bound (supersedes year), otherwise a
                case-insensitive substring of number, ASIN or product
        sort: Sort column (default: order date)
        direction: Sort direction (default: descending)
        limit: Max rows (None = unbounded)
        offset: Rows to skip (None = no offset)
        count_only: Return a count instead of rows; sort and pagination ignored
    """
    cancelled: bool = False
    non_adjusted_only: bool = False
    year: Optional[int] = None
    by_delivered: bool = False
    search: Optional[str] = None
    sort: SortField = SortField.ORDERED_AT
    direction: SortDirection = SortDirection.DESC
    limit: Optional[int] = None
    offset: Optional[int] = None
    count_only: bool = False

    @property
    def date_column(self) -> str:
        """Column that year and search-date bounds apply to."""
        return "delivered_at" if self.by_delivered else "ordered_at"

    @property
    def search_date(self) -> Optional[date]:
        """Single-day search date, or None when search is free text."""
        if is_date_search(self.search):
            return validate_search_date(self.search)
        return None

    @property
    def text_search(self) -> Optional[str]:
        """Free-text search term, or None when search is empty or a date."""
        if not self.search or is_date_search(self.search):
            return None
        return self.search

    def date_bounds(self, tz: Optional[tzinfo] = None) -> Optional[DateBounds]:
        """
        Resolve the active date bound.

        A search date supersedes the year bound entirely.

        Raises:
            ValidationError: If the search date or year is invalid
        """
        search_date = self.search_date
        if search_date is not None:
            return day_bounds(search_date, tz)

        year = validate_year(self.year)
        if year is not None:
            return year_bounds(year, tz)

        return None

    def validate(self) -> "OrderFilter":
        """
        Validate all fields before any storage access.

        Raises:
            ValidationError: On the first invalid field
        """
        validate_year(self.year)
        validate_non_negative_int(self.limit, "limit")
        validate_non_negative_int(self.offset, "offset")
        if is_date_search(self.search):
            validate_search_date(self.search)
        return self

    def for_count(self) -> "OrderFilter":
        """Copy with sort and pagination fields reset."""
        return OrderFilter(
            cancelled=self.cancelled,
            non_adjusted_only=self.non_adjusted_only,
            year=self.year,
            by_delivered=self.by_delivered,
            search=self.search,
            count_only=True,
        )

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> "OrderFilter":
        """
        Build a filter from raw request parameters.

        Keys use the external names: cancelled, nonAdjustedOnly, year,
        byDelivered, search, sort, dir, limit, offset, countOnly.

        Raises:
            ValidationError: If year, limit or offset is not numeric
        """
        def flag(key: str) -> bool:
            value = params.get(key)
            if isinstance(value, bool):
                return value
            return value is not None and str(value).strip().lower() in TRUTHY

        search = params.get("search")
        if search is not None:
            search = str(search).strip() or None

        return cls(
            cancelled=flag("cancelled"),
            non_adjusted_only=flag("nonAdjustedOnly"),
            year=parse_int_param(params.get("year"), "year"),
            by_delivered=flag("byDelivered"),
            search=search,
            sort=SortField.parse(params.get("sort")),
            direction=SortDirection.parse(params.get("dir")),
            limit=parse_int_param(params.get("limit"), "limit"),
            offset=parse_int_param(params.get("offset"), "offset"),
            count_only=flag("countOnly"),
        ).validate()
