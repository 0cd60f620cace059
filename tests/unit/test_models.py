"""
Tests for vinetracker.models module.
"""
import pytest
from datetime import date, datetime, timedelta, timezone

from vinetracker.models import (
    ImportResult,
    ImportRow,
    Order,
    OrderType,
    parse_timestamp,
    to_storage,
    to_utc,
)


class TestTimestampHelpers:
    """Tests for to_utc, to_storage and parse_timestamp."""

    def test_naive_is_utc(self):
        """Naive datetimes are taken as UTC."""
        assert to_utc(datetime(2024, 1, 1, 12)) == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_aware_converted(self):
        """Aware datetimes are converted to UTC."""
        local = datetime(2024, 1, 1, 7, tzinfo=timezone(timedelta(hours=-5)))
        assert to_utc(local) == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        assert to_storage(local) == datetime(2024, 1, 1, 12)

    def test_none_passthrough(self):
        """None stays None."""
        assert to_utc(None) is None
        assert to_storage(None) is None

    def test_parse_values(self):
        """Spreadsheet cells parse from datetime, date or ISO string."""
        assert parse_timestamp(date(2024, 3, 5)) == datetime(2024, 3, 5)
        assert parse_timestamp("2024-03-05T10:00:00Z") == datetime(2024, 3, 5, 10, tzinfo=timezone.utc)
        assert parse_timestamp("  ") is None
        assert parse_timestamp(None) is None


class TestOrder:
    """Tests for Order dataclass."""

    def test_adjusted_etv(self, make_order):
        """adjusted_etv is etv times factor."""
        assert make_order(etv=100.0, etv_factor=0.2).adjusted_etv == pytest.approx(20.0)

    def test_adjusted_etv_absent_factor(self, make_order):
        """An absent factor counts as zero."""
        assert make_order(etv=100.0, etv_factor=None).adjusted_etv == 0

    def test_is_cancelled(self, make_order):
        """Cancellation is the presence of cancelled_at."""
        assert not make_order().is_cancelled
        assert make_order(cancelled_at=datetime(2024, 4, 1, tzinfo=timezone.utc)).is_cancelled

    def test_from_row(self):
        """Rows in ORDER_COLUMNS order map to fields, timestamps become aware UTC."""
        row = (
            "111-1", "B0TEST", "Kettle",
            datetime(2024, 2, 1, 9, 0), None,
            30, 0.5, None, "worn box", None,
            15.0,
        )
        order = Order.from_row(row)
        assert order.number == "111-1"
        assert order.ordered_at == datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc)
        assert order.delivered_at is None
        assert order.etv == 30.0
        assert order.etv_factor == 0.5
        assert order.etv_reason == "worn box"
        assert not order.is_cancelled

    def test_to_dict(self, make_order):
        """to_dict includes adjusted_etv and ISO timestamps."""
        data = make_order(etv=40.0, etv_factor=0.5).to_dict()
        assert data["adjusted_etv"] == 20.0
        assert data["ordered_at"] == "2024-03-05T12:00:00+00:00"
        assert data["cancelled_at"] is None


class TestNeedsReview:
    """Tests for Order.needs_review."""

    def test_zero_etv_never(self, make_order):
        """Zero-ETV orders never need review."""
        assert not make_order(etv=0.0, etv_factor=None).needs_review()

    def test_missing_factor(self, make_order):
        """Missing factor needs review."""
        assert make_order(etv_factor=None).needs_review()

    def test_conventional_factors(self, make_order):
        """The thrift factor and 1 are settled."""
        assert not make_order(etv_factor=0.2).needs_review()
        assert not make_order(etv_factor=1.0).needs_review()

    def test_other_factor_without_reason(self, make_order):
        """Unusual factor with no reason needs review."""
        assert make_order(etv_factor=0.5).needs_review()

    def test_other_factor_with_reason(self, make_order):
        """A reason settles an unusual factor."""
        assert not make_order(etv_factor=0.5, etv_reason="damaged").needs_review()

    def test_custom_thrift_factor(self, make_order):
        """The thrift factor is configurable."""
        assert make_order(etv_factor=0.25).needs_review()
        assert not make_order(etv_factor=0.25).needs_review(thrift_factor=0.25)


class TestImportRow:
    """Tests for ImportRow.from_record."""

    def test_from_record(self):
        """Report labels map to fields."""
        row = ImportRow.from_record({
            "Order Number": " 111-555 ",
            "ASIN": "B0TEST",
            "Product Name": "Blender",
            "Order Type": "ORDER",
            "Order Date": "2024-05-01T10:00:00",
            "Shipped Date": "",
            "Estimated Tax Value": "$1,234.50",
        })
        assert row.number == "111-555"
        assert row.product == "Blender"
        assert row.ordered_at == datetime(2024, 5, 1, 10)
        assert row.delivered_at is None
        assert row.etv == 1234.5
        assert row.etv_factor is None
        assert not row.is_cancellation

    def test_cancellation_type(self):
        """CANCELLATION lines are recognized case-insensitively."""
        row = ImportRow.from_record({
            "Order Number": "111-9999",
            "Order Type": "cancellation",
            "Order Date": "2024-05-01",
            "Cancelled Date": "2024-05-03",
            "Estimated Tax Value": 10,
        })
        assert row.is_cancellation
        assert row.cancelled_at == datetime(2024, 5, 3)

    def test_etv_factor_column(self):
        """An optional ETV Factor column is parsed."""
        row = ImportRow.from_record({
            "Order Number": "111-1",
            "Order Date": "2024-05-01",
            "ETV Factor": "0.2",
        })
        assert row.etv_factor == 0.2
        assert row.etv == 0.0

    def test_unknown_order_type(self):
        """Unknown order types are plain orders."""
        assert OrderType.parse("RETURN") == OrderType.ORDER
        assert OrderType.parse(None) == OrderType.ORDER


class TestImportResult:
    """Tests for ImportResult dataclass."""

    def test_total(self):
        """total counts every processed order line."""
        result = ImportResult(inserted=3, duplicates=2, cancelled=1, failed=1)
        assert result.total == 6

    def test_to_dict(self):
        """to_dict copies the error list."""
        result = ImportResult(errors=["row 2: bad"])
        data = result.to_dict()
        assert data["errors"] == ["row 2: bad"]
        assert data["errors"] is not result.errors
