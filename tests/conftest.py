"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import duckdb
import pytest
import pytest_asyncio

from vinetracker.models import ImportRow, Order, OrderType
from vinetracker.repositories.orders import OrderRepository


# Orders table as it looked before cancelled_at replaced the boolean flag
V1_ORDERS_SQL = """
CREATE TABLE orders (
    number VARCHAR PRIMARY KEY,
    asin VARCHAR,
    product VARCHAR,
    ordered_at TIMESTAMP NOT NULL,
    delivered_at TIMESTAMP,
    etv DOUBLE NOT NULL DEFAULT 0,
    etv_factor DOUBLE,
    etv_reason VARCHAR,
    notes VARCHAR,
    cancelled BOOLEAN DEFAULT FALSE
)
"""


@pytest.fixture
def db_path(tmp_path):
    """Path for a fresh DuckDB file."""
    return tmp_path / "vinetracker.duckdb"


@pytest_asyncio.fixture
async def repo(db_path):
    """Connected order repository on an empty v2 database (UTC bounds)."""
    repository = OrderRepository(db_path, tz=timezone.utc)
    await repository.connect()
    yield repository
    await repository.close()


@pytest.fixture
def make_row() -> Callable[..., ImportRow]:
    """Factory for import rows with sensible defaults."""
    def _make(
        number: str = "111-0000001-0000001",
        ordered_at: datetime = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc),
        etv: float = 50.0,
        **kwargs: Any,
    ) -> ImportRow:
        kwargs.setdefault("asin", "B000TEST01")
        kwargs.setdefault("product", "Test Product")
        return ImportRow(number=number, ordered_at=ordered_at, etv=etv, **kwargs)

    return _make


@pytest.fixture
def make_order() -> Callable[..., Order]:
    """Factory for in-memory orders."""
    def _make(
        number: str = "111-0000001-0000001",
        ordered_at: datetime = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc),
        etv: float = 50.0,
        etv_factor: Optional[float] = None,
        **kwargs: Any,
    ) -> Order:
        kwargs.setdefault("asin", "B000TEST01")
        kwargs.setdefault("product", "Test Product")
        return Order(number=number, ordered_at=ordered_at, etv=etv, etv_factor=etv_factor, **kwargs)

    return _make


@pytest.fixture
def sample_rows(make_row) -> list:
    """A small mixed order set spanning two years."""
    return [
        make_row("111-2023-0001", ordered_at=datetime(2023, 11, 2, 9, 30, tzinfo=timezone.utc),
                 etv=20.0, product="Garden Hose", asin="B0HOSE0001",
                 delivered_at=datetime(2024, 1, 3, 15, 0, tzinfo=timezone.utc)),
        make_row("111-2024-0001", ordered_at=datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc),
                 etv=100.0, product="Espresso Machine", asin="B0COFFEE01",
                 delivered_at=datetime(2024, 1, 18, 17, 0, tzinfo=timezone.utc), etv_factor=0.2),
        make_row("111-2024-0002", ordered_at=datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc),
                 etv=40.0, product="USB Cable", asin="B0CABLE001", etv_factor=0.5),
        make_row("111-2024-0003", ordered_at=datetime(2024, 3, 5, 23, 59, 59, tzinfo=timezone.utc),
                 etv=0.0, product="Free Sample", asin="B0SAMPLE01"),
        make_row("111-2024-0004", ordered_at=datetime(2024, 7, 20, 10, 0, tzinfo=timezone.utc),
                 etv=60.0, product="Desk Lamp", asin="B0LAMP0001", etv_factor=1.0),
        make_row("111-2024-0005", ordered_at=datetime(2024, 12, 31, 23, 0, tzinfo=timezone.utc),
                 etv=80.0, product="Espresso Cups", asin="B0CUPS0001"),
        make_row("111-2024-0005", ordered_at=datetime(2024, 12, 31, 23, 0, tzinfo=timezone.utc),
                 etv=80.0, product="Espresso Cups", asin="B0CUPS0001",
                 order_type=OrderType.CANCELLATION,
                 cancelled_at=datetime(2025, 1, 2, 10, 0, tzinfo=timezone.utc)),
    ]


@pytest_asyncio.fixture
async def seeded_repo(repo, sample_rows):
    """Repository with sample_rows imported."""
    await repo.import_orders(sample_rows)
    return repo


@pytest.fixture
def v1_database(db_path) -> Callable[..., None]:
    """Create a v1 database (boolean cancelled column, no version marker)."""
    def _create(rows: Optional[list] = None, extra_sql: Optional[str] = None) -> None:
        conn = duckdb.connect(str(db_path))
        try:
            conn.execute(V1_ORDERS_SQL)
            for row in rows or []:
                conn.execute("""
                    INSERT INTO orders (number, asin, product, ordered_at, etv, etv_factor, cancelled)
                    VALUES ($number, $asin, $product, $ordered_at, $etv, $etv_factor, $cancelled)
                """, row)
            if extra_sql:
                conn.execute(extra_sql)
        finally:
            conn.close()

    return _create


def _v1_row(number: str, cancelled: bool = False, **overrides: Any) -> Dict[str, Any]:
    row = {
        "number": number,
        "asin": "B0LEGACY01",
        "product": "Legacy Product",
        "ordered_at": datetime(2023, 6, 1, 12, 0),
        "etv": 25.0,
        "etv_factor": 0.2,
        "cancelled": cancelled,
    }
    row.update(overrides)
    return row


@pytest.fixture
def v1_row() -> Callable[..., Dict[str, Any]]:
    """Factory for v1 orders rows to pass to v1_database."""
    return _v1_row
