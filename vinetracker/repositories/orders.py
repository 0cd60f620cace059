"""
Orders repository: the order query engine, point updates and bulk import.
"""
import asyncio
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Union

from vinetracker.exceptions import ValidationError
from vinetracker.filters import OrderFilter
from vinetracker.models import ORDER_COLUMNS, ImportResult, ImportRow, Order, to_storage
from vinetracker.observability import Timer, get_logger, timed
from vinetracker.query import OrderQueryBuilder
from vinetracker.repositories.base import BaseRepository
from vinetracker.validators import (
    validate_etv,
    validate_etv_factor,
    validate_etv_reason,
    validate_notes,
    validate_order_number,
)

logger = get_logger(__name__)


class OrderRepository(BaseRepository):
    """Repository for orders - filtered queries, adjustments and imports."""

    # ─── Query Engine ─────────────────────────────────────────────────────────

    @timed("get_orders")
    async def get_orders(self, options: Optional[OrderFilter] = None) -> Union[List[Order], int]:
        """
        Query orders matching a filter.

        Args:
            options: Filter, sort and pagination options (default: all
                     non-cancelled orders, newest first)

        Returns:
            List of orders, or the number of matching orders when
            options.count_only is set

        Raises:
            ValidationError: If the options are invalid (before any storage access)
            SchemaVersionError: If the schema migration did not complete
        """
        options = options or OrderFilter()
        sql, params = OrderQueryBuilder(options, tz=self.tz, thrift_factor=self.thrift_factor).build()

        async with self.connection() as conn:
            self.require_current_schema()
            result = self._run(conn, sql, params)

            if options.count_only:
                return int(result.fetchone()[0])
            return [Order.from_row(row) for row in result.fetchall()]

    async def count_orders(self, options: Optional[OrderFilter] = None) -> int:
        """Count orders matching a filter; sort and pagination are ignored."""
        return await self.get_orders((options or OrderFilter()).for_count())

    async def get_order(self, number: str) -> Optional[Order]:
        """Get a single order by number, cancelled or not."""
        row = await self.fetchone(
            f"SELECT {', '.join(ORDER_COLUMNS)} FROM orders WHERE number = $number",
            {"number": number},
        )
        return Order.from_row(row) if row else None

    # ─── Point Updates ────────────────────────────────────────────────────────

    async def _update_field(self, number: str, column: str, value) -> int:
        async with self.connection() as conn:
            result = conn.execute(
                f"UPDATE orders SET {column} = $value WHERE number = $number",
                {"value": value, "number": number},
            ).fetchone()
            return int(result[0]) if result else 0

    async def set_etv_factor(self, number: str, etv_factor) -> int:
        """
        Set or clear an order's ETV factor.

        Args:
            number: Order number
            etv_factor: Non-negative number, numeric string, or None/"" to clear

        Returns:
            Rows affected (0 when the order does not exist)

        Raises:
            ValidationError: If the factor is negative or not numeric
        """
        return await self._update_field(number, "etv_factor", validate_etv_factor(etv_factor))

    async def set_etv_reason(self, number: str, etv_reason: Optional[str]) -> int:
        """Set or clear the reason for an ETV factor; empty strings clear it."""
        return await self._update_field(number, "etv_reason", validate_etv_reason(etv_reason))

    async def set_notes(self, number: str, notes: Optional[str]) -> int:
        """Set or clear an order's notes."""
        return await self._update_field(number, "notes", validate_notes(notes))

    # ─── Import ───────────────────────────────────────────────────────────────

    @staticmethod
    def _validate_row(row: ImportRow) -> ImportRow:
        number = validate_order_number(row.number)
        etv = validate_etv(row.etv)
        etv_factor = validate_etv_factor(row.etv_factor)
        if row.ordered_at is None:
            raise ValidationError("ordered_at", "Order date is required", number)

        return ImportRow(
            number=number,
            asin=row.asin,
            product=row.product,
            ordered_at=row.ordered_at,
            etv=etv,
            order_type=row.order_type,
            delivered_at=row.delivered_at,
            cancelled_at=row.cancelled_at,
            etv_factor=etv_factor,
        )

    @staticmethod
    def _insert(conn, row: ImportRow) -> bool:
        """Insert a row unless its number is already stored. Returns True if inserted."""
        exists = conn.execute(
            "SELECT 1 FROM orders WHERE number = $number", {"number": row.number}
        ).fetchone()
        if exists:
            return False

        conn.execute("""
            INSERT INTO orders (number, asin, product, ordered_at, delivered_at, etv, etv_factor)
            VALUES ($number, $asin, $product, $ordered_at, $delivered_at, $etv, $etv_factor)
            ON CONFLICT (number) DO NOTHING
        """, {
            "number": row.number,
            "asin": row.asin,
            "product": row.product,
            "ordered_at": to_storage(row.ordered_at),
            "delivered_at": to_storage(row.delivered_at),
            "etv": row.etv,
            "etv_factor": row.etv_factor,
        })
        return True

    async def insert_order(self, row: ImportRow) -> bool:
        """
        Insert one order if its number is not already stored.

        Existing orders are never overwritten.

        Returns:
            True if a new row was inserted

        Raises:
            ValidationError: If the row is invalid
        """
        row = self._validate_row(row)
        async with self.connection() as conn:
            self.require_current_schema()
            return self._insert(conn, row)

    async def import_orders(self, rows: Iterable[ImportRow]) -> ImportResult:
        """
        Import report rows in a single transaction.

        Each valid row is inserted idempotently. A CANCELLATION row also
        marks the stored order as cancelled (keeping the first cancellation
        time). Invalid rows are skipped, logged and counted as failed.

        Returns:
            ImportResult with inserted/duplicate/cancelled/failed counts
        """
        result = ImportResult()
        imported_at = datetime.now(timezone.utc)

        valid_rows = []
        for row in rows:
            try:
                valid_rows.append(self._validate_row(row))
            except ValidationError as e:
                logger.warning(f"Skipping invalid import row: {e}")
                result.failed += 1
                result.errors.append(str(e))

        if self._connection is None:
            await self.connect()
        self.require_current_schema()

        with Timer("import_orders", logger):
            async with self.transaction() as conn:
                for row in valid_rows:
                    if self._insert(conn, row):
                        result.inserted += 1
                    else:
                        result.duplicates += 1

                    if row.is_cancellation:
                        updated = conn.execute("""
                            UPDATE orders SET cancelled_at = $cancelled_at
                            WHERE number = $number AND cancelled_at IS NULL
                        """, {
                            "cancelled_at": to_storage(row.cancelled_at or imported_at),
                            "number": row.number,
                        }).fetchone()
                        result.cancelled += int(updated[0]) if updated else 0

        logger.info(
            f"Imported orders: {result.inserted} inserted, {result.duplicates} duplicates, "
            f"{result.cancelled} cancelled, {result.failed} failed"
        )
        return result


# ═══════════════════════════════════════════════════════════════════════════════
# SINGLETON INSTANCE
# ═══════════════════════════════════════════════════════════════════════════════

_repository_instance: Optional[OrderRepository] = None
_repository_lock = asyncio.Lock()


async def get_repository() -> OrderRepository:
    """Get singleton order repository, migrated and connected (coroutine-safe)."""
    global _repository_instance
    async with _repository_lock:
        if _repository_instance is None:
            _repository_instance = OrderRepository()
            await _repository_instance.connect()
    return _repository_instance


async def close_repository() -> None:
    """Close singleton repository instance."""
    global _repository_instance
    if _repository_instance:
        await _repository_instance.close()
        _repository_instance = None
