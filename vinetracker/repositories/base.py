"""
DuckDB access shared by the order repositories.

Opening a repository migrates the schema before anything else can touch
the orders table. One asyncio.Lock serializes every use of the connection.
"""
import asyncio
from contextlib import asynccontextmanager
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Optional

import duckdb

from vinetracker.config import config
from vinetracker.exceptions import SchemaVersionError
from vinetracker.migrations import CURRENT_VERSION, SchemaMigrator, SchemaVersion
from vinetracker.observability import get_logger

logger = get_logger(__name__)


class BaseRepository:
    """
    Owns one DuckDB connection and the schema version it was migrated to.

    Usage:
        class OrderRepository(BaseRepository):
            async def get_order(self, number: str):
                return await self.fetchone(
                    "SELECT * FROM orders WHERE number = $number", {"number": number}
                )
    """

    def __init__(self, db_path: Optional[Path] = None, tz: Optional[tzinfo] = None):
        self.db_path = Path(db_path) if db_path is not None else config.storage.db_path
        self.tz = tz or config.orders.tzinfo
        self.thrift_factor = config.orders.thrift_factor
        self.schema_version: Optional[SchemaVersion] = None
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = asyncio.Lock()

    def _open(self) -> duckdb.DuckDBPyConnection:
        """Connect, create missing tables and apply pending migrations."""
        conn = duckdb.connect(str(self.db_path))
        try:
            migrator = SchemaMigrator(conn)
            migrator.ensure_schema()
            self.schema_version = migrator.migrate()
        except Exception:
            conn.close()
            raise

        if self.schema_version < CURRENT_VERSION:
            logger.error(
                f"Orders schema left at v{int(self.schema_version)}; "
                f"order queries and imports will be refused until migration succeeds"
            )
        return conn

    async def connect(self) -> None:
        """Open the database file (creating its directory) if not already open."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with self._lock:
            if self._connection is not None:
                return
            try:
                self._connection = self._open()
            except Exception:
                self.schema_version = None
                raise
            logger.info(f"Order store opened: {self.db_path} (schema v{int(self.schema_version)})")

    async def close(self) -> None:
        async with self._lock:
            conn, self._connection = self._connection, None
            if conn is not None:
                conn.close()
                logger.info(f"Order store closed: {self.db_path}")

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    @asynccontextmanager
    async def connection(self):
        """
        Yield the connection, opening it on first use.

        The lock is held for the whole block, so statements from concurrent
        callers never interleave.
        """
        if not self.is_connected:
            await self.connect()
        async with self._lock:
            yield self._connection

    @asynccontextmanager
    async def transaction(self):
        """Yield the connection inside BEGIN/COMMIT; any error rolls back and re-raises."""
        async with self.connection() as conn:
            conn.execute("BEGIN TRANSACTION")
            try:
                yield conn
            except Exception:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def require_current_schema(self) -> None:
        """
        Raises:
            SchemaVersionError: If the last migration did not complete
        """
        if self.schema_version is not None and self.schema_version < CURRENT_VERSION:
            raise SchemaVersionError(int(self.schema_version), int(CURRENT_VERSION))

    @staticmethod
    def _run(conn: duckdb.DuckDBPyConnection, sql: str, params: Optional[Dict[str, Any]] = None):
        # Statements without placeholders run without a parameter mapping
        return conn.execute(sql, params) if params else conn.execute(sql)

    async def fetchone(self, sql: str, params: Optional[Dict[str, Any]] = None) -> Optional[tuple]:
        async with self.connection() as conn:
            return self._run(conn, sql, params).fetchone()

    async def fetchall(self, sql: str, params: Optional[Dict[str, Any]] = None) -> list:
        async with self.connection() as conn:
            return self._run(conn, sql, params).fetchall()
