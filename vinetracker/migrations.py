"""
Versioned schema migrations for the orders table.

The schema version is persisted in schema_meta under 'schema_version'.
A database with an orders table but no marker is at v1. Every known
version below CURRENT_VERSION maps to exactly one Migration that produces
the next version; each migration runs in a single transaction that also
advances the marker, so readers never observe a partial migration.

Version history:
    v1  orders.cancelled BOOLEAN
    v2  orders.cancelled_at TIMESTAMP (NULL for migrated rows, since a
        boolean flag carries no cancellation instant)

There is no downgrade path.
"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Tuple

import duckdb

from vinetracker.exceptions import MigrationError
from vinetracker.observability import get_logger

logger = get_logger(__name__)


class SchemaVersion(IntEnum):
    """Known schema versions of the orders table."""
    V1 = 1
    V2 = 2


CURRENT_VERSION = SchemaVersion.V2

SCHEMA_VERSION_KEY = "schema_version"

SCHEMA_META_SQL = """
CREATE TABLE IF NOT EXISTS schema_meta (
    key VARCHAR PRIMARY KEY,
    value VARCHAR,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

# Orders table at CURRENT_VERSION, used for new databases
ORDERS_SCHEMA_SQL = """
CREATE TABLE orders (
    number VARCHAR PRIMARY KEY,
    asin VARCHAR,
    product VARCHAR,
    ordered_at TIMESTAMP NOT NULL,
    delivered_at TIMESTAMP,
    etv DOUBLE NOT NULL DEFAULT 0 CHECK (etv >= 0),
    etv_factor DOUBLE CHECK (etv_factor >= 0),
    etv_reason VARCHAR,
    notes VARCHAR,
    cancelled_at TIMESTAMP
)
"""


@dataclass(frozen=True)
class Migration:
    """One forward step between adjacent schema versions."""
    source: SchemaVersion
    target: SchemaVersion
    description: str
    statements: Tuple[str, ...]


MIGRATIONS: Dict[SchemaVersion, Migration] = {
    SchemaVersion.V1: Migration(
        source=SchemaVersion.V1,
        target=SchemaVersion.V2,
        description="cancelled -> cancelled_at",
        statements=(
            "ALTER TABLE orders DROP COLUMN cancelled",
            "ALTER TABLE orders ADD COLUMN cancelled_at TIMESTAMP",
        ),
    ),
}


class SchemaMigrator:
    """
    Brings an opened DuckDB database forward to CURRENT_VERSION.

    Must run before any other access to the orders table.

    Usage:
        migrator = SchemaMigrator(conn)
        migrator.ensure_schema()
        version = migrator.migrate()
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self.conn = conn

    def _table_exists(self, table: str) -> bool:
        result = self.conn.execute(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
            [table]
        ).fetchone()
        return bool(result and result[0])

    def read_version(self) -> SchemaVersion:
        """
        Read the persisted schema version.

        Raises:
            MigrationError: If the marker names a version this code does not know
        """
        if not self._table_exists("schema_meta"):
            return SchemaVersion.V1

        result = self.conn.execute(
            "SELECT value FROM schema_meta WHERE key = ?", [SCHEMA_VERSION_KEY]
        ).fetchone()
        if not result or result[0] is None:
            return SchemaVersion.V1

        try:
            return SchemaVersion(int(result[0]))
        except ValueError:
            raise MigrationError(
                "Unknown schema version",
                f"database reports v{result[0]}, latest known is v{int(CURRENT_VERSION)}",
            )

    def _write_version(self, version: SchemaVersion) -> None:
        self.conn.execute("""
            INSERT INTO schema_meta (key, value, updated_at)
            VALUES (?, ?, now())
            ON CONFLICT (key) DO UPDATE SET
                value = excluded.value,
                updated_at = now()
        """, [SCHEMA_VERSION_KEY, str(int(version))])

    def ensure_schema(self) -> None:
        """Create the version table, and the orders table at the current version if missing."""
        self.conn.execute(SCHEMA_META_SQL)

        if self._table_exists("orders"):
            return

        self.conn.execute("BEGIN TRANSACTION")
        try:
            self.conn.execute(ORDERS_SCHEMA_SQL)
            self._write_version(CURRENT_VERSION)
            self.conn.execute("COMMIT")
        except Exception:
            self.conn.execute("ROLLBACK")
            raise

        logger.info(f"Orders schema created at v{int(CURRENT_VERSION)}")

    def _apply(self, migration: Migration) -> None:
        """Run one migration and advance the marker in a single transaction."""
        self.conn.execute("BEGIN TRANSACTION")
        try:
            for statement in migration.statements:
                self.conn.execute(statement)
            self._write_version(migration.target)
            self.conn.execute("COMMIT")
        except Exception:
            self.conn.execute("ROLLBACK")
            raise

    def migrate(self, strict: bool = False) -> SchemaVersion:
        """
        Apply all pending migrations in order.

        On failure the failing step is rolled back in full and logged; the
        database stays at the last committed version, which is returned.

        Args:
            strict: Raise MigrationError instead of returning on failure

        Returns:
            The schema version the database is at afterwards
        """
        version = self.read_version()

        if version >= CURRENT_VERSION:
            logger.debug(f"Schema is up to date (v{int(version)})")
            return version

        while version < CURRENT_VERSION:
            migration = MIGRATIONS[version]
            logger.info(
                f"Migrating DB from v{int(migration.source)} to v{int(migration.target)}: "
                f"{migration.description}"
            )
            try:
                self._apply(migration)
            except duckdb.Error as e:
                logger.exception(
                    f"Migration v{int(migration.source)} -> v{int(migration.target)} failed, "
                    f"changes rolled back"
                )
                if strict:
                    raise MigrationError(
                        "Migration failed",
                        str(e),
                        from_version=int(migration.source),
                        to_version=int(migration.target),
                    ) from e
                return version

            version = migration.target
            logger.info(f"Schema updated successfully to v{int(version)}")

        return version
