"""
VineTracker: order tracking and ETV adjustment for review-program purchases.

This package contains:
- config: Centralized configuration
- exceptions: Custom exception hierarchy
- validators: Input validation functions
- filters / query: Order filter options and SQL builder
- migrations: Versioned schema migrations
- repositories: DuckDB order store
- reports: Monthly ETV breakdown
"""

# Import in dependency order
from vinetracker.exceptions import (
    VineTrackerError,
    MigrationError,
    SchemaVersionError,
    ValidationError,
)

from vinetracker.config import config

from vinetracker.models import (
    Order,
    OrderType,
    ImportRow,
    ImportResult,
)

from vinetracker.filters import (
    OrderFilter,
    SortField,
    SortDirection,
)

from vinetracker.migrations import (
    SchemaVersion,
    SchemaMigrator,
)

from vinetracker.repositories import (
    OrderRepository,
    get_repository,
    close_repository,
)

from vinetracker.reports import (
    MonthlyBucket,
    YearSummary,
    monthly_breakdown,
    summarize_year,
)

__all__ = [
    # Exceptions
    "VineTrackerError",
    "MigrationError",
    "SchemaVersionError",
    "ValidationError",
    # Config
    "config",
    # Models
    "Order",
    "OrderType",
    "ImportRow",
    "ImportResult",
    # Filters
    "OrderFilter",
    "SortField",
    "SortDirection",
    # Migrations
    "SchemaVersion",
    "SchemaMigrator",
    # Repositories
    "OrderRepository",
    "get_repository",
    "close_repository",
    # Reports
    "MonthlyBucket",
    "YearSummary",
    "monthly_breakdown",
    "summarize_year",
]
