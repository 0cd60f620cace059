"""
Centralized configuration for VineTracker.

This module provides a single source of truth for all configuration values.
Configuration is loaded from environment variables with sensible defaults.

Usage:
    from vinetracker.config import config

    db_path = config.storage.db_path
    tz = config.orders.tzinfo
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "vinetracker.duckdb"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class StorageConfig:
    """DuckDB storage configuration."""

    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("VINETRACKER_DB_PATH", str(DEFAULT_DB_PATH)))
    )


@dataclass(frozen=True)
class OrderConfig:
    """Order filtering and adjustment configuration."""

    # Timezone used for calendar year/day bounds and monthly buckets
    timezone: str = field(default_factory=lambda: os.getenv("VINETRACKER_TIMEZONE", "UTC"))

    # Conventional thrift-shop residual value, historically auto-applied on import
    thrift_factor: float = 0.2

    # Field limits
    max_reason_length: int = 255
    max_notes_length: int = 2000

    # Accepted calendar years for year filters
    min_year: int = 2000
    max_year: int = 3000

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone as a ZoneInfo object."""
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("VINETRACKER_LOG_LEVEL", "INFO"))
    json_format: bool = field(default_factory=lambda: _env_flag("VINETRACKER_LOG_JSON"))


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""

    version: str = "2.0.0"
    storage: StorageConfig = field(default_factory=StorageConfig)
    orders: OrderConfig = field(default_factory=OrderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global config instance
config = AppConfig()


# ─── Convenience Exports ──────────────────────────────────────────────────────
VERSION = config.version
DB_PATH = config.storage.db_path
THRIFT_FACTOR = config.orders.thrift_factor
MAX_REASON_LENGTH = config.orders.max_reason_length
MAX_NOTES_LENGTH = config.orders.max_notes_length
MIN_YEAR = config.orders.min_year
MAX_YEAR = config.orders.max_year


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_config(app_config: AppConfig = config) -> None:
    """
    Validate configuration values.

    Call this on application startup to fail fast with clear error messages
    instead of cryptic runtime failures.

    Raises:
        ConfigurationError: If any configuration value is invalid
    """
    errors = []

    try:
        ZoneInfo(app_config.orders.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"VINETRACKER_TIMEZONE '{app_config.orders.timezone}' is not a known timezone")

    if app_config.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        errors.append(f"VINETRACKER_LOG_LEVEL '{app_config.logging.level}' is not a valid log level")

    if app_config.orders.thrift_factor < 0:
        errors.append("thrift_factor must be non-negative")

    if app_config.orders.min_year > app_config.orders.max_year:
        errors.append("min_year must not exceed max_year")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
