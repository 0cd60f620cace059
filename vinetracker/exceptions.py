"""
Custom exception hierarchy for VineTracker.

Exception Hierarchy:
    VineTrackerError (base)
    ├── MigrationError         - Schema migration failed or version unknown
    └── SchemaVersionError     - Live schema is older than the code requires

    ValidationError            - Input validation failed

Storage errors raised by DuckDB (duckdb.Error) are not wrapped and reach
the caller unchanged.
"""


class VineTrackerError(Exception):
    """Base exception for all VineTracker errors."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class MigrationError(VineTrackerError):
    """
    Schema migration could not be applied.

    Raised only in strict mode or for a version marker this code
    does not know about; the default migrator logs and continues.
    """

    def __init__(self, message: str, details: str = None, from_version: int = None, to_version: int = None):
        super().__init__(message, details)
        self.from_version = from_version
        self.to_version = to_version


class SchemaVersionError(VineTrackerError):
    """
    The orders table is at an older schema version than required.

    Happens when a migration was rolled back at startup and the process
    kept running against the old schema.
    """

    def __init__(self, current: int, required: int):
        super().__init__(
            "Orders schema is out of date",
            f"at v{current}, requires v{required}",
        )
        self.current = current
        self.required = required


class ValidationError(Exception):
    """
    Input validation failed.

    Used for validating caller input before any storage access.
    """

    def __init__(self, field: str, message: str, value: any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value!r})"
        return f"{self.field}: {self.message}"
