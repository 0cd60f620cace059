"""
Logging setup and timing helpers.

Usage:
    from vinetracker.observability import setup_logging, get_logger

    # Once, at process start:
    setup_logging()

    # In modules:
    logger = get_logger(__name__)
    logger.info("Imported orders", extra={"inserted": 12})
"""
import functools
import inspect
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """
    JSON log formatter, one object per line.

    Keys: timestamp (record time, UTC), level, logger, message, then any
    extra= fields, then exception/stack text when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        entry = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extras(record),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """
    Console formatter.

    Format: TIMESTAMP - LEVEL - LOGGER - MESSAGE | {extras}
    """

    converter = time.gmtime

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(levelname)-8s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        extras = _extras(record)
        return f"{line} | {extras}" if extras else line


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> None:
    """
    Install one stream handler on the root logger, replacing any others.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive);
               defaults to config.logging.level
        json_format: JSON lines instead of console lines;
                     defaults to config.logging.json_format
    """
    from vinetracker.config import config

    level = (level or config.logging.level).upper()
    if json_format is None:
        json_format = config.logging.json_format

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)

    logging.getLogger("duckdb").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class Timer:
    """
    Times a block and, given a logger, logs the duration on exit.

    Logs at DEBUG, or WARNING once warn_threshold_ms is exceeded. A block
    that raises is logged as failed and the exception propagates.

    Usage:
        with Timer("import_orders", logger) as t:
            repo.import_orders(rows)
        t.elapsed_ms
    """

    def __init__(self, name: str, logger: Optional[logging.Logger] = None, warn_threshold_ms: float = 1000):
        self.name = name
        self.logger = logger
        self.warn_threshold_ms = warn_threshold_ms
        self.elapsed_ms: float = 0
        self._started: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        if self.logger is None:
            return

        slow = self.elapsed_ms > self.warn_threshold_ms
        outcome = "failed" if exc_type else "completed"
        self.logger.log(
            logging.WARNING if slow else logging.DEBUG,
            f"{self.name} {outcome} in {self.elapsed_ms:.2f}ms",
            extra={"operation": self.name, "duration_ms": round(self.elapsed_ms, 2)},
        )


def timed(name: Optional[str] = None, warn_threshold_ms: float = 1000):
    """
    Decorator that wraps a function or coroutine function in a Timer.

    Args:
        name: Operation name (defaults to the function's qualified name)
        warn_threshold_ms: Duration above which the log is a WARNING
    """
    def decorator(func: Callable) -> Callable:
        label = name or func.__qualname__
        log = get_logger(func.__module__)

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def wrapper(*args, **kwargs):
                with Timer(label, log, warn_threshold_ms):
                    return await func(*args, **kwargs)
        else:
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                with Timer(label, log, warn_threshold_ms):
                    return func(*args, **kwargs)

        return wrapper

    return decorator
