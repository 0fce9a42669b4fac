"""
Changefeed Logging Configuration
================================

Everything logs under the ``changefeed`` logger tree. Components obtain a
``ComponentLogger`` through ``get_logger_for_component``; it stamps each
record with the component name and, when known, the changelog source and
the tool being run.

Console output goes to stderr so tool text on stdout stays clean. File
output is always JSON.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

ROOT_LOGGER = "changefeed"

# Attributes every LogRecord carries; anything else arrived through ``extra``
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

_NOISY_LIBRARIES = ("aiohttp", "asyncio", "feedparser", "charset_normalizer")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields attached to a record through ``extra``."""
    return {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are nested under ``"extra"``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        context = record_context(record)
        if context:
            payload["extra"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable, colored lines tagged with the component context."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:8}"
        if self.use_color and record.levelname in self.LEVEL_COLORS:
            level = f"{self.LEVEL_COLORS[record.levelname]}{level}{self.RESET}"

        context = record_context(record)
        tags = [str(context[key]) for key in ("component", "source", "tool") if context.get(key)]
        where = "/".join(tags) if tags else record.name

        line = f"[{stamp}] {level} {where} - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _build_handlers(
    log_file: Optional[str],
    enable_console: bool,
    structured_logging: bool,
    max_file_size_mb: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []

    if enable_console:
        console = logging.StreamHandler(sys.stderr)
        if structured_logging:
            console.setFormatter(StructuredFormatter())
        else:
            console.setFormatter(ConsoleFormatter(use_color=sys.stderr.isatty()))
        handlers.append(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        rotating.setFormatter(StructuredFormatter())
        handlers.append(rotating)

    return handlers


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Install handlers on the ``changefeed`` logger.

    Calling it again replaces the previous handlers.

    Args:
        log_level: Level name for the ``changefeed`` tree
        log_file: Rotating JSON log file (optional)
        enable_console: Log to stderr
        structured_logging: JSON instead of colored text on the console
        max_file_size_mb: Rotation threshold for the log file
        backup_count: Rotated files kept

    Returns:
        The configured ``changefeed`` logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(log_file, enable_console, structured_logging, max_file_size_mb, backup_count):
        root.addHandler(handler)

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


class ComponentLogger(logging.LoggerAdapter):
    """Adapter that merges the component context into every record's ``extra``."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    source: Optional[str] = None,
    tool_name: Optional[str] = None,
) -> ComponentLogger:
    """Logger for one component, e.g. ``feed_fetcher`` or ``classifier``.

    Args:
        component_name: Becomes ``changefeed.<component_name>``
        source: Changelog source the component works on
        tool_name: Tool being executed
    """
    context: Dict[str, Any] = {"component": component_name}
    if source:
        context["source"] = source
    if tool_name:
        context["tool"] = tool_name
    return ComponentLogger(logging.getLogger(f"{ROOT_LOGGER}.{component_name}"), context)


class PerformanceLogger:
    """Times a block and logs how it ended.

    Success is logged at INFO, failure at ERROR; exceptions still propagate.
    """

    def __init__(self, logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.started: Optional[float] = None

    @property
    def elapsed(self) -> float:
        return 0.0 if self.started is None else time.perf_counter() - self.started

    def __enter__(self) -> "PerformanceLogger":
        self.started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=dict(self.context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        duration = self.elapsed
        context = {**self.context, "duration_seconds": round(duration, 4), "success": exc_type is None}
        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {duration:.3f}s", extra=context)
        else:
            context["error_type"] = exc_type.__name__
            self.logger.error(f"Failed {self.operation} in {duration:.3f}s: {exc_val}", extra=context)
