"""
Changefeed Custom Exceptions
============================

Every failure that can end a tool invocation is a ``ChangefeedError``
carrying an ``ErrorCode``, structured context for the logs and a message
fit to show to the caller. The service layer turns these into error
results; nothing above it sees a raw exception.

Subclasses pick their default code and recoverability through class
attributes and only add the context fields specific to them.
"""

import asyncio
from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Stable codes, grouped by the stage that failed."""

    # Configuration (C0xx)
    CONFIG_INVALID = "C001"

    # Feed fetch and parse (F0xx)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"
    FEED_ITEM_SKIPPED = "F006"

    # Tool arguments (V0xx)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_OUT_OF_RANGE = "V003"
    VALIDATION_UNKNOWN_VALUE = "V004"

    # Tool execution (T0xx)
    TOOL_FAILED = "T002"

    # Host (S0xx)
    SYSTEM_PERMISSION_DENIED = "S001"
    SYSTEM_MEMORY_ERROR = "S002"


def _merge_context(kwargs: Dict[str, Any], **fields: Any) -> None:
    """Fold the non-None ``fields`` into ``kwargs["context"]``."""
    context = dict(kwargs.pop("context", None) or {})
    context.update({k: v for k, v in fields.items() if v is not None})
    kwargs["context"] = context


class ChangefeedError(Exception):
    """Base exception for all changefeed errors."""

    default_code: Optional[ErrorCode] = None
    default_recoverable = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
    ):
        """
        Args:
            message: Technical description, logged
            error_code: Overrides the class default code
            context: Structured fields for the log record
            user_message: Text shown in tool output (defaults to ``message``)
            recoverable: Whether retrying the same call may succeed
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Log-friendly representation; keys avoid LogRecord attribute names."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.message,
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {self.message}"
        return self.message


class ConfigurationError(ChangefeedError):
    """Settings could not be loaded or failed validation."""

    default_code = ErrorCode.CONFIG_INVALID

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        _merge_context(kwargs, config_key=config_key)
        super().__init__(message, **kwargs)


class FeedError(ChangefeedError):
    """A feed could not be retrieved or read."""

    default_code = ErrorCode.FEED_NETWORK_ERROR
    default_recoverable = True

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        self.feed_url = feed_url
        _merge_context(kwargs, feed_url=feed_url)
        super().__init__(message, **kwargs)


class FeedFetchError(FeedError):
    """Network failure or non-2xx response; ``status_code`` is set for the latter."""

    def __init__(
        self,
        message: str,
        feed_url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        self.status_code = status_code
        if status_code is not None:
            kwargs.setdefault("error_code", ErrorCode.FEED_HTTP_ERROR)
        _merge_context(kwargs, status_code=status_code)
        super().__init__(message, feed_url=feed_url, **kwargs)


class FeedTimeoutError(FeedFetchError):
    """The request did not finish within the configured timeout."""

    default_code = ErrorCode.FEED_FETCH_TIMEOUT

    def __init__(self, message: str, feed_url: Optional[str] = None, timeout: Optional[float] = None, **kwargs):
        _merge_context(kwargs, timeout_seconds=timeout)
        super().__init__(message, feed_url=feed_url, **kwargs)


class FeedParseError(FeedError):
    """Document is not well-formed or lacks the RSS channel shape."""

    default_code = ErrorCode.FEED_PARSE_ERROR
    default_recoverable = False


class ItemSkipped(FeedError):
    """One feed item could not be read; the parser omits it and moves on."""

    default_code = ErrorCode.FEED_ITEM_SKIPPED

    def __init__(self, message: str, item_index: Optional[int] = None, **kwargs):
        _merge_context(kwargs, item_index=item_index)
        super().__init__(message, **kwargs)


class ValidationError(ChangefeedError):
    """A tool argument is missing or outside its allowed domain."""

    default_code = ErrorCode.VALIDATION_INVALID_FORMAT

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        self.field_name = field_name
        _merge_context(kwargs, field_name=field_name)
        super().__init__(message, **kwargs)


def _convert(exception: Exception, operation: str, context: Dict[str, Any]) -> ChangefeedError:
    detail = str(exception)

    if isinstance(exception, (asyncio.TimeoutError, TimeoutError)):
        return FeedTimeoutError(f"Request timeout during {operation}: {detail}", context=context)
    if isinstance(exception, ConnectionError):
        return FeedFetchError(f"Network error during {operation}: {detail}", context=context)
    if isinstance(exception, PermissionError):
        return ChangefeedError(
            f"Permission denied during {operation}: {detail}",
            error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
            context=context,
            user_message="Access denied",
        )
    if isinstance(exception, MemoryError):
        return ChangefeedError(
            f"Memory exhausted during {operation}: {detail}",
            error_code=ErrorCode.SYSTEM_MEMORY_ERROR,
            context=context,
            user_message="System resources exhausted",
            recoverable=True,
        )
    return ChangefeedError(
        f"Unexpected error during {operation}: {detail}",
        error_code=ErrorCode.TOOL_FAILED,
        context=context,
        user_message=f"Unexpected error: {exception}",
        recoverable=True,
    )


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> ChangefeedError:
    """Log ``exception`` and return it as a ``ChangefeedError``.

    Changefeed errors pass through unchanged; anything else is wrapped,
    with the operation and original type recorded in its context.

    Args:
        exception: What was raised
        logger: Logger or component adapter to report on
        operation: Name of the failed operation, e.g. a tool name
        context: Extra fields for the log record
    """
    if isinstance(exception, ChangefeedError):
        error = exception
    else:
        fields = dict(context or {})
        fields.update(operation=operation, original_exception_type=type(exception).__name__)
        error = _convert(exception, operation, fields)

    logger.error(f"Operation '{operation}' failed: {error.message}", extra=error.to_dict())
    return error

