"""
Centralized logging and error classification for the design chat client.

This module provides decorators and helper functions to standardize logging
across the codebase.

Features:
- Structured logging with contextual information
- Error classification for streaming failures
- Performance timing for operations
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, ParamSpec, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from design_chat.llm.exceptions import (
    CreditsExhaustedError,
    LLMError,
    RateLimitError,
    RequestRejectedError,
    TransportError,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog through the stdlib root logger at the given level."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    logging.getLogger().setLevel(level.upper())


class StreamErrorHandler:
    """Classify failures of a streaming call for logging."""

    @staticmethod
    def classify_error(error: BaseException) -> str:
        """
        Classify an error into a stable category name.

        Args:
            error: The exception to classify

        Returns:
            Error category used in log records
        """
        if isinstance(error, RateLimitError):
            return "rate_limited"
        if isinstance(error, CreditsExhaustedError):
            return "credits_exhausted"
        if isinstance(error, RequestRejectedError):
            return "service_error"
        if isinstance(error, TransportError) and error.__cause__ is not None:
            cause = StreamErrorHandler.classify_error(error.__cause__)
            return "transport_error" if cause == "unknown_error" else cause
        if isinstance(error, httpx.TimeoutException | TimeoutError):
            return "timeout_error"
        if isinstance(error, TransportError | httpx.TransportError):
            return "transport_error"
        if isinstance(error, ConnectionError | OSError):
            return "connection_error"
        if isinstance(error, UnicodeDecodeError):
            return "decode_error"
        if isinstance(error, ValidationError):
            return "validation_error"
        if isinstance(error, LLMError):
            return "llm_error"
        return "unknown_error"

    @staticmethod
    def log_failure(error: BaseException, log: ContextualLogger) -> str:
        """
        Log a failed call once and return its category.

        Rejections by the endpoint are expected conditions and are logged at
        warning level; everything else is an error.
        """
        category = StreamErrorHandler.classify_error(error)
        report = log.warning if isinstance(error, RequestRejectedError) else log.error
        report(
            "Operation failed",
            error_type=type(error).__name__,
            error_category=category,
            error_message=str(error),
            status_code=getattr(error, "status_code", None),
        )
        return category


class ContextualLogger:
    """
    Logger whose context grows while an operation runs.

    ``update`` adds fields in place, so records emitted later by whoever
    holds the same instance (for example ``operation_context`` on exit)
    carry them too.
    """

    def __init__(self, base_context: dict[str, Any] | None = None):
        self.base_context = dict(base_context or {})
        self._logger = logger.bind(**self.base_context)

    def update(self, **context: Any) -> None:
        self.base_context.update(context)
        self._logger = logger.bind(**self.base_context)

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, **context)


def _elapsed_ms(start_time: float | None) -> dict[str, Any]:
    if start_time is None:
        return {}
    return {"duration_ms": round((time.perf_counter() - start_time) * 1000, 2)}


def log_operation(
    operation: str,
    *,
    log_timing: bool = True,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations at debug level.

    The returned value is logged as ``result`` when it is a ``StreamOutcome``
    or other enum, so a turn's outcome shows up next to its timing.
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation, function=func.__name__
            )
            operation_logger.debug("Operation started")
            start_time = time.perf_counter() if log_timing else None

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                operation_logger.error(
                    "Operation failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    **_elapsed_ms(start_time),
                )
                raise

            outcome = result.value if isinstance(result, Enum) else None
            operation_logger.debug(
                "Operation completed",
                result=outcome,
                **_elapsed_ms(start_time),
            )
            return result

        return wrapper
    return decorator


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
) -> AsyncIterator[ContextualLogger]:
    """
    Async context manager for operation logging.

    Yields a ``ContextualLogger``; fields added with ``update`` inside the
    block appear on the closing record. An exception escaping the block is
    logged at error level, so callers that report their own failures should
    handle them inside the block.
    """
    operation_logger = ContextualLogger({"operation": operation, **(context or {})})
    operation_logger.info("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger
    except Exception as e:
        operation_logger.error(
            "Operation failed",
            error_type=type(e).__name__,
            error_message=str(e),
            **_elapsed_ms(start_time),
        )
        raise

    operation_logger.info("Operation finished", **_elapsed_ms(start_time))
