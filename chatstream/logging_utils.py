"""
Centralized logging and error classification utilities for chatstream.

This module provides decorators and helper functions to standardize logging
around streaming requests, reducing boilerplate and ensuring consistent
error reporting.

Features:
- Structured logging with contextual information
- Error category detection for the streaming error taxonomy
- Performance timing
"""

from __future__ import annotations

import functools
import time
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from .llm.exceptions import (
    LLMError,
    RetryExhaustedError,
    StreamingError,
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


class ErrorHandler:
    """Maps exceptions onto the categories used in structured logs."""

    @staticmethod
    def classify_error(error: Exception) -> tuple[int | None, str]:
        """
        Classify an error and return its HTTP status (if any) and category.

        Args:
            error: The exception to classify

        Returns:
            Tuple of (status_code, error_category)
        """
        if isinstance(error, RetryExhaustedError):
            return None, "timeout_error"
        if isinstance(error, TransportError):
            if error.status_code is not None:
                return error.status_code, "http_status_error"
            return None, "transport_error"
        if isinstance(error, StreamingError):
            return None, "stream_parse_error"
        if isinstance(error, LLMError):
            return error.status_code, "llm_error"
        if isinstance(error, ValidationError):
            return None, "validation_error"
        if isinstance(error, TimeoutError | httpx.TimeoutException):
            return None, "timeout_error"
        if isinstance(error, ConnectionError | OSError | httpx.TransportError):
            return None, "connection_error"
        if isinstance(error, ValueError | TypeError):
            return None, "parameter_error"
        return None, "unknown_error"

    @staticmethod
    def log_error(
        error: Exception,
        operation: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Log an error with its category and operation context."""
        status_code, error_category = ErrorHandler.classify_error(error)
        logger.error(
            "Operation failed",
            operation=operation,
            error_type=type(error).__name__,
            error_category=error_category,
            status_code=status_code,
            error_message=str(error),
            **(context or {}),
        )


def log_operation(
    operation: str,
    *,
    log_args: bool = False,
    log_result: bool = False,
    log_timing: bool = True,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations with structured context.

    Args:
        operation: Description of the operation being performed
        log_args: Whether to log function arguments
        log_result: Whether to log function result
        log_timing: Whether to log execution timing
        context: Additional context to include in logs

    Returns:
        Decorated function with logging
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation,
                function=func.__name__,
                **(context or {}),
            )

            log_data = {}
            if log_args:
                log_data.update({
                    "args": args[1:] if args else [],  # Skip 'self' if present
                    "kwargs": kwargs,
                })

            operation_logger.info("Operation started", **log_data)

            start_time = time.perf_counter() if log_timing else None

            try:
                result = await func(*args, **kwargs)

                end_log_data: dict[str, Any] = {}
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    end_log_data["duration_ms"] = duration
                if log_result:
                    end_log_data["result"] = result

                operation_logger.info(
                    "Operation completed successfully", **end_log_data
                )
                return result

            except Exception as e:
                _, error_category = ErrorHandler.classify_error(e)
                error_log_data: dict[str, Any] = {
                    "error_type": type(e).__name__,
                    "error_category": error_category,
                    "error_message": str(e),
                }
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    error_log_data["duration_ms"] = duration

                operation_logger.error("Operation failed", **error_log_data)
                raise

        return wrapper
    return decorator
