"""
Error handling utilities for CFR Agency Metrics.

This module defines the error taxonomy used across the pipeline, plus the
decorators and collectors that let per-agency failures be absorbed and
reported without aborting an orchestration run.
"""

import logging
import time
import functools
from typing import Any, Callable, Optional, List, Union
from datetime import datetime


logger = logging.getLogger(__name__)


class CFRMetricsError(Exception):
    """Base exception for CFR Agency Metrics errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None,
                 recoverable: bool = False):
        """
        Initialize CFR Metrics error.

        Args:
            message: Error message
            cause: Original exception that caused this error
            recoverable: Whether retrying the operation may succeed
        """
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()


class UpstreamUnavailable(CFRMetricsError):
    """The eCFR service could not be reached or returned a non-success status."""
    pass


class MalformedResponse(CFRMetricsError):
    """The eCFR service returned a body that could not be parsed."""
    pass


class SampleExhausted(CFRMetricsError):
    """Every sampled title for an agency failed, or none was associated."""
    pass


class RequestCancelled(CFRMetricsError):
    """The caller abandoned the orchestration run."""
    pass


class ConfigurationError(CFRMetricsError):
    """Error in configuration or setup."""
    pass


def log_execution_time(func: Callable) -> Callable:
    """
    Decorator to log function execution time.

    Args:
        func: Function to wrap

    Returns:
        Wrapped function with execution time logging
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        start_time = time.time()
        func_name = f"{func.__module__}.{func.__name__}"

        try:
            logger.debug(f"Starting {func_name}")
            result = func(*args, **kwargs)
            execution_time = time.time() - start_time
            logger.info(f"Completed {func_name} in {execution_time:.2f}s")
            return result

        except Exception as e:
            execution_time = time.time() - start_time
            logger.error(f"Failed {func_name} after {execution_time:.2f}s: {e}")
            raise

    return wrapper


class ErrorCollector:
    """Collects errors absorbed during a single orchestration run."""

    def __init__(self):
        """Initialize error collector."""
        self.errors: List[CFRMetricsError] = []
        self.warnings: List[str] = []
        self.start_time = datetime.now()

    def add_error(self, error: Union[CFRMetricsError, Exception],
                  context: str = "") -> None:
        """
        Add an error to the collection.

        Args:
            error: Error to add
            context: Additional context information, usually the agency name
        """
        if isinstance(error, CFRMetricsError):
            metrics_error = error
            if context:
                metrics_error = type(error)(
                    message=f"{context}: {error.message}",
                    cause=error.cause or error,
                    recoverable=error.recoverable
                )
        else:
            metrics_error = CFRMetricsError(
                message=f"{context}: {str(error)}" if context else str(error),
                cause=error,
                recoverable=False
            )

        # list.append is atomic, so worker threads may report concurrently
        self.errors.append(metrics_error)
        logger.debug(f"Error collected: {metrics_error.message}")

    def add_warning(self, message: str, context: str = "") -> None:
        """Add a warning to the collection."""
        warning_msg = f"{context}: {message}" if context else message
        self.warnings.append(warning_msg)
        logger.debug(f"Warning collected: {warning_msg}")

    def has_errors(self) -> bool:
        """Check if any errors have been collected."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if any warnings have been collected."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> str:
        """
        Get a summary of collected errors and warnings.

        Returns:
            Formatted summary string
        """
        lines = []

        if self.has_errors():
            lines.append(f"Errors ({len(self.errors)}):")
            for i, error in enumerate(self.errors, 1):
                lines.append(f"  {i}. {error.message}")
                if error.cause:
                    lines.append(f"     Caused by: {error.cause}")

        if self.has_warnings():
            lines.append(f"Warnings ({len(self.warnings)}):")
            for i, warning in enumerate(self.warnings, 1):
                lines.append(f"  {i}. {warning}")

        if not lines:
            lines.append("No errors or warnings collected")

        return "\n".join(lines)
