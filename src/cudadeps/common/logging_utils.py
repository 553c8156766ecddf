"""
Logging utilities for toolkit resolution.

Provides:
- setup_logging() for console output from the diagnostics CLI
- TimingSpan for measuring operation durations
"""

import logging
import sys
import time
from typing import Optional

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: int = logging.INFO, stream=None) -> logging.Handler:
    """
    Attach a console handler to the package logger.

    Repeated calls replace the handler installed by a previous call instead
    of stacking another one.

    Args:
        level: Logging level for the cudadeps logger
        stream: Output stream (stderr if omitted)

    Returns:
        The installed handler
    """
    package_logger = logging.getLogger("cudadeps")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_cudadeps_console", False):
            package_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    handler._cudadeps_console = True
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return handler


def _format_context(message: str, context: dict) -> str:
    if not context:
        return message
    context_str = " ".join(f"{key}={value}" for key, value in context.items())
    return f"[{context_str}] {message}"


class TimingSpan:
    """
    Context manager for timing operations and logging duration.

    Usage:
        with TimingSpan("resolve_toolkit"):
            # ... expensive operation ...
            pass
    """

    def __init__(self, operation: str, log: Optional[logging.Logger] = None, **extra_context):
        """
        Initialize timing span.

        Args:
            operation: Name of the operation being timed
            log: Logger to report to (this module's logger if omitted)
            **extra_context: Additional context to include in logs
        """
        self.operation = operation
        self.log = log or logger
        self.extra_context = extra_context
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        """Start timing."""
        self.start_time = time.perf_counter()
        self.log.debug(_format_context(f"{self.operation} - started", self.extra_context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """End timing and log duration."""
        self.end_time = time.perf_counter()
        duration_ms = (self.end_time - self.start_time) * 1000

        if exc_type is not None:
            context = dict(self.extra_context, error=str(exc_val))
            self.log.error(_format_context(f"{self.operation} - failed after {duration_ms:.0f}ms", context))
        else:
            context = dict(self.extra_context, duration_ms=f"{duration_ms:.0f}")
            self.log.debug(_format_context(f"{self.operation} - completed", context))

        return False  # Don't suppress exceptions

    def get_duration_ms(self) -> Optional[float]:
        """Get duration in milliseconds."""
        if self.start_time is not None and self.end_time is not None:
            return (self.end_time - self.start_time) * 1000
        return None
