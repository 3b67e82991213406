"""Context management for structured logging.

Provides automatic context injection into log records using contextvars,
so fields such as the record being rebuilt or the caller's request id show
up on every log line emitted while the context is active.

This approach is:
- Async-safe: Works correctly across async/await boundaries
- Implicit: No need to modify existing logging calls
- Compatible: Works with standard Python logging
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

# Each async task gets its own copy automatically
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Args:
        **kwargs: Key-value pairs to add to logging context.

    Example:
        ```python
        set_log_context(request_id="abc-123")
        logger.info("Rebuilding subtree")  # Record carries request_id
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current task."""
    _log_context.set({})


@contextmanager
def log_context(**kwargs: Any) -> Iterator[dict[str, Any]]:
    """Temporarily extend the logging context.

    The previous context is restored on exit, including when the body raises.

    Example:
        ```python
        with log_context(hierarchy_node="Project|1"):
            logger.info("Rebuilding")  # Includes hierarchy_node
        logger.info("Done")  # hierarchy_node no longer present
        ```
    """
    token = _log_context.set({**_log_context.get(), **kwargs})
    try:
        yield _log_context.get()
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Logging filter that copies the contextvars log context onto records.

    Applied to the root logger by ``configure_logging`` so every formatter
    (especially ``JSONFormatter``) sees the context fields as record
    attributes. Existing record attributes are never overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject context into log record.

        Args:
            record: The log record to enhance with context.

        Returns:
            True (always allow the record to be logged).
        """
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
