"""Lazy evaluation support for logging.

The hierarchy layer logs every computed path and reference at DEBUG. Those
messages are built from callables so that encoding and formatting only run
when DEBUG is actually enabled for the logger.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from typing import Any


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that evaluates callable messages and arguments lazily.

    Bound context (passed at construction or through ``bind``) is merged
    into the ``extra`` of every record, with per-call ``extra`` winning.

    Example:
        ```python
        logger = get_lazy_logger(__name__, component="updater")
        logger.debug(lambda: f"path={expensive_encode(record)}")
        # expensive_encode() only runs if DEBUG is enabled

        task_logger = logger.bind(model="Task")
        task_logger.debug("Resolved parent %s", lambda: describe(parent))
        ```
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Merge bound context into the call's ``extra``."""
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log message, evaluating callables only if ``level`` is enabled.

        Args:
            level: Numeric log level (e.g., logging.DEBUG).
            msg: Log message or callable returning message.
            *args: Format arguments (may include callables).
            **kwargs: Additional kwargs for logging.
        """
        if not self.isEnabledFor(level):
            return

        if callable(msg):
            msg = msg()
        evaluated = tuple(arg() if callable(arg) else arg for arg in args)
        super().log(level, msg, *evaluated, **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log debug message with lazy evaluation."""
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log info message with lazy evaluation."""
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log warning message with lazy evaluation."""
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log error message with lazy evaluation."""
        self.log(logging.ERROR, msg, *args, **kwargs)

    def bind(self, **context: Any) -> LazyLoggerAdapter:
        """Return a new adapter with ``context`` added to the bound context."""
        return LazyLoggerAdapter(self.logger, {**(self.extra or {}), **context})


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Get logger with lazy evaluation support.

    Args:
        name: Logger name (usually __name__).
        **context: Optional context to bind to logger.

    Returns:
        Logger adapter with lazy evaluation support.
    """
    return LazyLoggerAdapter(logging.getLogger(name), context or {})


class LazyString:
    """String whose value is computed only when formatted.

    Example:
        ```python
        logger.debug("tokens: %s", LazyString(lambda: decode_path(path)))
        ```
    """

    __slots__ = ("_func",)

    def __init__(self, func: Callable[[], Any]) -> None:
        self._func = func

    def __str__(self) -> str:
        return str(self._func())

    def __repr__(self) -> str:
        return f"LazyString({self._func!r})"


def lazy(func: Callable[[], Any]) -> LazyString:
    """Wrap ``func`` in a LazyString."""
    return LazyString(func)
