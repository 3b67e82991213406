"""Logging configuration setup.

Provides logging configuration using:
- dictConfig for the root logger
- QueueHandler + QueueListener for non-blocking I/O
- ContextInjectingFilter for automatic context propagation
- All handlers on root logger (child loggers propagate)
- JSONL format for machine parsing (Loki-ready)

The library never configures logging on import. Applications call
``setup_logging()`` (settings driven) or ``configure_logging()`` (explicit)
from their entrypoint.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
import time
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from materialized_hierarchy.infra.logging.context import ContextInjectingFilter
from materialized_hierarchy.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from materialized_hierarchy.core.settings.logs import LoggingSettings

# Global queue and listener for async logging
_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False
_ATEXIT_REGISTERED = False

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def complete(timeout: float = 5.0) -> None:
    """Wait for all queued log records to be processed.

    Blocks until the queue drains or ``timeout`` seconds pass. Call this
    before exiting a short-lived script to make sure every record was
    written.
    """
    if _log_queue is None or _listener is None:
        return

    start = time.monotonic()
    while not _log_queue.empty() and (time.monotonic() - start) < timeout:
        time.sleep(0.01)


def shutdown() -> None:
    """Stop the QueueListener after flushing pending records.

    Registered with ``atexit`` the first time a listener is started.
    """
    global _log_queue, _listener

    if _listener is not None:
        complete()
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
        _listener = None

    _log_queue = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from materialized_hierarchy.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = {**settings_obj.to_logging_kwargs(), **configure_kwargs}
    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    service_name: str = "materialized-hierarchy",
    log_level: str = "INFO",
    console_level: str | None = None,
    file_level: str | None = None,
    file_path: str | Path | None = None,
    json_logs: bool = False,
    console_enabled: bool = True,
    include_context: bool = True,
    capture_warnings: bool = True,
    include_process_info: bool = False,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    **kwargs: Any,
) -> None:
    """Configure logging with dictConfig and the QueueHandler pattern.

    Any listener left over from a previous call is shut down first, so the
    function can be called again to reconfigure.

    Args:
        service_name: Static ``service`` field on JSON records.
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        console_level: Console handler level. If None, uses log_level.
        file_level: File handler level. If None, uses log_level.
        file_path: Path to log file. None disables file logging.
        json_logs: Enable JSONL (JSON Lines) structured logging.
        console_enabled: Enable console/stderr logging.
        include_context: Enable ContextInjectingFilter for auto context.
        capture_warnings: Forward Python warnings to logging system.
        include_process_info: Include process ID and name in records.
        file_max_bytes: Maximum log file size before rotation.
        file_backup_count: Number of rotated log files to keep.
        **kwargs: Unknown settings; logged at DEBUG and ignored.

    Example:
        ```python
        from materialized_hierarchy.core.settings import get_logging_settings

        configure_logging(**get_logging_settings().to_logging_kwargs())

        # Or explicit, per-handler levels
        configure_logging(log_level="DEBUG", console_level="WARNING", file_path="h.log")
        ```
    """
    shutdown()

    if capture_warnings:
        logging.captureWarnings(True)

    path = Path(file_path) if file_path else None
    if path:
        path.parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {"level": log_level.upper(), "handlers": []},
        }
    )

    _setup_queue_logging(
        service_name=service_name,
        console_enabled=console_enabled,
        console_level=(console_level or log_level).upper(),
        file_path=path,
        file_level=(file_level or log_level).upper(),
        file_max_bytes=file_max_bytes,
        file_backup_count=file_backup_count,
        json_logs=json_logs,
        include_context=include_context,
        include_process_info=include_process_info,
    )

    if kwargs:
        logger.debug("Unused logging kwargs supplied: %s", ", ".join(sorted(kwargs)))


def _make_formatter(
    service_name: str, json_logs: bool, include_process_info: bool
) -> logging.Formatter:
    if json_logs:
        return JSONFormatter(
            static={"service": service_name},
            include_process_info=include_process_info,
        )
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def _setup_queue_logging(
    service_name: str,
    console_enabled: bool,
    console_level: str,
    file_path: Path | None,
    file_level: str,
    file_max_bytes: int,
    file_backup_count: int,
    json_logs: bool,
    include_context: bool,
    include_process_info: bool,
) -> None:
    """Set up QueueHandler + QueueListener for non-blocking logging.

    Creates the real handlers, attaches them to a QueueListener, and gives
    the root logger a single QueueHandler. The context filter sits on the
    QueueHandler so it also sees records propagated from child loggers, and
    runs in the emitting task where the contextvars are still set.
    """
    global _log_queue, _listener, _ATEXIT_REGISTERED

    _log_queue = Queue()
    formatter = _make_formatter(service_name, json_logs, include_process_info)
    handlers: list[logging.Handler] = []

    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if file_path:
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if handlers:
        _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
        _listener.start()
        if not _ATEXIT_REGISTERED:
            atexit.register(shutdown)
            _ATEXIT_REGISTERED = True

    queue_handler = QueueHandler(_log_queue)
    if include_context:
        queue_handler.addFilter(ContextInjectingFilter())
    logging.getLogger().addHandler(queue_handler)
