"""Logging infrastructure.

Provides structured logging with:
- JSONL format for Loki/Elasticsearch ingestion
- Automatic context injection through contextvars
- QueueHandler + QueueListener for non-blocking I/O
- Per-handler log levels (console vs file)
- Lazy evaluation for expensive debug messages

Basic usage:
    from materialized_hierarchy.infra.logging import log_context, setup_logging

    setup_logging()  # Reads LOG_* settings once

    with log_context(request_id="abc-123"):
        await rebuild_hierarchy(session, project)  # Records carry request_id

    # Lazy evaluation for expensive operations
    from materialized_hierarchy.infra.logging import get_lazy_logger

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Path: {encode_path(tokens)}")  # Only runs if DEBUG enabled
"""

from materialized_hierarchy.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from materialized_hierarchy.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from materialized_hierarchy.infra.logging.formatters import JSONFormatter
from materialized_hierarchy.infra.logging.lazy import (
    LazyLoggerAdapter,
    LazyString,
    get_lazy_logger,
    lazy,
)

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "LazyString",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "lazy",
    "log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
