"""Structured JSON Lines formatter."""
from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came from extra/context.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Structured JSON Lines (JSONL) formatter with UTC timestamps.

    One JSON object per line, ready for Loki/Elasticsearch ingestion.
    Fields added through ``extra=``, bound adapters, or the log context
    filter are copied onto the output object.

    Example output:
        ```json
        {"level": "DEBUG", "logger": "materialized_hierarchy.core.database.hierarchy.updater", "message": "Set ancestors path", "timestamp": "2025-01-01T00:00:00.123Z", "model": "Task", "path": "Project|1"}
        ```
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
        include_process_info: bool = False,
    ) -> None:
        """Initialize JSON formatter.

        Args:
            fmt_keys: Mapping of output keys to LogRecord attributes.
                Default: {"level": "levelname", "logger": "name", "message": "message"}
            static: Static fields to include in every log record (e.g., {"service": "api"}).
            include_process_info: Include process ID and name.
        """
        super().__init__()
        self.fmt_keys = fmt_keys or {
            "level": "levelname",
            "logger": "name",
            "message": "message",
        }
        self.static = static or {}
        self.include_process_info = include_process_info

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single-line JSON string."""
        record.message = record.getMessage()

        data: dict[str, Any] = {
            k: getattr(record, v, None) for k, v in self.fmt_keys.items()
        }
        data["timestamp"] = (
            datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

        if self.include_process_info:
            data["process_id"] = record.process
            data["process_name"] = record.processName

        # Newlines are escaped to keep one record per line
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            data["stack_trace"] = record.stack_info.replace("\n", "\\n")

        data.update(self.static)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in data:
                data[key] = value

        return json.dumps(data, ensure_ascii=False, default=str)
