"""JSON Lines formatter for slugtree log records."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else came in through extra= or the context filter
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

_DEFAULT_KEYS = {"level": "levelname", "logger": "name", "message": "message"}


def _utc_timestamp(created: float) -> str:
    stamp = datetime.fromtimestamp(created, tz=timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object on one line.

    Structured fields passed with ``extra=`` (model, slug, target, rewritten
    ...) and fields injected from the log context become top-level keys.

    Example output:
        ```json
        {"level": "DEBUG", "logger": "slugtree.core.database.sluggable.handlers.tree", "message": "Propagated slug prefix", "timestamp": "2025-01-01T00:00:00.123Z", "target": "food", "slug": "produce", "rewritten": 2}
        ```
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
    ) -> None:
        """Initialize JSON formatter.

        Args:
            fmt_keys: Output key -> LogRecord attribute, level/logger/message by default.
            static: Fields added to every record, e.g. ``{"service": "slugtree"}``.
        """
        super().__init__()
        self.fmt_keys = dict(fmt_keys or _DEFAULT_KEYS)
        self.static = dict(static or {})

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        payload: dict[str, Any] = {
            key: getattr(record, attr, None) for key, attr in self.fmt_keys.items()
        }
        payload["timestamp"] = _utc_timestamp(record.created)

        # Tracebacks are escaped to keep one record per line
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            payload["stack_trace"] = self.formatStack(record.stack_info).replace("\n", "\\n")

        payload.update(self.static)
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )
        return json.dumps(payload, ensure_ascii=False, default=str)
