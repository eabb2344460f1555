"""Log context carried in a contextvar.

Fields set here are copied onto every record by ``ContextInjectingFilter``,
so a bulk job can tag all slug logs with the model or batch it works on
without threading the values through every call.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
import logging
from typing import Any

# Copied on write so concurrent tasks never share one dict
_log_context: ContextVar[dict[str, Any]] = ContextVar("slugtree_log_context", default={})


def set_log_context(**fields: Any) -> None:
    """Add ``fields`` to the log context of the current task or thread.

    Example:
        ```python
        set_log_context(model="Category", batch_id="rebuild-42")
        logger.info("Regenerated slugs")  # record carries model and batch_id
        ```
    """
    _log_context.set({**_log_context.get(), **fields})


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current log context."""
    return dict(_log_context.get())


def clear_log_context() -> None:
    """Drop every field of the current log context."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Drop ``keys`` from the current log context, ignoring missing ones."""
    _log_context.set({k: v for k, v in _log_context.get().items() if k not in keys})


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Set ``fields`` for the duration of the block and restore the previous context."""
    token = _log_context.set({**_log_context.get(), **fields})
    try:
        yield
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Copy log context fields onto each record.

    Attributes already present on the record (for instance from ``extra=``)
    win over context fields. Never rejects a record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
