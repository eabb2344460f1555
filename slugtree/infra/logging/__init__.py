"""Logging infrastructure.

Provides structured logging with:
- JSONL format for log aggregation
- Automatic context injection (batch id, model name, etc.)

Basic usage:
    from slugtree.infra.logging import set_log_context, setup_logging
    import logging

    setup_logging()
    logger = logging.getLogger(__name__)

    set_log_context(batch_id="rebuild-42")
    logger.info("Regenerating slugs")  # Automatically includes batch_id
"""

from slugtree.infra.logging.config import configure_logging, reset_logging_state, setup_logging
from slugtree.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    remove_from_log_context,
    set_log_context,
)
from slugtree.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "configure_logging",
    "get_log_context",
    "log_context",
    "remove_from_log_context",
    "reset_logging_state",
    "set_log_context",
    "setup_logging",
]
