"""Logging setup through ``logging.config.dictConfig``.

Handlers hang off the root logger only; ``slugtree.*`` loggers propagate to
it. Console output is JSON or plain text, the optional rotating file is
always JSON Lines.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from slugtree.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)
_LOGGING_INITIALIZED = False

_CONTEXT_FILTER = "slugtree.infra.logging.context.ContextInjectingFilter"
_JSON_FORMATTER = "slugtree.infra.logging.formatters.JSONFormatter"
_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Configure logging once per process.

    Args:
        log_settings: Settings to apply, ``get_logging_settings()`` when omitted.
        force: Apply again even if logging was already set up.
        **configure_kwargs: Overrides for individual ``configure_logging`` arguments.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from slugtree.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**{**log_settings.to_logging_kwargs(), **configure_kwargs})
    _LOGGING_INITIALIZED = True


def _handler_configs(
    *,
    json_logs: bool,
    console_enabled: bool,
    path: Path | None,
    max_bytes: int,
    backup_count: int,
) -> dict[str, dict[str, Any]]:
    handlers: dict[str, dict[str, Any]] = {}
    if console_enabled:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "formatter": "json" if json_logs else "text",
        }
    if path is not None:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(path),
            "maxBytes": max_bytes,
            "backupCount": backup_count,
            "encoding": "utf-8",
            "formatter": "json",
        }
    return handlers


def configure_logging(
    log_level: str = "INFO",
    file_path: str | Path | None = None,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    service_name: str = "slugtree",
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    **kwargs: Any,
) -> None:
    """Replace the root logger configuration.

    Args:
        log_level: Root level name, case-insensitive.
        file_path: JSON Lines log file, rotated by size. None disables it.
        json_logs: JSON on the console instead of plain text.
        console_enabled: Log to stderr.
        include_context: Attach ``ContextInjectingFilter`` to every handler.
        service_name: Value of the static ``service`` field of JSON records.
        file_max_bytes: Size that triggers rotation.
        file_backup_count: Rotated files kept.
        **kwargs: Unknown settings, logged and ignored.

    Example:
        configure_logging(log_level="DEBUG", json_logs=False)
    """
    path = Path(file_path) if file_path else None
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)

    handlers = _handler_configs(
        json_logs=json_logs,
        console_enabled=console_enabled,
        path=path,
        max_bytes=file_max_bytes,
        backup_count=file_backup_count,
    )
    filters: dict[str, Any] = {}
    if include_context:
        filters["context"] = {"()": _CONTEXT_FILTER}
        for handler in handlers.values():
            handler["filters"] = ["context"]

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": _JSON_FORMATTER, "static": {"service": service_name}},
                "text": {"format": _TEXT_FORMAT},
            },
            "filters": filters,
            "handlers": handlers,
            "root": {"level": log_level.upper(), "handlers": list(handlers)},
        }
    )

    if kwargs:
        logger.debug("Ignoring unknown logging options", extra={"options": sorted(kwargs)})
    logger.debug(
        "Logging configured",
        extra={"json_logs": json_logs, "file_path": str(path) if path else None},
    )


def reset_logging_state() -> None:
    """Let the next ``setup_logging()`` call configure again. Used by tests."""
    global _LOGGING_INITIALIZED
    _LOGGING_INITIALIZED = False
