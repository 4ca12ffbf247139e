"""
Structured logging for the disk cache.

Storage code logs through ``get_logger()``; scheduled operations run inside
``log_context()`` so every record carries the storage name and operation.
The package installs no output handler on import: records reach whatever the
host application configured. ``setup_logging()`` is for the CLI and for
applications that want the JSON file / rich console pair.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import orjson
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

ROOT_LOGGER = "kvdisk"

_storage_var: ContextVar[str | None] = ContextVar("storage", default=None)
_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


def get_storage() -> str | None:
    return _storage_var.get()


def get_operation() -> str | None:
    return _operation_var.get()


def _context() -> dict[str, str]:
    context: dict[str, str] = {}
    storage = _storage_var.get()
    operation = _operation_var.get()
    if storage:
        context["storage"] = storage
    if operation:
        context["operation"] = operation
    return context


@contextmanager
def log_context(
    storage: str | None = None,
    operation: str | None = None,
) -> Generator[None, None, None]:
    """Set the storage and operation for records logged inside the block.

    Tokens are reset on exit, so nested blocks restore the outer values.
    """
    tokens = []
    if storage is not None:
        tokens.append((_storage_var, _storage_var.set(storage)))
    if operation is not None:
        tokens.append((_operation_var, _operation_var.set(operation)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the storage context and extras."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(),
        }
        if hasattr(record, "extra"):
            log_obj["extra"] = record.extra
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(log_obj, default=str).decode("utf-8")


class ContextRichHandler(RichHandler):
    """Rich console handler that prefixes the level with storage and operation."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        level_text = super().get_level_text(record)
        context = _context()
        if not context:
            return level_text

        prefix = Text()
        if "storage" in context:
            prefix.append(f" {context['storage']}", style="dim")
        if "operation" in context:
            prefix.append(f" {context['operation']}", style="cyan")
        return level_text + prefix


class ContextLogger:
    """Logger wrapper that turns keyword arguments into structured extras.

    Example:
        logger.warning("Failed to delete entry", path=str(path), error=str(e))
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, msg: str, *args: Any, exc_info: bool = False, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {**_context(), **kwargs}
        self._logger.log(level, msg, *args, exc_info=exc_info, extra={"extra": extra})

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)


def set_level(log_level: str) -> None:
    """Set the threshold of the package logger without touching handlers."""
    logging.getLogger(ROOT_LOGGER).setLevel(getattr(logging, log_level.upper()))


def setup_logging(
    log_level: str = "WARNING",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Attach a JSON file handler and/or a rich console handler.

    Replaces handlers added by an earlier call. Records stop propagating to
    the root logger once this has run.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to a JSON Lines log file. If None, no file is written.
        console_output: Whether to log to stderr through rich.
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    set_level(log_level)
    root_logger.handlers.clear()

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    if console_output:
        root_logger.addHandler(
            ContextRichHandler(
                console=Console(stderr=True),
                show_time=True,
                show_path=False,
                rich_tracebacks=True,
            )
        )

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())
    root_logger.propagate = False


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger under the ``kvdisk`` namespace."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return ContextLogger(logging.getLogger(name))
