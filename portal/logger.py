"""
Structured JSON logging for the portal engine.

Every line is one JSON object.  Besides the message, a line carries the
*context* it was logged in (which cascade, which project, which queue row),
so a run can be followed with ``jq 'select(.context.parent_id == "c-1")'``
instead of parsing message text.

Context is attached with :meth:`StructuredLogger.bind`, which returns a
logger sharing the same handlers::

    log = logger.bind(parent_kind="customer", parent_id="c-1")
    log.info("Cascade step done", extra={"collection": "report_approvals"})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping, Optional, TextIO

_RESERVED: frozenset[str] = frozenset(
    logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
    ).__dict__.keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: ``timestamp`` (UTC ISO-8601), ``level``, ``logger_name``,
    ``message``, then ``context`` (bound and ``extra`` fields, JSON-native
    where possible) and ``exception`` when a traceback is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED
        }
        if context:
            entry["context"] = context

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False, default=str)


def _attach_handlers(
    target: logging.Logger,
    level: int,
    stream: Optional[TextIO],
    log_file: str,
    max_bytes: int,
    backup_count: int,
) -> None:
    """Console plus rotating file; console only when the file cannot be opened."""
    formatter = JSONFormatter()

    console = logging.StreamHandler(stream or sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    target.addHandler(console)

    try:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as exc:
        target.warning("Log file %s unavailable (%s); console only.", log_file, exc)
        return
    rotating.setLevel(level)
    rotating.setFormatter(formatter)
    target.addHandler(rotating)


class StructuredLogger:
    """Injectable JSON logger with bindable context.

    Handlers are attached once per logger *name*; later instances with the
    same name reuse them.  Rotation limits default to ``LOG_MAX_BYTES`` and
    ``LOG_BACKUP_COUNT`` from :class:`~portal.config.AppConfig`.
    """

    DEFAULT_LOG_FILE: str = "portal.log"

    def __init__(
        self,
        name: str = "portal",
        level: int = logging.INFO,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(level)
        self._context: dict[str, Any] = {}

        if not self._logger.handlers:
            # Lazy import: config is loaded on first logger creation only.
            from portal.config import get_config

            cfg = get_config()
            _attach_handlers(
                self._logger,
                level,
                stream,
                log_file or self.DEFAULT_LOG_FILE,
                max_bytes if max_bytes is not None else cfg.LOG_MAX_BYTES,
                backup_count if backup_count is not None else cfg.LOG_BACKUP_COUNT,
            )

    def bind(self, **context: Any) -> StructuredLogger:
        """Return a logger that adds *context* to every record it emits."""
        bound = object.__new__(StructuredLogger)
        bound._logger = self._logger
        bound._context = {**self._context, **context}
        return bound

    @property
    def context(self) -> Mapping[str, Any]:
        return dict(self._context)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, msg: str, args: tuple[object, ...], kwargs: dict[str, Any]) -> None:
        if self._context:
            kwargs["extra"] = {**self._context, **(kwargs.get("extra") or {})}
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    def exception(self, msg: str, *args: object, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, kwargs)


def get_logger(name: str = "portal") -> StructuredLogger:
    return StructuredLogger(name=name)
