"""
AndLibUtils Structured Logger
==============================

:class:`AndLibLogger` wraps a stdlib logger under the ``andlib.``
namespace.  Progress lines of the renamer go to a Rich handler on stderr
(shown with ``-v``), and every record can additionally be kept in a
rotating log file, either as plain text or as one JSON object per line.

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

_LOG_THEME = Theme(
    {
        "log.level.debug": "dim cyan",
        "log.level.info": "bold bright_blue",
        "log.level.warning": "bold yellow",
        "log.level.error": "bold red",
    }
)

_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_TEXT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# keyword arguments handed straight to logging.Logger.log
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel"})


# ========================== Formatters / Handlers ==========================


class _JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: ``timestamp``, ``level``, ``logger``, ``message``, then
    ``tool_name`` / ``operation`` when bound, ``extra`` for keyword
    fields passed to the log call, and ``exc_info`` for tracebacks.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key))
            for key in ("tool_name", "operation")
            if getattr(record, key, None) is not None
        )
        fields = getattr(record, "andlib_extra", None)
        if fields:
            entry["extra"] = fields
        if record.exc_info and record.exc_info[1] is not None:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: int) -> logging.Handler:
    # markup off: messages carry JNI signatures such as "(I[CIIFFI)V"
    return RichHandler(
        level=level,
        console=Console(theme=_LOG_THEME, stderr=True),
        show_path=False,
        show_time=False,
        markup=False,
        rich_tracebacks=True,
    )


def _file_handler(
    path: Path, level: int, json_logs: bool, max_bytes: int, backup_count: int
) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    if json_logs:
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, _TEXT_DATEFMT))
    return handler


# ========================== AndLibLogger ===================================


class AndLibLogger:
    """Context-aware logger for one AndLibUtils command.

    Usage::

        log = AndLibLogger("rename", log_level="DEBUG")
        with log.operation("rename_jni"):
            log.debug("Searching %s for %s", ".rodata", "drawText")
            log.info("done", matches=1)     # ``matches`` lands in "extra"

    Args:
        tool_name:       Suffix of the ``andlib.`` logger name.
        log_level:       Minimum level name; unknown names mean INFO.
        log_file:        Rotating log file, or ``None`` for console only.
        json_logs:       Write JSON lines instead of text to *log_file*.
        max_bytes:       Rotation threshold of the log file.
        backup_count:    Rotated files to keep.
        console_output:  Attach the Rich stderr handler.
    """

    def __init__(
        self,
        tool_name: str,
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
        console_output: bool = True,
    ) -> None:
        self._tool_name = tool_name
        self._operation: str | None = None

        level = getattr(logging, log_level.upper(), logging.INFO)
        self._logger = logging.getLogger(f"andlib.{tool_name}")
        self._logger.setLevel(level)
        self._logger.propagate = False

        # a logger is process-global; release handlers of an earlier instance
        for old in list(self._logger.handlers):
            self._logger.removeHandler(old)
            old.close()
        if console_output:
            self._logger.addHandler(_console_handler(level))
        if log_file is not None:
            self._logger.addHandler(
                _file_handler(Path(log_file), level, json_logs, max_bytes, backup_count)
            )

    # ------------------------------------------------------------------ #
    #  Operation scope
    # ------------------------------------------------------------------ #

    class _OperationContext:
        def __init__(self, parent: AndLibLogger, operation: str) -> None:
            self._parent = parent
            self._operation = operation
            self._outer: str | None = None

        def __enter__(self) -> AndLibLogger:
            self._outer = self._parent._operation
            self._parent._operation = self._operation
            return self._parent

        def __exit__(self, *exc: Any) -> None:
            self._parent._operation = self._outer

    def operation(self, name: str) -> _OperationContext:
        """Tag every record logged inside the ``with`` block with *name*.

        Scopes nest; leaving one restores the enclosing operation.
        """
        return self._OperationContext(self, name)

    # ------------------------------------------------------------------ #
    #  Log methods
    # ------------------------------------------------------------------ #

    def _log(self, level: int, msg: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        passthrough = {k: v for k, v in kwargs.items() if k in _LOGGING_KWARGS}
        fields = {k: v for k, v in kwargs.items() if k not in _LOGGING_KWARGS and k != "extra"}
        extra = dict(kwargs.get("extra") or {})
        extra["tool_name"] = self._tool_name
        extra["operation"] = self._operation
        if fields:
            extra["andlib_extra"] = fields
        self._logger.log(level, msg, *args, extra=extra, **passthrough)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """ERROR record carrying the active exception's traceback."""
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, kwargs)

    # ------------------------------------------------------------------ #
    #  Timing helper
    # ------------------------------------------------------------------ #

    class _TimingContext:
        def __init__(self, parent: AndLibLogger, label: str) -> None:
            self._parent = parent
            self._label = label
            self._start = 0.0

        def __enter__(self) -> AndLibLogger._TimingContext:
            self._start = time.perf_counter()
            self._parent.debug("Started: %s", self._label)
            return self

        def __exit__(self, *exc: Any) -> None:
            self._parent.debug("Completed: %s (%.3f sec)", self._label, self.elapsed)

        @property
        def elapsed(self) -> float:
            return time.perf_counter() - self._start

    def timed(self, label: str) -> _TimingContext:
        """Log DEBUG lines when the block starts and when it completes,
        with the elapsed time."""
        return self._TimingContext(self, label)

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #

    @property
    def tool_name(self) -> str:
        return self._tool_name

    @property
    def underlying(self) -> logging.Logger:
        """The wrapped :class:`logging.Logger`."""
        return self._logger
