# easing_probe/utils/logger.py
from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from easing_probe.utils.config import get_settings, LogLevel


__all__ = [
    "get_logger",
    "set_log_level",
    "bind",
    "unbind",
    "log_with_context",
    "attach_file_logger",
    "detach_file_logger",
    "short_error",
]


ROOT_NAME = "easing-probe"
FILE_MAX_BYTES = 5 * 1024 * 1024
NOISY_LOGGERS = ("asyncio", "urllib3", "playwright")

_config_lock = threading.Lock()
_configured = False
_global_extra: Dict[str, Any] = {}  # run-wide context (run_id, ...) merged into every record


# ------------- Formatting -------------

class JsonFormatter(logging.Formatter):
    """
    One JSON object per line. Bound context (run_id, url, state) is flattened
    into the top level so per-site lines can be grepped by URL.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        context = getattr(record, "extra", None)
        if isinstance(context, dict):
            payload.update(context)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _level_of(level: LogLevel | str | int) -> int:
    if isinstance(level, int):
        return level
    name = level.value if isinstance(level, LogLevel) else str(level)
    return getattr(logging, name.upper(), logging.INFO)


def _console_handler(level: int, colorized: bool) -> logging.Handler:
    console = Console(stderr=True, force_jupyter=False, color_system="auto", no_color=not colorized)
    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,  # page titles and URLs may contain [brackets]
        omit_repeated_times=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(level)
    return handler


def _json_file_handler(path: str, level: int, backups: int) -> logging.Handler:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    handler = RotatingFileHandler(filename=path, maxBytes=FILE_MAX_BYTES, backupCount=backups, encoding="utf-8", delay=True)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def _ensure_configured() -> None:
    """Install the console (and optional file) handler on the root logger once."""
    global _configured
    if _configured:
        return

    with _config_lock:
        if _configured:
            return

        settings = get_settings()
        level = _level_of(settings.LOG_LEVEL)

        root = logging.getLogger()
        root.setLevel(level)
        for h in list(root.handlers):
            root.removeHandler(h)
        root.addHandler(_console_handler(level, settings.COLORIZED_OUTPUT))
        if settings.LOG_TO_FILE:
            root.addHandler(_json_file_handler(str(settings.LOG_FILE), level, backups=5))

        # Playwright's own debug output drowns per-site lines
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

        _configured = True


# ------------- Public API -------------

def get_logger(name: Optional[str] = None) -> logging.LoggerAdapter:
    """Logger adapter carrying the run-wide context bound via `bind()`."""
    _ensure_configured()
    return logging.LoggerAdapter(logging.getLogger(name or ROOT_NAME), extra={"extra": _global_extra})


def set_log_level(level: LogLevel | str) -> None:
    _ensure_configured()
    py_level = _level_of(level)
    root = logging.getLogger()
    root.setLevel(py_level)
    for h in root.handlers:
        h.setLevel(py_level)


def bind(**kwargs: Any) -> None:
    """
    Bind run-wide context (e.g. run_id="20251026T120000Z", category="agencies").
    Every later log line carries it, in the console and the JSON files.
    """
    _global_extra.update(kwargs)


def unbind(*keys: str) -> None:
    for k in keys:
        _global_extra.pop(k, None)


def log_with_context(logger: logging.LoggerAdapter, **kwargs: Any) -> logging.LoggerAdapter:
    """
    Adapter for one scoped section (usually one site session):
        site_log = log_with_context(log, url="https://example.com")
        site_log.info("navigating")
    """
    merged = dict(_global_extra)
    if isinstance(getattr(logger, "extra", None), dict):
        merged.update(logger.extra.get("extra") or {})
    merged.update(kwargs)
    return logging.LoggerAdapter(logger.logger, extra={"extra": merged})


def short_error(exc: BaseException | str, limit: int = 120) -> str:
    """One-line, length-capped rendering of an error for log lines and reports."""
    text = exc if isinstance(exc, str) else str(exc)
    text = " ".join(text.split())
    if not text and isinstance(exc, BaseException):
        text = exc.__class__.__name__
    return text if len(text) <= limit else text[: max(0, limit - 3)] + "..."


# ------------- Per-run file logging -------------

def attach_file_logger(path: os.PathLike | str, level: Optional[int] = None) -> logging.Handler:
    """
    Attach a JSON file handler for the duration of one batch.
    Returns the handler for detach_file_logger.
    """
    _ensure_configured()
    root = logging.getLogger()
    handler = _json_file_handler(os.fspath(path), level if level is not None else root.level, backups=3)
    root.addHandler(handler)
    return handler


def detach_file_logger(handler: logging.Handler) -> None:
    root = logging.getLogger()
    root.removeHandler(handler)
    try:
        handler.close()
    except OSError:
        pass
