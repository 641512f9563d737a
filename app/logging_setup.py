"""
Logging setup.

- Rotating file handlers for flag activity and errors
- Request ID aware formatter
"""

from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.config import Settings

_FLAG_LOGGERS = ("FlagsApi", "FlagsPanel", "FlagsAudit")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # Middleware stores request_id in record if present
        if not hasattr(record, "request_id"):
            try:
                from flask import g, has_request_context
                record.request_id = g.get("request_id", "-") if has_request_context() else "-"
            except ImportError:
                record.request_id = "-"
        return True


def _mk_handler(path: Path, level: int) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    handler.setLevel(level)
    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s %(request_id)s - %(message)s"
    )
    handler.setFormatter(fmt)
    handler.addFilter(RequestIdFilter())
    handler._flags_handler = True  # type: ignore[attr-defined]
    return handler


def _clear_previous(logger: logging.Logger) -> None:
    # create_app() may run many times per process (tests); don't stack handlers
    for h in list(logger.handlers):
        if getattr(h, "_flags_handler", False):
            logger.removeHandler(h)
            h.close()


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    _clear_previous(root)

    # Console (dev)
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s"))
    console._flags_handler = True  # type: ignore[attr-defined]
    root.addHandler(console)

    # Files
    logs_dir = Path(settings.LOG_DIR)
    activity = _mk_handler(logs_dir / "flags.log", logging.INFO)
    errors = _mk_handler(logs_dir / "errors.log", logging.ERROR)

    for name in _FLAG_LOGGERS:
        lg = logging.getLogger(name)
        _clear_previous(lg)
        lg.addHandler(activity)
    root.addHandler(errors)
