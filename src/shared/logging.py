"""Logging for the DropRun entrypoints.

``configure_logging()`` runs once in ``app.py``, ``server.py`` and
``manage.py``. Domain modules only call ``structlog.get_logger(__name__)`` and
log key/value events; production and staging render them as JSON lines so
fields like ``delivery_id`` and ``disbursement_id`` stay searchable.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

import structlog

LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Chatty at DEBUG; domain events are what matter
_QUIET_LOGGERS = ("protean", "httpx", "httpcore", "asyncio", "urllib3", "uvicorn.access")

_MAX_LOG_BYTES = 10 * 1024 * 1024


def current_env() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", LEVELS_BY_ENV.get(current_env(), "INFO")).upper()


def _rotating_file(path: Path, level: int = logging.NOTSET) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=_MAX_LOG_BYTES, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: str | None = None) -> None:
    """Send records to stdout and, with ``log_dir``, to ``droprun.log`` and ``droprun_error.log``."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating_file(directory / "droprun.log"))
        handlers.append(_rotating_file(directory / "droprun_error.log", logging.ERROR))

    logging.basicConfig(level=get_log_level(), format="%(message)s", handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _renderer_chain(env: str) -> list:
    if env in ("production", "staging"):
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=3),
        )
    ]


def setup_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            *_renderer_chain(current_env()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | None = None) -> None:
    setup_stdlib_logging(log_dir or os.getenv("LOG_DIR"))
    setup_structlog()


def bind_request(**fields) -> None:
    """Replace the per-request log context (path, domain, ...) for the current task."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**fields)
