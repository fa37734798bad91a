"""Logging for the API: structlog over stdlib handlers, plus per-request/per-execution context."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

# Chatty third-party loggers kept at WARNING unless running at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore")

REQUEST_ID_HEADER = "X-Request-Id"


def _shared_processors() -> list[Any]:
    # Context keys (request_id, workflow_id, execution_id...) ride on every line
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _open_log_file(file_path: str, max_mb: int, backups: int) -> RotatingFileHandler | None:
    path = Path(file_path).resolve()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(path, maxBytes=max_mb * 1024 * 1024, backupCount=backups, encoding="utf-8")
    except OSError as e:
        sys.stderr.write(f"Log file disabled: could not open {path}: {e}\n")
        return None


def setup_logging(
    level: str = "INFO",
    file_path: str = "",
    rotation_max_mb: int = 5,
    rotation_backups: int = 3,
) -> None:
    """Route structlog and stdlib loggers to stdout (and optionally a rotating file).

    JSON lines unless level is DEBUG, which uses the console renderer.
    A log file that cannot be opened leaves stdout logging in place.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    processors = _shared_processors()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer() if log_level == logging.DEBUG else structlog.processors.JSONRenderer(),
        ],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if file_path.strip():
        file_handler = _open_log_file(file_path.strip(), rotation_max_mb, rotation_backups)
        if file_handler is not None:
            handlers.append(file_handler)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(log_level if log_level == logging.DEBUG else logging.WARNING)


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind ``values`` to every log line emitted inside the block (None values skipped)."""
    with structlog.contextvars.bound_contextvars(**{k: v for k, v in values.items() if v is not None}):
        yield


__all__ = ["REQUEST_ID_HEADER", "log_context", "setup_logging"]
