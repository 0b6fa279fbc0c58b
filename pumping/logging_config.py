"""
Logging Configuration for the Pumping Engine

Every module logs through structlog. setup_logging routes those events into
the stdlib root logger: JSON lines to rotating files, a readable renderer on
the console.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional

import structlog

from .config import LOG_DIR, LOG_LEVEL

_ROTATE_BYTES = 5 * 1024 * 1024
_ROTATE_KEEP = 3

_QUIET_LOGGERS = ("httpx", "multipart", "uvicorn.access")


def _pre_chain() -> List:
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _rotating(path: Path, level: int, formatter: logging.Formatter,
              max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: Optional[str] = None,
    max_bytes: int = _ROTATE_BYTES,
    backup_count: int = _ROTATE_KEEP,
    console_output: bool = True,
) -> None:
    """
    Args:
        log_dir: where engine.log / error.log go (LOG_DIR, else ./logs)
        log_level: console level (LOG_LEVEL by default); engine.log keeps DEBUG
        console_output: also render to stderr
    """
    level = getattr(logging, (log_level or LOG_LEVEL).upper())
    log_path = Path(log_dir or LOG_DIR or "logs")
    log_path.mkdir(parents=True, exist_ok=True)

    as_json = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=_pre_chain() + [structlog.processors.StackInfoRenderer()],
    )

    root = logging.getLogger()
    root.handlers.clear()
    # Root passes everything; each handler applies its own level
    root.setLevel(logging.DEBUG)
    root.addHandler(_rotating(log_path / "engine.log", logging.DEBUG, as_json, max_bytes, backup_count))
    root.addHandler(_rotating(log_path / "error.log", logging.ERROR, as_json, max_bytes, backup_count))

    if console_output:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=_pre_chain(),
        ))
        root.addHandler(console)

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars]
        + _pre_chain()
        + [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
