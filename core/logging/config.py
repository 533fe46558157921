"""Structlog configuration for the engine's worker processes."""

import logging
import logging.handlers
from pathlib import Path

from django.conf import settings

import structlog
from colorama import just_fix_windows_console

from core.logging.processors import (
    add_correlation_context,
    add_process_info,
    add_service_context,
    console_renderer,
)

# Libraries that log every job or connection at INFO
_NOISY_LOGGERS = ("rq.worker", "urllib3.connectionpool")


def _shared_processors() -> list:
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_correlation_context,
    ]


def _build_file_handler(log_file_path: str, level: int) -> logging.Handler:
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=log_file_path,
        maxBytes=settings.LOG_FILE_MAX_BYTES,
        backupCount=settings.LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[
                *_shared_processors(),
                add_service_context,
                add_process_info,
            ],
        )
    )
    return handler


def setup_logging() -> None:
    """Configure structlog for the consumer, scheduler and RQ workers.

    Console Output:
    - Colored, one line per event
    - Format: [LEVEL] timestamp | correlation_id | logger_name | event key=value
    - Always enabled

    File Output:
    - JSON with service and process metadata
    - Rotating file handler, enabled when ``LOG_FILE_PATH`` is set

    Settings:
    - LOG_LEVEL: Root logging level
    - LOG_FILE_PATH: JSON log file (empty disables file output)
    - LOG_FILE_MAX_BYTES / LOG_FILE_BACKUP_COUNT: Rotation policy
    """
    just_fix_windows_console()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    log_file_path = settings.LOG_FILE_PATH

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_service_context,
            add_process_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=console_renderer,
            foreign_pre_chain=_shared_processors(),
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    if log_file_path:
        root_logger.addHandler(_build_file_handler(log_file_path, level))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=logging.getLevelName(level),
        log_file=log_file_path or None,
    )
