"""Custom structlog processors for correlation context and service metadata."""

import os
import threading

from django.conf import settings

from colorama import Fore, Style
from structlog.typing import EventDict, WrappedLogger

from core.logging.context import get_correlation_id

LEVEL_COLORS = {
    "DEBUG": Fore.CYAN,
    "INFO": Fore.GREEN,
    "WARNING": Fore.YELLOW,
    "ERROR": Fore.RED,
    "CRITICAL": Fore.RED + Style.BRIGHT,
}

# Shown in the line prefix or only useful in the JSON file output
CONSOLE_HIDDEN_FIELDS = frozenset(
    {
        "level",
        "timestamp",
        "correlation_id",
        "logger",
        "event",
        "exception",
        "process_id",
        "thread_id",
        "service_name",
        "environment",
    }
)


def add_correlation_context(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the correlation ID from thread-local context to log events.

    The ingest adapter and the delivery engine set the correlation ID while
    they handle an event or a dispatch attempt, so every line logged during
    that work carries the ID of the originating domain event. An explicitly
    logged ``correlation_id`` is left as is.
    """
    correlation_id = get_correlation_id()
    if correlation_id and "correlation_id" not in event_dict:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_service_context(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ``service_name`` and ``environment`` from settings."""
    event_dict["service_name"] = settings.SERVICE_NAME
    event_dict["environment"] = settings.ENVIRONMENT
    return event_dict


def add_process_info(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add process and thread IDs; RQ workers fork one process per job."""
    event_dict["process_id"] = os.getpid()
    event_dict["thread_id"] = threading.get_ident()
    return event_dict


def console_renderer(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> str:
    """Render a log event as one colored console line.

    Format: [LEVEL] timestamp | correlation_id | logger_name | event key=value

    Fields listed in ``CONSOLE_HIDDEN_FIELDS`` are left out of the key=value
    tail. A formatted traceback, if any, follows on the next lines.

    Returns:
        The formatted line.
    """
    level = event_dict.get("level", "INFO").upper()
    level_color = LEVEL_COLORS.get(level, Fore.WHITE)

    line = (
        f"{level_color}[{level:<8}]{Style.RESET_ALL} "
        f"{Fore.WHITE}{event_dict.get('timestamp', '')}{Style.RESET_ALL} | "
        f"{Fore.MAGENTA}{event_dict.get('correlation_id', '-')}{Style.RESET_ALL} | "
        f"{Fore.BLUE}{event_dict.get('logger', 'root')}{Style.RESET_ALL} | "
        f"{event_dict.get('event', '')}"
    )

    context = " ".join(
        f"{key}={value}"
        for key, value in event_dict.items()
        if key not in CONSOLE_HIDDEN_FIELDS
    )
    if context:
        line += f" {Fore.YELLOW}{context}{Style.RESET_ALL}"

    exception = event_dict.get("exception")
    if exception:
        line += f"\n{Fore.RED}{exception}{Style.RESET_ALL}"

    return line
