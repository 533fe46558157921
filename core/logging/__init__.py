"""Logging utilities for the notification engine."""

from core.logging.config import setup_logging
from core.logging.context import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "clear_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
    "setup_logging",
]
