"""Thread-local context for correlation ID tracking."""

import threading

# Thread-local storage for the correlation ID of the work being processed
_correlation_context = threading.local()


def set_correlation_id(correlation_id: str | None) -> None:
    """Store the correlation ID in thread-local storage.

    Args:
        correlation_id: Trace identifier of the current event or notification.
    """
    _correlation_context.correlation_id = correlation_id


def get_correlation_id() -> str | None:
    """Retrieve the correlation ID from thread-local storage.

    Returns:
        The current correlation ID, or None if not set.
    """
    return getattr(_correlation_context, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the correlation ID from thread-local storage.

    Workers are long-lived, so this must be called once an event or
    dispatch attempt is finished to keep IDs from leaking into later logs.
    """
    if hasattr(_correlation_context, "correlation_id"):
        delattr(_correlation_context, "correlation_id")
