"""Exception types for the notification service."""

from core.exceptions.notification_exceptions import (
    ChannelConfigurationError,
    EventPublishError,
    NotificationError,
    NotificationNotFoundError,
    NotificationValidationError,
    PreconditionFailedError,
)

__all__ = [
    "ChannelConfigurationError",
    "EventPublishError",
    "NotificationError",
    "NotificationNotFoundError",
    "NotificationValidationError",
    "PreconditionFailedError",
]
