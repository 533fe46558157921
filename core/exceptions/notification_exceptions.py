"""Exceptions raised by the notification delivery engine."""


class NotificationError(Exception):
    """Base exception for notification engine errors."""


class NotificationValidationError(NotificationError):
    """Notification request is missing required fields or has invalid values."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        """Initialize validation error.

        Args:
            message: Error message
            errors: Field-level error details, if available
        """
        self.errors = errors or []
        super().__init__(message)


class NotificationNotFoundError(NotificationError):
    """Notification with the given ID does not exist."""

    def __init__(self, notification_id: int):
        """Initialize not found error.

        Args:
            notification_id: ID of the notification that was not found
        """
        self.notification_id = notification_id
        super().__init__(f"Notification with ID {notification_id} not found")


class PreconditionFailedError(NotificationError):
    """Operation is not allowed from the notification's current status."""

    def __init__(
        self,
        notification_id: int,
        operation: str,
        current_status: str | None,
        detail: str | None = None,
    ):
        """Initialize precondition error.

        Args:
            notification_id: ID of the notification
            operation: Name of the rejected operation
            current_status: Status the notification was found in
            detail: Additional details about the rejected transition
        """
        self.notification_id = notification_id
        self.operation = operation
        self.current_status = current_status
        self.detail = detail
        super().__init__(
            f"Cannot {operation} notification {notification_id} "
            f"in status {current_status}"
        )


class ChannelConfigurationError(NotificationError):
    """Channel sender is missing or not configured."""

    def __init__(self, channel: str, message: str | None = None):
        """Initialize channel configuration error.

        Args:
            channel: Channel value that could not be served
            message: Optional custom error message
        """
        self.channel = channel
        super().__init__(message or f"No sender configured for channel '{channel}'")


class EventPublishError(NotificationError):
    """Lifecycle event could not be written to the event bus."""

    def __init__(self, topic: str, message: str):
        """Initialize publish error.

        Args:
            topic: Topic the event was destined for
            message: Error message
        """
        self.topic = topic
        super().__init__(message)
