"""Schema for lifecycle events published on the notification-events topic."""

from datetime import datetime
from uuid import uuid4

from django.utils import timezone

from pydantic import Field

from core.constants import NOTIFICATION_SOURCE
from core.enums import LifecycleEventType
from core.models import Notification
from core.schemas.base_schema_model import BaseSchemaModel
from core.schemas.notification.notification_detail import NotificationDetail


class NotificationEvent(BaseSchemaModel):
    """Lifecycle event describing a notification state change.

    Serialized with camelCase keys and keyed by recipient ID on the bus.
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: LifecycleEventType
    recipient_id: str
    notification: NotificationDetail
    timestamp: datetime = Field(default_factory=timezone.now)
    source: str = NOTIFICATION_SOURCE
    correlation_id: str | None = None

    @classmethod
    def for_notification(
        cls,
        event_type: LifecycleEventType,
        notification: Notification,
    ) -> "NotificationEvent":
        """Build an event carrying a snapshot of the given notification.

        Args:
            event_type: Lifecycle event type
            notification: Notification the event is about

        Returns:
            NotificationEvent instance
        """
        return cls(
            event_type=event_type,
            recipient_id=notification.recipient_id,
            notification=NotificationDetail.model_validate(notification),
            correlation_id=notification.correlation_id,
        )

    def to_payload(self) -> dict:
        """Return the JSON-compatible wire representation."""
        return self.model_dump(mode="json", by_alias=True)
