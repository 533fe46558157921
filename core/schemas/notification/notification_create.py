"""Schema for creating notifications."""

from datetime import datetime
from typing import Any

from pydantic import Field

from core.enums import Channel, NotificationCategory, NotificationPriority, RecipientType
from core.schemas.base_schema_model import BaseSchemaModel

TITLE_MAX_LENGTH = 200


class NotificationCreate(BaseSchemaModel):
    """Schema for a notification creation request.

    Recipient, title, body and channel are required; everything else has a
    default. ``max_delivery_attempts`` and ``expires_at`` fall back to the
    engine's configured defaults when omitted.
    """

    recipient_id: str = Field(
        ..., min_length=1, max_length=100, description="Recipient identifier"
    )
    recipient_type: RecipientType = Field(
        default=RecipientType.STUDENT.value, description="Kind of recipient"
    )
    recipient_address: str | None = Field(
        None,
        max_length=255,
        description="Email address, phone number, device token or webhook URL",
    )
    title: str = Field(
        ..., min_length=1, max_length=TITLE_MAX_LENGTH, description="Title"
    )
    body: str = Field(..., min_length=1, description="Body text")
    channel: Channel = Field(..., description="Delivery channel")
    category: NotificationCategory = Field(
        default=NotificationCategory.GENERAL.value, description="Business category"
    )
    priority: NotificationPriority = Field(
        default=NotificationPriority.MEDIUM.value, description="Delivery priority"
    )
    max_delivery_attempts: int | None = Field(
        None, ge=1, description="Attempt budget before the notification fails"
    )
    expires_at: datetime | None = Field(
        None, description="Deadline for dispatch (defaults to creation + TTL)"
    )
    source_service: str | None = Field(None, max_length=100)
    source_event_id: str | None = Field(
        None,
        max_length=100,
        description="Idempotency key; a repeated key returns the existing record",
    )
    correlation_id: str | None = Field(None, max_length=100)
    metadata: dict[str, Any] = Field(default_factory=dict)
