"""Schema for a serialized notification record."""

from datetime import datetime
from typing import Any

from pydantic import Field

from core.schemas.base_schema_model import BaseSchemaModel


class NotificationDetail(BaseSchemaModel):
    """Full view of a notification record.

    Built from a Notification model instance and embedded in published
    lifecycle events.
    """

    id: int = Field(..., description="Notification identifier")
    recipient_id: str
    recipient_type: str
    recipient_address: str | None = None
    title: str
    body: str
    category: str
    priority: str
    channel: str
    status: str
    delivery_attempts: int
    max_delivery_attempts: int
    next_retry_at: datetime | None = None
    expires_at: datetime | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None
    source_service: str | None = None
    correlation_id: str | None = None
    external_id: str | None = None
    last_error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
