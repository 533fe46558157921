"""Notification model for delivery lifecycle tracking.

This module defines the single notification record owned by the delivery
engine. One record describes one message to one recipient over one channel,
together with its lifecycle status and retry bookkeeping.
"""

from datetime import datetime
from typing import ClassVar

from django.db import models
from django.utils import timezone

from core.enums import (
    Channel,
    NotificationCategory,
    NotificationPriority,
    NotificationStatusEnum,
    RecipientType,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.value) for member in enum_cls]


class Notification(models.Model):
    """Notification record with lifecycle and delivery tracking.

    Status changes are applied by the delivery engine through conditional
    updates in NotificationRepository; code outside the engine should treat
    instances as read-only snapshots.

    Attributes:
        id: Store-assigned identifier.
        recipient_id: Identifier of the recipient in the originating service.
        recipient_type: Kind of recipient (student, instructor, admin, system).
        recipient_address: Channel address (email, phone, device token, URL).
        title: Short notification title.
        body: Notification body text.
        category: Business category of the notification.
        priority: Delivery priority.
        channel: Channel the notification is dispatched over.
        status: Current lifecycle status.
        delivery_attempts: Number of dispatch attempts made so far.
        max_delivery_attempts: Attempt budget before the record fails.
        next_retry_at: When the reconciliation sweep may retry dispatch.
        expires_at: Deadline after which a pending record expires.
        sent_at: When the channel accepted the notification.
        delivered_at: When delivery was confirmed.
        read_at: When the recipient read the notification.
        dispatch_lease_expires_at: Claim held by the worker dispatching it.
        source_service: Service whose event produced the notification.
        source_event_id: Idempotency key of the triggering event.
        correlation_id: Trace identifier propagated from the triggering event.
        external_id: Identifier assigned by the channel provider.
        last_error: Error reported by the most recent failed attempt.
        metadata: Free-form context copied from the triggering event.
        created_at: When the record was created.
        updated_at: When the record was last updated.
    """

    recipient_id = models.CharField(
        max_length=100,
        help_text="Identifier of the recipient in the originating service",
    )
    recipient_type = models.CharField(
        max_length=20,
        choices=_choices(RecipientType),
        default=RecipientType.STUDENT.value,
    )
    recipient_address = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Email address, phone number, device token or webhook URL",
    )
    title = models.CharField(max_length=200)
    body = models.TextField()
    category = models.CharField(
        max_length=50,
        choices=_choices(NotificationCategory),
        default=NotificationCategory.GENERAL.value,
    )
    priority = models.CharField(
        max_length=10,
        choices=_choices(NotificationPriority),
        default=NotificationPriority.MEDIUM.value,
    )
    channel = models.CharField(
        max_length=20,
        choices=_choices(Channel),
        default=Channel.EMAIL.value,
    )
    status = models.CharField(
        max_length=20,
        choices=_choices(NotificationStatusEnum),
        default=NotificationStatusEnum.PENDING.value,
    )
    delivery_attempts = models.PositiveIntegerField(default=0)
    max_delivery_attempts = models.PositiveIntegerField(default=3)
    next_retry_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField()
    sent_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    dispatch_lease_expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set while a worker holds the dispatch claim for this record",
    )
    source_service = models.CharField(max_length=100, null=True, blank=True)
    source_event_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        unique=True,
        help_text="Idempotency key of the event that produced this notification",
    )
    correlation_id = models.CharField(max_length=100, null=True, blank=True)
    external_id = models.CharField(max_length=200, null=True, blank=True)
    last_error = models.TextField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Django model metadata."""

        db_table = "notifications"
        ordering: ClassVar[list[str]] = ["-created_at"]
        indexes: ClassVar[list] = [
            models.Index(
                fields=["recipient_id", "-created_at"],
                name="notificatio_recipie_5c1f0e_idx",
            ),
            models.Index(
                fields=["recipient_id", "status"],
                name="notificatio_recipie_8d2a41_idx",
            ),
            models.Index(
                fields=["status", "next_retry_at"],
                name="notificatio_status_3b7e92_idx",
            ),
            models.Index(
                fields=["status", "expires_at"],
                name="notificatio_status_a4c6d0_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation of notification."""
        return f"{self.channel} notification for {self.recipient_id} ({self.status})"

    def __repr__(self) -> str:
        """Return detailed representation of notification."""
        return (
            f"<Notification(id={self.pk}, "
            f"recipient={self.recipient_id}, "
            f"channel={self.channel}, "
            f"status={self.status}, "
            f"attempts={self.delivery_attempts}/{self.max_delivery_attempts})>"
        )

    @property
    def is_pending(self) -> bool:
        """Whether the notification may still be dispatched."""
        return self.status == NotificationStatusEnum.PENDING.value

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether a pending notification has passed its deadline.

        Expiration only applies while the notification is pending.

        Args:
            now: Reference time (defaults to the current time).

        Returns:
            True if the notification is pending and past expires_at.
        """
        if not self.is_pending or self.expires_at is None:
            return False
        return (now or timezone.now()) > self.expires_at

    def can_retry(self) -> bool:
        """Check whether another dispatch attempt is allowed."""
        return self.is_pending and self.delivery_attempts < self.max_delivery_attempts
