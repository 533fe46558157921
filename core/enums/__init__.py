"""Enumerations for the core app."""

from core.enums.notification import (
    Channel,
    LifecycleEventType,
    NotificationCategory,
    NotificationPriority,
    NotificationStatusEnum,
    RecipientFilter,
    RecipientType,
)

__all__ = [
    "Channel",
    "LifecycleEventType",
    "NotificationCategory",
    "NotificationPriority",
    "NotificationStatusEnum",
    "RecipientFilter",
    "RecipientType",
]
