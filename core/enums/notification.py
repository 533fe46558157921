"""Notification-related enumerations.

This module contains enums for recipients, notification categories,
priorities, delivery channels, lifecycle statuses and the lifecycle
event types published on the notification event topic.
"""

from enum import Enum


class RecipientType(str, Enum):
    """Kind of principal a notification is addressed to."""

    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class NotificationCategory(str, Enum):
    """Business category of a notification.

    Categories are informational; they do not change how a notification
    is dispatched.
    """

    ENROLLMENT_CONFIRMATION = "ENROLLMENT_CONFIRMATION"
    ENROLLMENT_CANCELLATION = "ENROLLMENT_CANCELLATION"
    GRADE_UPDATE = "GRADE_UPDATE"
    COURSE_UPDATE = "COURSE_UPDATE"
    DEADLINE_REMINDER = "DEADLINE_REMINDER"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    SECURITY_ALERT = "SECURITY_ALERT"
    WELCOME = "WELCOME"
    PASSWORD_RESET = "PASSWORD_RESET"
    ACCOUNT_ACTIVATION = "ACCOUNT_ACTIVATION"
    GENERAL = "GENERAL"


class NotificationPriority(str, Enum):
    """Notification priority levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Channel(str, Enum):
    """Notification delivery channel types.

    Each notification is delivered over exactly one channel. Multi-channel
    delivery is done by creating one notification per channel.
    """

    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    IN_APP = "IN_APP"
    WEBHOOK = "WEBHOOK"


class NotificationStatusEnum(str, Enum):
    """Notification lifecycle status values.

    PENDING is the only status from which a channel dispatch may happen.
    SENT and DELIVERED only progress through mark_delivered/mark_read;
    every other status is final.
    """

    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class LifecycleEventType(str, Enum):
    """Event types published on the notification-events topic."""

    CREATED = "NotificationCreated"
    SENT = "NotificationSent"
    DELIVERED = "NotificationDelivered"
    READ = "NotificationRead"
    FAILED = "NotificationFailed"
    EXPIRED = "NotificationExpired"
    CANCELLED = "NotificationCancelled"


class RecipientFilter(str, Enum):
    """Filters for listing a recipient's notifications."""

    ALL = "all"
    PENDING = "pending"
    UNREAD = "unread"
