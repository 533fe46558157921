"""Notification template configuration for inbound domain events.

This module provides a centralized registry mapping (topic, eventType)
pairs to the notification that event should produce. Event types with no
entry produce no notification. Body placeholders are filled from the
event's fields when the notification is built.
"""

from typing import TypedDict

from core.constants import (
    COURSE_EVENTS_TOPIC,
    ENROLLMENT_EVENTS_TOPIC,
    GRADE_EVENTS_TOPIC,
    IDENTITY_EVENTS_TOPIC,
    STUDENT_EVENTS_TOPIC,
)
from core.enums import NotificationCategory, NotificationPriority


class EventTemplateConfig(TypedDict):
    """Configuration for the notification produced by one event type."""

    title: str
    body: str
    category: NotificationCategory
    priority: NotificationPriority
    recipient_fields: tuple[str, ...]


_MEDIUM = NotificationPriority.MEDIUM
_HIGH = NotificationPriority.HIGH
_URGENT = NotificationPriority.URGENT

# Recipient field lookups, first non-empty value wins
_STUDENT = ("student_id",)
_STUDENT_OR_USER = ("student_id", "user_id")
_USER = ("user_id",)


EVENT_TEMPLATES: dict[tuple[str, str], EventTemplateConfig] = {
    # Student events
    (STUDENT_EVENTS_TOPIC, "StudentCreated"): {
        "title": "Welcome to the system!",
        "body": "Hello {first_name} {last_name}! Your account has been created successfully.",
        "category": NotificationCategory.WELCOME,
        "priority": _MEDIUM,
        "recipient_fields": _STUDENT,
    },
    (STUDENT_EVENTS_TOPIC, "StudentUpdated"): {
        "title": "Account information updated",
        "body": "Your account information has been updated successfully.",
        "category": NotificationCategory.GENERAL,
        "priority": _MEDIUM,
        "recipient_fields": _STUDENT,
    },
    (STUDENT_EVENTS_TOPIC, "StudentDeleted"): {
        "title": "Account deleted",
        "body": "Your account has been removed from the system.",
        "category": NotificationCategory.GENERAL,
        "priority": _MEDIUM,
        "recipient_fields": _STUDENT,
    },
    # Course events
    (COURSE_EVENTS_TOPIC, "CourseCreated"): {
        "title": "New course: {course_name}",
        "body": "The course '{course_name}' has been created and is open for enrollment.",
        "category": NotificationCategory.COURSE_UPDATE,
        "priority": _MEDIUM,
        "recipient_fields": _STUDENT_OR_USER,
    },
    (COURSE_EVENTS_TOPIC, "CourseUpdated"): {
        "title": "Course updated: {course_name}",
        "body": "Information for the course '{course_name}' has been updated.",
        "category": NotificationCategory.COURSE_UPDATE,
        "priority": _MEDIUM,
        "recipient_fields": _STUDENT_OR_USER,
    },
    (COURSE_EVENTS_TOPIC, "CourseDeleted"): {
        "title": "Course removed: {course_name}",
        "body": "The course '{course_name}' has been removed from the system.",
        "category": NotificationCategory.COURSE_UPDATE,
        "priority": _MEDIUM,
        "recipient_fields": _STUDENT_OR_USER,
    },
    # Grade events
    (GRADE_EVENTS_TOPIC, "GradePublished"): {
        "title": "Grade published",
        "body": "Your grade for '{course_name}' has been published: {grade}",
        "category": NotificationCategory.GRADE_UPDATE,
        "priority": _HIGH,
        "recipient_fields": _STUDENT,
    },
    (GRADE_EVENTS_TOPIC, "GradeUpdated"): {
        "title": "Grade updated",
        "body": "Your grade for '{course_name}' has been updated: {grade}",
        "category": NotificationCategory.GRADE_UPDATE,
        "priority": _HIGH,
        "recipient_fields": _STUDENT,
    },
    # Enrollment events
    (ENROLLMENT_EVENTS_TOPIC, "EnrollmentCreated"): {
        "title": "Enrollment received",
        "body": "You have enrolled in '{course_name}'. Your enrollment is awaiting approval.",
        "category": NotificationCategory.ENROLLMENT_CONFIRMATION,
        "priority": _MEDIUM,
        "recipient_fields": _STUDENT,
    },
    (ENROLLMENT_EVENTS_TOPIC, "EnrollmentApproved"): {
        "title": "Enrollment approved",
        "body": "Your enrollment in '{course_name}' has been approved!",
        "category": NotificationCategory.ENROLLMENT_CONFIRMATION,
        "priority": _HIGH,
        "recipient_fields": _STUDENT,
    },
    (ENROLLMENT_EVENTS_TOPIC, "EnrollmentRejected"): {
        "title": "Enrollment rejected",
        "body": "Your enrollment in '{course_name}' has been rejected.",
        "category": NotificationCategory.ENROLLMENT_CANCELLATION,
        "priority": _HIGH,
        "recipient_fields": _STUDENT,
    },
    (ENROLLMENT_EVENTS_TOPIC, "EnrollmentCompleted"): {
        "title": "Course completed",
        "body": "Congratulations! You have completed '{course_name}'.",
        "category": NotificationCategory.ENROLLMENT_CONFIRMATION,
        "priority": _HIGH,
        "recipient_fields": _STUDENT,
    },
    # Identity events
    (IDENTITY_EVENTS_TOPIC, "PasswordResetRequested"): {
        "title": "Password reset requested",
        "body": "A password reset was requested for your account. Check your email to confirm.",
        "category": NotificationCategory.PASSWORD_RESET,
        "priority": _HIGH,
        "recipient_fields": _USER,
    },
    (IDENTITY_EVENTS_TOPIC, "PasswordResetCompleted"): {
        "title": "Password reset",
        "body": "Your password has been reset. If this was not you, contact support immediately.",
        "category": NotificationCategory.PASSWORD_RESET,
        "priority": _HIGH,
        "recipient_fields": _USER,
    },
    (IDENTITY_EVENTS_TOPIC, "AccountLocked"): {
        "title": "Account locked",
        "body": "Your account was locked after too many failed sign-in attempts. Please contact an administrator.",
        "category": NotificationCategory.SECURITY_ALERT,
        "priority": _URGENT,
        "recipient_fields": _USER,
    },
    (IDENTITY_EVENTS_TOPIC, "SuspiciousLogin"): {
        "title": "Suspicious sign-in detected",
        "body": "A suspicious sign-in to your account was detected. If this was not you, change your password now.",
        "category": NotificationCategory.SECURITY_ALERT,
        "priority": _URGENT,
        "recipient_fields": _USER,
    },
}


def get_event_template(topic: str, event_type: str) -> EventTemplateConfig | None:
    """Return the template for an event type, or None if it is not mapped."""
    return EVENT_TEMPLATES.get((topic, event_type))
