"""Constants package for core application."""

from core.constants.topics import (
    COURSE_EVENTS_TOPIC,
    ENROLLMENT_EVENTS_TOPIC,
    GRADE_EVENTS_TOPIC,
    IDENTITY_EVENTS_TOPIC,
    INBOUND_TOPICS,
    NOTIFICATION_EVENTS_TOPIC,
    NOTIFICATION_SOURCE,
    STUDENT_EVENTS_TOPIC,
    TOPIC_SOURCE_SERVICES,
)

__all__ = [
    "COURSE_EVENTS_TOPIC",
    "ENROLLMENT_EVENTS_TOPIC",
    "GRADE_EVENTS_TOPIC",
    "IDENTITY_EVENTS_TOPIC",
    "INBOUND_TOPICS",
    "NOTIFICATION_EVENTS_TOPIC",
    "NOTIFICATION_SOURCE",
    "STUDENT_EVENTS_TOPIC",
    "TOPIC_SOURCE_SERVICES",
]
