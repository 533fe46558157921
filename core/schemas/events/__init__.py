"""Event schemas."""

from core.schemas.events.domain_events import (
    TOPIC_EVENT_SCHEMAS,
    CourseEvent,
    DomainEvent,
    EnrollmentEvent,
    GradeEvent,
    IdentityEvent,
    StudentEvent,
    parse_domain_event,
)
from core.schemas.events.notification_event import NotificationEvent

__all__ = [
    "TOPIC_EVENT_SCHEMAS",
    "CourseEvent",
    "DomainEvent",
    "EnrollmentEvent",
    "GradeEvent",
    "IdentityEvent",
    "NotificationEvent",
    "StudentEvent",
    "parse_domain_event",
]
