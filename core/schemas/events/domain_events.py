"""Schemas for domain events consumed from other services.

Payloads come from services this one does not control, so every field is
optional: missing, null or non-scalar values fall back to their defaults
and numeric identifiers are coerced to strings.
"""

from typing import Any

from pydantic import ValidationInfo, field_validator

from core.constants import (
    COURSE_EVENTS_TOPIC,
    ENROLLMENT_EVENTS_TOPIC,
    GRADE_EVENTS_TOPIC,
    IDENTITY_EVENTS_TOPIC,
    STUDENT_EVENTS_TOPIC,
)
from core.schemas.base_schema_model import BaseSchemaModel


class DomainEvent(BaseSchemaModel):
    """Fields shared by every inbound domain event."""

    event_id: str = ""
    event_type: str = "Unknown"
    correlation_id: str = ""
    source: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _default_missing_values(cls, value: Any, info: ValidationInfo) -> Any:
        field = cls.model_fields[info.field_name]
        if value is None:
            return field.get_default(call_default_factory=True)
        if field.annotation is str:
            if isinstance(value, int | float):
                return str(value)
            if not isinstance(value, str):
                return field.get_default(call_default_factory=True)
        return value

    def template_context(self) -> dict[str, Any]:
        """Return field values for filling notification body placeholders."""
        return self.model_dump()


class StudentEvent(DomainEvent):
    """Event from the student service."""

    student_id: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""


class CourseEvent(DomainEvent):
    """Event from the course service."""

    course_id: str = ""
    course_name: str = "the course"
    student_id: str = ""
    user_id: str = ""


class GradeEvent(DomainEvent):
    """Event from the grade service."""

    student_id: str = ""
    course_id: str = ""
    course_name: str = "the course"
    grade: Any = ""


class EnrollmentEvent(DomainEvent):
    """Event from the enrollment service."""

    student_id: str = ""
    course_id: str = ""
    course_name: str = "the course"


class IdentityEvent(DomainEvent):
    """Event from the identity service."""

    user_id: str = ""
    email: str = ""


TOPIC_EVENT_SCHEMAS: dict[str, type[DomainEvent]] = {
    STUDENT_EVENTS_TOPIC: StudentEvent,
    COURSE_EVENTS_TOPIC: CourseEvent,
    GRADE_EVENTS_TOPIC: GradeEvent,
    ENROLLMENT_EVENTS_TOPIC: EnrollmentEvent,
    IDENTITY_EVENTS_TOPIC: IdentityEvent,
}


def parse_domain_event(topic: str, payload: Any) -> DomainEvent:
    """Parse a raw payload into the event schema registered for its topic.

    Args:
        topic: Topic the payload was received on
        payload: Decoded message payload

    Returns:
        DomainEvent subclass instance (base DomainEvent for unknown topics)
    """
    schema = TOPIC_EVENT_SCHEMAS.get(topic, DomainEvent)
    if not isinstance(payload, dict):
        payload = {}
    return schema.model_validate(payload)
