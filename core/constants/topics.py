"""Event bus topic names."""

# Consumed
STUDENT_EVENTS_TOPIC = "student-events"
COURSE_EVENTS_TOPIC = "course-events"
GRADE_EVENTS_TOPIC = "grade-events"
ENROLLMENT_EVENTS_TOPIC = "enrollment-events"
IDENTITY_EVENTS_TOPIC = "identity-events"

INBOUND_TOPICS = (
    STUDENT_EVENTS_TOPIC,
    COURSE_EVENTS_TOPIC,
    GRADE_EVENTS_TOPIC,
    ENROLLMENT_EVENTS_TOPIC,
    IDENTITY_EVENTS_TOPIC,
)

# Published
NOTIFICATION_EVENTS_TOPIC = "notification-events"

# Value of the "source" field on published lifecycle events
NOTIFICATION_SOURCE = "notification-service"

# Service that owns each consumed topic, recorded as the notification's source
TOPIC_SOURCE_SERVICES = {
    STUDENT_EVENTS_TOPIC: "student-service",
    COURSE_EVENTS_TOPIC: "course-service",
    GRADE_EVENTS_TOPIC: "grade-service",
    ENROLLMENT_EVENTS_TOPIC: "enrollment-service",
    IDENTITY_EVENTS_TOPIC: "identity-service",
}
