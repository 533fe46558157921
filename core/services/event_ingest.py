"""Adapter turning inbound domain events into notifications.

Events from the student, course, grade, enrollment and identity services
are read from the event bus, matched against the event template table and
handed to the delivery engine as in-app notifications. A message is
acknowledged only once it has been handled; a message whose handling raised
stays pending on the bus and is delivered again.
"""

import threading

from django.conf import settings

import structlog
from pydantic import ValidationError

from core.constants import INBOUND_TOPICS, TOPIC_SOURCE_SERVICES
from core.enums import Channel, RecipientType
from core.events import EventBus, InboundMessage, get_event_bus
from core.logging import clear_correlation_id, set_correlation_id
from core.models import Notification
from core.schemas.events import DomainEvent, parse_domain_event
from core.schemas.notification import NotificationCreate
from core.schemas.notification.notification_create import TITLE_MAX_LENGTH
from core.services.delivery_engine import DeliveryEngine, delivery_engine
from core.services.notification_templates import EventTemplateConfig, get_event_template

logger = structlog.get_logger(__name__)


class EventIngestAdapter:
    """Consumer of inbound domain events."""

    def __init__(
        self,
        engine: DeliveryEngine | None = None,
        event_bus: EventBus | None = None,
        topics: tuple[str, ...] = INBOUND_TOPICS,
    ) -> None:
        """Initialize the ingest adapter.

        Args:
            engine: Delivery engine that creates the notifications
            event_bus: Bus to consume from (defaults to the Redis bus)
            topics: Topics to subscribe to
        """
        self.engine = engine or delivery_engine
        self._event_bus = event_bus
        self.topics = topics

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            self._event_bus = get_event_bus()
        return self._event_bus

    def handle(self, topic: str, payload: object) -> Notification | None:
        """Create the notification an inbound event calls for.

        Args:
            topic: Topic the event was received on
            payload: Decoded event payload

        Returns:
            The created (or previously created) notification, or None when
            the event maps to no notification
        """
        event = parse_domain_event(topic, payload)
        set_correlation_id(event.correlation_id or None)
        try:
            return self._handle(topic, event)
        finally:
            clear_correlation_id()

    def _handle(self, topic: str, event: DomainEvent) -> Notification | None:
        template = get_event_template(topic, event.event_type)
        if template is None:
            logger.info(
                "event_type_not_mapped",
                topic=topic,
                event_type=event.event_type,
                event_id=event.event_id,
            )
            return None

        recipient_id = self._resolve_recipient(event, template)
        if not recipient_id:
            logger.warning(
                "event_recipient_missing",
                topic=topic,
                event_type=event.event_type,
                event_id=event.event_id,
            )
            return None

        context = event.template_context()
        try:
            title = template["title"].format(**context)
            body = template["body"].format(**context)
        except KeyError:
            # Fallback if the event is missing expected keys
            title = template["title"]
            body = template["body"]
        if len(title) > TITLE_MAX_LENGTH:
            title = title[: TITLE_MAX_LENGTH - 3].rstrip() + "..."

        try:
            spec = NotificationCreate(
                recipient_id=recipient_id,
                recipient_type=RecipientType.STUDENT.value,
                recipient_address=getattr(event, "email", "") or None,
                title=title,
                body=body,
                category=template["category"].value,
                priority=template["priority"].value,
                channel=Channel.IN_APP,
                source_service=TOPIC_SOURCE_SERVICES.get(topic, event.source or None),
                source_event_id=event.event_id or None,
                correlation_id=event.correlation_id or None,
                metadata={"topic": topic, "eventType": event.event_type},
            )
        except ValidationError as e:
            logger.warning(
                "event_rejected",
                topic=topic,
                event_type=event.event_type,
                event_id=event.event_id,
                error=str(e),
            )
            return None

        notification = self.engine.create(spec)

        logger.info(
            "event_ingested",
            topic=topic,
            event_type=event.event_type,
            event_id=event.event_id,
            notification_id=notification.pk,
        )
        return notification

    @staticmethod
    def _resolve_recipient(event: DomainEvent, template: EventTemplateConfig) -> str:
        for field in template["recipient_fields"]:
            value = getattr(event, field, "")
            if value:
                return value
        return ""

    def process_message(self, message: InboundMessage) -> bool:
        """Handle one message and acknowledge it if handling succeeded.

        Returns:
            True if the message was acknowledged
        """
        try:
            self.handle(message.topic, message.payload)
        except Exception as e:
            logger.exception(
                "event_handling_failed",
                topic=message.topic,
                message_id=message.message_id,
                error=str(e),
            )
            return False

        self.event_bus.ack(message)
        return True

    def process_batch(self) -> int:
        """Poll the bus once and handle every message received.

        Returns:
            Number of messages acknowledged
        """
        messages = self.event_bus.poll(self.topics)
        return sum(1 for message in messages if self.process_message(message))

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Consume events until ``stop_event`` is set."""
        stop_event = stop_event or threading.Event()
        logger.info(
            "event_consumer_started",
            topics=list(self.topics),
            group=settings.EVENT_BUS_CONSUMER_GROUP,
        )
        while not stop_event.is_set():
            try:
                self.process_batch()
            except Exception as e:
                logger.exception("event_poll_failed", error=str(e))
                stop_event.wait(timeout=settings.EVENT_BUS_ERROR_BACKOFF_SECONDS)
        logger.info("event_consumer_stopped")
