"""Event bus client backed by Redis Streams.

Each topic maps to one stream. Consumers read through a consumer group so
that a message stays in the group's pending list until it is acknowledged;
pending messages idle for longer than the redelivery timeout are claimed
again on the next poll, which gives at-least-once delivery.
"""

import json
from functools import lru_cache
from typing import Any, NamedTuple

from django.conf import settings

import django_rq
import structlog
from redis import Redis
from redis.exceptions import RedisError, ResponseError

from core.exceptions import EventPublishError

logger = structlog.get_logger(__name__)


class InboundMessage(NamedTuple):
    """A message received from the bus and not yet acknowledged."""

    topic: str
    message_id: str
    key: str | None
    payload: Any


class EventBus:
    """Interface of the pub/sub event bus used by the engine and the adapter."""

    def publish(self, topic: str, key: str, payload: dict[str, Any]) -> str:
        """Publish a payload to a topic.

        Args:
            topic: Destination topic
            key: Partition key (recipient ID for lifecycle events)
            payload: JSON-compatible payload

        Returns:
            Identifier assigned to the message by the bus

        Raises:
            EventPublishError: If the bus rejected the message
        """
        raise NotImplementedError

    def poll(self, topics: list[str] | tuple[str, ...]) -> list[InboundMessage]:
        """Fetch the next batch of unacknowledged messages for the given topics."""
        raise NotImplementedError

    def ack(self, message: InboundMessage) -> None:
        """Acknowledge a message so it is not delivered again."""
        raise NotImplementedError


class RedisStreamEventBus(EventBus):
    """Event bus implementation on Redis Streams consumer groups."""

    def __init__(
        self,
        connection: Redis | None = None,
        stream_prefix: str = "",
        group: str = "notification-service-group",
        consumer: str = "notification-service",
        block_ms: int = 5000,
        batch_size: int = 10,
        redelivery_idle_ms: int = 60000,
        max_stream_length: int = 100000,
    ) -> None:
        """Initialize the Redis Streams event bus.

        Args:
            connection: Redis connection (defaults to the django-rq connection)
            stream_prefix: Prefix prepended to topic names to form stream keys
            group: Consumer group name
            consumer: Consumer name within the group
            block_ms: How long a poll blocks waiting for new messages
            batch_size: Maximum messages returned per stream per poll
            redelivery_idle_ms: Idle time after which unacknowledged
                messages are delivered again
            max_stream_length: Approximate cap on published stream length
        """
        self._connection = connection
        self.stream_prefix = stream_prefix
        self.group = group
        self.consumer = consumer
        self.block_ms = block_ms
        self.batch_size = batch_size
        self.redelivery_idle_ms = redelivery_idle_ms
        self.max_stream_length = max_stream_length
        self._groups_ready: set[str] = set()

    @property
    def connection(self) -> Redis:
        """Redis connection, resolved lazily from django-rq."""
        if self._connection is None:
            self._connection = django_rq.get_connection("default")
        return self._connection

    def stream_key(self, topic: str) -> str:
        """Return the Redis stream key for a topic."""
        return f"{self.stream_prefix}{topic}"

    def publish(self, topic: str, key: str, payload: dict[str, Any]) -> str:
        """Append a message to the topic's stream."""
        stream = self.stream_key(topic)
        try:
            message_id = self.connection.xadd(
                stream,
                {"key": key, "payload": json.dumps(payload)},
                maxlen=self.max_stream_length,
                approximate=True,
            )
        except RedisError as e:
            logger.error(
                "event_publish_failed",
                topic=topic,
                key=key,
                error=str(e),
            )
            raise EventPublishError(topic, f"Failed to publish to {topic}: {e}") from e

        message_id = _decode(message_id)
        logger.debug("event_published", topic=topic, key=key, message_id=message_id)
        return message_id

    def ensure_group(self, topic: str) -> None:
        """Create the consumer group for a topic if it does not exist yet."""
        stream = self.stream_key(topic)
        if stream in self._groups_ready:
            return
        try:
            self.connection.xgroup_create(stream, self.group, id="0", mkstream=True)
            logger.info("consumer_group_created", stream=stream, group=self.group)
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise
        self._groups_ready.add(stream)

    def poll(self, topics: list[str] | tuple[str, ...]) -> list[InboundMessage]:
        """Return stale pending messages first, then block for new ones."""
        for topic in topics:
            self.ensure_group(topic)

        messages = self._reclaim_stale(topics)
        if messages:
            return messages

        response = self.connection.xreadgroup(
            self.group,
            self.consumer,
            {self.stream_key(topic): ">" for topic in topics},
            count=self.batch_size,
            block=self.block_ms,
        )
        topics_by_stream = {self.stream_key(topic): topic for topic in topics}
        for stream, entries in response or []:
            topic = topics_by_stream[_decode(stream)]
            messages.extend(self._to_message(topic, entry) for entry in entries)
        return messages

    def ack(self, message: InboundMessage) -> None:
        """Acknowledge a message within the consumer group."""
        self.connection.xack(
            self.stream_key(message.topic), self.group, message.message_id
        )

    def _reclaim_stale(self, topics) -> list[InboundMessage]:
        messages: list[InboundMessage] = []
        for topic in topics:
            result = self.connection.xautoclaim(
                self.stream_key(topic),
                self.group,
                self.consumer,
                min_idle_time=self.redelivery_idle_ms,
                start_id="0-0",
                count=self.batch_size,
            )
            entries = result[1] if result else []
            for entry in entries:
                message = self._to_message(topic, entry)
                logger.info(
                    "event_redelivered",
                    topic=topic,
                    message_id=message.message_id,
                )
                messages.append(message)
        return messages

    def _to_message(self, topic: str, entry) -> InboundMessage:
        message_id, fields = entry
        fields = {_decode(k): _decode(v) for k, v in (fields or {}).items()}
        raw_payload = fields.get("payload")
        try:
            payload = json.loads(raw_payload) if raw_payload else None
        except json.JSONDecodeError:
            logger.warning(
                "event_payload_not_json",
                topic=topic,
                message_id=_decode(message_id),
            )
            payload = None
        return InboundMessage(
            topic=topic,
            message_id=_decode(message_id),
            key=fields.get("key"),
            payload=payload,
        )


def _decode(value):
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


@lru_cache(maxsize=1)
def get_event_bus() -> RedisStreamEventBus:
    """Return the process-wide event bus configured from Django settings."""
    return RedisStreamEventBus(
        stream_prefix=settings.EVENT_BUS_STREAM_PREFIX,
        group=settings.EVENT_BUS_CONSUMER_GROUP,
        consumer=settings.EVENT_BUS_CONSUMER_NAME,
        block_ms=settings.EVENT_BUS_BLOCK_MS,
        batch_size=settings.EVENT_BUS_BATCH_SIZE,
        redelivery_idle_ms=settings.EVENT_BUS_REDELIVERY_IDLE_MS,
        max_stream_length=settings.EVENT_BUS_MAX_STREAM_LENGTH,
    )
