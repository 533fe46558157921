"""Delivery engine owning the notification lifecycle.

This module provides the DeliveryEngine class which creates notifications,
drives dispatch attempts through the ChannelDispatcher, applies the retry
and expiration policy, and performs the administrative lifecycle
transitions (mark delivered, mark read, cancel, delete). Every change of
status is a conditional update on the status the engine last read, and is
followed by a lifecycle event on the notification-events topic.
"""

from datetime import datetime, timedelta
from typing import Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

import django_rq
import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from core.constants import NOTIFICATION_EVENTS_TOPIC
from core.enums import LifecycleEventType, NotificationStatusEnum, RecipientFilter
from core.events import EventBus, get_event_bus
from core.exceptions import (
    EventPublishError,
    NotificationNotFoundError,
    NotificationValidationError,
    PreconditionFailedError,
)
from core.logging import clear_correlation_id, set_correlation_id
from core.models import Notification
from core.repositories.notification_repository import NotificationRepository
from core.schemas.events import NotificationEvent
from core.schemas.notification import DispatchResult, NotificationCreate
from core.services.channel_dispatcher import ChannelDispatcher

logger = structlog.get_logger(__name__)

PENDING = NotificationStatusEnum.PENDING.value
SENT = NotificationStatusEnum.SENT.value
DELIVERED = NotificationStatusEnum.DELIVERED.value
READ = NotificationStatusEnum.READ.value
FAILED = NotificationStatusEnum.FAILED.value
EXPIRED = NotificationStatusEnum.EXPIRED.value
CANCELLED = NotificationStatusEnum.CANCELLED.value

ATTEMPT_DELIVERY_JOB = "core.jobs.delivery_jobs.attempt_delivery_job"


class DeliveryEngine:
    """Service owning notification creation, dispatch and lifecycle.

    Collaborators are resolved lazily so the module-level instance can be
    imported before Redis or the channel configuration are available;
    tests pass their own dispatcher, event bus and queue.
    """

    def __init__(
        self,
        dispatcher: ChannelDispatcher | None = None,
        event_bus: EventBus | None = None,
        queue: Any = None,
        repository: NotificationRepository | None = None,
    ) -> None:
        """Initialize delivery engine.

        Args:
            dispatcher: Channel dispatcher (defaults to all configured senders)
            event_bus: Bus for lifecycle events (defaults to the Redis bus)
            queue: RQ queue for dispatch jobs (defaults to django-rq queue)
            repository: Notification record store
        """
        self._dispatcher = dispatcher
        self._event_bus = event_bus
        self._queue = queue
        self.repository = repository or NotificationRepository()

    @property
    def dispatcher(self) -> ChannelDispatcher:
        if self._dispatcher is None:
            self._dispatcher = ChannelDispatcher()
        return self._dispatcher

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            self._event_bus = get_event_bus()
        return self._event_bus

    @property
    def queue(self):
        if self._queue is None:
            self._queue = django_rq.get_queue(settings.NOTIFICATION_QUEUE_NAME)
        return self._queue

    # Creation

    def create(self, spec: NotificationCreate | dict[str, Any]) -> Notification:
        """Create a pending notification and schedule its first dispatch.

        Dispatch is not on the creation path: the record is persisted, the
        NotificationCreated event is published and a dispatch job is
        enqueued, then the record is returned.

        Args:
            spec: Creation request (schema instance or raw mapping)

        Returns:
            The persisted Notification. If ``source_event_id`` matches an
            existing record, that record is returned unchanged.

        Raises:
            NotificationValidationError: If required fields are missing or invalid
        """
        spec = self._validate(spec)

        if spec.source_event_id:
            existing = self.repository.find_by_source_event_id(spec.source_event_id)
            if existing is not None:
                logger.info(
                    "duplicate_notification_request",
                    notification_id=existing.pk,
                    source_event_id=spec.source_event_id,
                )
                return existing

        now = timezone.now()
        fields = spec.model_dump(exclude={"max_delivery_attempts", "expires_at"})
        fields.update(
            status=PENDING,
            delivery_attempts=0,
            max_delivery_attempts=(
                spec.max_delivery_attempts
                or settings.NOTIFICATION_MAX_DELIVERY_ATTEMPTS
            ),
            next_retry_at=now
            + timedelta(seconds=settings.NOTIFICATION_INITIAL_RETRY_DELAY_SECONDS),
            expires_at=(
                spec.expires_at
                or now + timedelta(days=settings.NOTIFICATION_DEFAULT_TTL_DAYS)
            ),
        )

        try:
            with transaction.atomic():
                notification = self.repository.create(**fields)
        except IntegrityError:
            existing = (
                self.repository.find_by_source_event_id(spec.source_event_id)
                if spec.source_event_id
                else None
            )
            if existing is None:
                raise
            logger.info(
                "duplicate_notification_request",
                notification_id=existing.pk,
                source_event_id=spec.source_event_id,
            )
            return existing

        logger.info(
            "notification_created",
            notification_id=notification.pk,
            recipient_id=notification.recipient_id,
            channel=notification.channel,
            category=notification.category,
            priority=notification.priority,
            correlation_id=notification.correlation_id,
        )

        self._publish(LifecycleEventType.CREATED, notification)

        try:
            self.schedule_delivery(notification.pk)
        except RedisError as e:
            # The reconciliation sweep picks the record up at next_retry_at.
            logger.error(
                "dispatch_enqueue_failed",
                notification_id=notification.pk,
                error=str(e),
            )

        return notification

    def schedule_delivery(self, notification_id: int) -> None:
        """Enqueue an asynchronous dispatch attempt for a notification."""
        self.queue.enqueue(ATTEMPT_DELIVERY_JOB, notification_id)
        logger.debug("dispatch_enqueued", notification_id=notification_id)

    # Dispatch

    def attempt_delivery(self, notification_id: int) -> Notification | None:
        """Make one dispatch attempt for a pending notification.

        Safe to call repeatedly and concurrently: records that are no longer
        pending, or that another worker is currently dispatching, are left
        untouched and the channel is not contacted.

        Args:
            notification_id: Notification ID

        Returns:
            The notification as stored after the attempt, or None if it
            does not exist
        """
        notification = self.repository.find(notification_id)
        if notification is None:
            logger.warning("notification_not_found", notification_id=notification_id)
            return None

        set_correlation_id(notification.correlation_id)
        try:
            return self._attempt_delivery(notification)
        finally:
            clear_correlation_id()

    def send_now(self, notification_id: int) -> Notification:
        """Dispatch a pending notification in the caller's thread.

        Same guards as ``attempt_delivery``, but an unknown ID is an error.

        Raises:
            NotificationNotFoundError: If the notification does not exist
        """
        notification = self.attempt_delivery(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    def _attempt_delivery(self, notification: Notification) -> Notification:
        if not notification.is_pending:
            logger.info(
                "delivery_skipped_not_pending",
                notification_id=notification.pk,
                status=notification.status,
            )
            return notification

        now = timezone.now()
        if notification.is_expired(now):
            self.expire(notification, now)
            notification.refresh_from_db()
            return notification

        if not self.repository.claim_dispatch(
            notification.pk, now, settings.DISPATCH_LEASE_SECONDS
        ):
            logger.info(
                "delivery_skipped_in_flight",
                notification_id=notification.pk,
            )
            notification.refresh_from_db()
            return notification

        notification.refresh_from_db()
        if not notification.is_pending:
            return notification
        attempts_before = notification.delivery_attempts

        if attempts_before >= notification.max_delivery_attempts:
            return self._fail_exhausted(notification)

        result = self.dispatcher.dispatch(notification)
        return self._record_attempt(notification, attempts_before, result)

    def _record_attempt(
        self,
        notification: Notification,
        attempts_before: int,
        result: DispatchResult,
    ) -> Notification:
        completed_at = timezone.now()
        attempts = attempts_before + 1
        event_type = None
        changes: dict[str, Any] = {
            "delivery_attempts": attempts,
            "dispatch_lease_expires_at": None,
        }

        if result.ok:
            changes.update(
                status=SENT,
                sent_at=completed_at,
                last_error=None,
                next_retry_at=None,
            )
            if result.external_id:
                changes["external_id"] = result.external_id
            event_type = LifecycleEventType.SENT
        elif attempts >= notification.max_delivery_attempts:
            changes.update(status=FAILED, last_error=result.error, next_retry_at=None)
            event_type = LifecycleEventType.FAILED
        else:
            changes.update(
                last_error=result.error,
                next_retry_at=completed_at + self.backoff(attempts),
            )

        committed = self.repository.transition(
            notification.pk,
            PENDING,
            expected_attempts=attempts_before,
            **changes,
        )
        notification.refresh_from_db()

        if not committed:
            # Cancelled (or otherwise changed) while the send was in flight.
            logger.warning(
                "dispatch_result_discarded",
                notification_id=notification.pk,
                status=notification.status,
                dispatch_ok=result.ok,
            )
            return notification

        if result.ok:
            logger.info(
                "notification_sent",
                notification_id=notification.pk,
                channel=notification.channel,
                delivery_attempts=notification.delivery_attempts,
                external_id=notification.external_id,
            )
        elif event_type == LifecycleEventType.FAILED:
            logger.error(
                "notification_failed_permanently",
                notification_id=notification.pk,
                channel=notification.channel,
                delivery_attempts=notification.delivery_attempts,
                error=result.error,
            )
        else:
            logger.warning(
                "notification_send_failed_retry_scheduled",
                notification_id=notification.pk,
                channel=notification.channel,
                delivery_attempts=notification.delivery_attempts,
                next_retry_at=notification.next_retry_at.isoformat(),
                error=result.error,
            )

        if event_type is not None:
            self._publish(event_type, notification)
        return notification

    def _fail_exhausted(self, notification: Notification) -> Notification:
        committed = self.repository.transition(
            notification.pk,
            PENDING,
            status=FAILED,
            next_retry_at=None,
            dispatch_lease_expires_at=None,
        )
        notification.refresh_from_db()
        if committed:
            logger.error(
                "notification_attempts_exhausted",
                notification_id=notification.pk,
                delivery_attempts=notification.delivery_attempts,
            )
            self._publish(LifecycleEventType.FAILED, notification)
        return notification

    def backoff(self, attempts: int) -> timedelta:
        """Delay before the next retry after ``attempts`` failed attempts.

        Linear in the attempt count and capped by
        NOTIFICATION_RETRY_BACKOFF_CAP_SECONDS.
        """
        seconds = min(
            settings.NOTIFICATION_RETRY_BACKOFF_SECONDS * attempts,
            settings.NOTIFICATION_RETRY_BACKOFF_CAP_SECONDS,
        )
        return timedelta(seconds=seconds)

    def expire(self, notification: Notification, now: datetime | None = None) -> bool:
        """Move a pending notification to EXPIRED without dispatching it.

        A notification another worker is dispatching is left alone while
        that worker's lease is live, so a send the channel accepted is
        still recorded as SENT.

        Args:
            notification: Notification past its expires_at
            now: Reference time (defaults to the current time)

        Returns:
            True if this call expired it, False if it was no longer pending
            or is being dispatched
        """
        committed = self.repository.transition(
            notification.pk,
            PENDING,
            unleased_at=now or timezone.now(),
            status=EXPIRED,
            next_retry_at=None,
            dispatch_lease_expires_at=None,
        )
        if not committed:
            return False

        notification.refresh_from_db()
        logger.info(
            "notification_expired",
            notification_id=notification.pk,
            expires_at=notification.expires_at.isoformat(),
        )
        self._publish(LifecycleEventType.EXPIRED, notification)
        return True

    # Administrative transitions

    def mark_delivered(self, notification_id: int) -> Notification:
        """Record that a sent notification reached the recipient.

        Raises:
            NotificationNotFoundError: If the notification does not exist
            PreconditionFailedError: If the notification is not SENT
        """
        return self._transition(
            notification_id,
            operation="mark delivered",
            from_status=SENT,
            event_type=LifecycleEventType.DELIVERED,
            detail="Only sent notifications can be marked as delivered",
            status=DELIVERED,
            delivered_at=timezone.now(),
        )

    def mark_read(self, notification_id: int) -> Notification:
        """Record that the recipient read a delivered notification.

        Raises:
            NotificationNotFoundError: If the notification does not exist
            PreconditionFailedError: If the notification is not DELIVERED
        """
        return self._transition(
            notification_id,
            operation="mark read",
            from_status=DELIVERED,
            event_type=LifecycleEventType.READ,
            detail="Only delivered notifications can be marked as read",
            status=READ,
            read_at=timezone.now(),
        )

    def cancel(self, notification_id: int) -> Notification:
        """Cancel a notification that has not been sent yet.

        An attempt already in flight finds the record cancelled when it
        tries to record its outcome, and its result is discarded.

        Raises:
            NotificationNotFoundError: If the notification does not exist
            PreconditionFailedError: If the notification is not PENDING
        """
        return self._transition(
            notification_id,
            operation="cancel",
            from_status=PENDING,
            event_type=LifecycleEventType.CANCELLED,
            detail="Only pending notifications can be cancelled",
            status=CANCELLED,
            next_retry_at=None,
            dispatch_lease_expires_at=None,
        )

    def delete(self, notification_id: int) -> None:
        """Hard delete a notification. No lifecycle event is published.

        Raises:
            NotificationNotFoundError: If the notification does not exist
        """
        if not self.repository.delete(notification_id):
            logger.warning(
                "notification_not_found_for_deletion",
                notification_id=notification_id,
            )
            raise NotificationNotFoundError(notification_id)

        logger.info("notification_deleted", notification_id=notification_id)

    def _transition(
        self,
        notification_id: int,
        operation: str,
        from_status: str,
        event_type: LifecycleEventType,
        detail: str,
        **changes: Any,
    ) -> Notification:
        notification = self.repository.get(notification_id)

        if notification.status != from_status or not self.repository.transition(
            notification_id, from_status, **changes
        ):
            current_status = self.repository.get(notification_id).status
            logger.warning(
                "notification_transition_rejected",
                notification_id=notification_id,
                operation=operation,
                status=current_status,
            )
            raise PreconditionFailedError(
                notification_id, operation, current_status, detail=detail
            )

        notification.refresh_from_db()
        logger.info(
            "notification_transitioned",
            notification_id=notification_id,
            operation=operation,
            from_status=from_status,
            status=notification.status,
        )
        self._publish(event_type, notification)
        return notification

    # Queries

    def get(self, notification_id: int) -> Notification:
        """Get a notification by ID.

        Raises:
            NotificationNotFoundError: If the notification does not exist
        """
        return self.repository.get(notification_id)

    def list_all(
        self, status: NotificationStatusEnum | str | None = None
    ) -> QuerySet[Notification]:
        """List every notification, newest first.

        Args:
            status: Optional status filter

        Returns:
            QuerySet of Notification instances
        """
        if status is not None:
            status = NotificationStatusEnum(status).value
        return self.repository.list_all(status=status)

    def list_for_recipient(
        self,
        recipient_id: str,
        filter_by: RecipientFilter | str = RecipientFilter.ALL,
    ) -> QuerySet[Notification]:
        """List a recipient's notifications, newest first.

        Args:
            recipient_id: Recipient identifier
            filter_by: ``all``, ``pending`` or ``unread`` (delivered, not read)

        Returns:
            QuerySet of Notification instances
        """
        status = {
            RecipientFilter.ALL: None,
            RecipientFilter.PENDING: PENDING,
            RecipientFilter.UNREAD: DELIVERED,
        }[RecipientFilter(filter_by)]
        return self.repository.list_for_recipient(recipient_id, status=status)

    def count_pending(self, recipient_id: str) -> int:
        """Count a recipient's notifications still waiting to be sent."""
        return self.repository.count_for_recipient(recipient_id, PENDING)

    def count_unread(self, recipient_id: str) -> int:
        """Count a recipient's delivered notifications not yet read."""
        return self.repository.count_for_recipient(recipient_id, DELIVERED)

    # Helpers

    def _validate(self, spec: NotificationCreate | dict[str, Any]) -> NotificationCreate:
        if isinstance(spec, NotificationCreate):
            return spec
        try:
            return NotificationCreate.model_validate(spec)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            logger.warning("notification_validation_failed", fields=fields)
            raise NotificationValidationError(
                f"Invalid notification request: {', '.join(fields)}",
                errors=e.errors(include_url=False),
            ) from e

    def _publish(self, event_type: LifecycleEventType, notification: Notification) -> None:
        event = NotificationEvent.for_notification(event_type, notification)
        try:
            self.event_bus.publish(
                NOTIFICATION_EVENTS_TOPIC,
                notification.recipient_id,
                event.to_payload(),
            )
        except EventPublishError as e:
            logger.error(
                "lifecycle_event_publish_failed",
                notification_id=notification.pk,
                event_type=event_type.value,
                error=str(e),
            )
            return

        logger.info(
            "lifecycle_event_published",
            notification_id=notification.pk,
            event_type=event_type.value,
            event_id=event.event_id,
        )


delivery_engine = DeliveryEngine()
