"""Tests for DeliveryEngine."""

from datetime import timedelta
from unittest.mock import patch

from django.utils import timezone

import pytest
from redis.exceptions import RedisError

from core.constants import NOTIFICATION_EVENTS_TOPIC
from core.enums import Channel, NotificationStatusEnum, RecipientFilter
from core.exceptions import (
    NotificationNotFoundError,
    NotificationValidationError,
    PreconditionFailedError,
)
from core.models import Notification
from core.schemas.notification import DispatchResult, NotificationCreate
from core.services.channel_dispatcher import ChannelDispatcher
from core.services.delivery_engine import ATTEMPT_DELIVERY_JOB, DeliveryEngine
from core.services.reconciliation import ReconciliationScheduler
from tests.factories import create_notification, notification_payload
from tests.fakes import FakeEventBus, FakeQueue

PENDING = NotificationStatusEnum.PENDING.value
SENT = NotificationStatusEnum.SENT.value
DELIVERED = NotificationStatusEnum.DELIVERED.value
READ = NotificationStatusEnum.READ.value
FAILED = NotificationStatusEnum.FAILED.value
EXPIRED = NotificationStatusEnum.EXPIRED.value
CANCELLED = NotificationStatusEnum.CANCELLED.value


@pytest.mark.django_db
class TestCreate:
    """Test suite for DeliveryEngine.create."""

    def test_create_persists_pending_notification(self, engine):
        """Test a created notification is pending with no attempts."""
        notification = engine.create(notification_payload(recipient_id="101"))

        stored = engine.get(notification.pk)
        assert stored.status == PENDING
        assert stored.delivery_attempts == 0
        assert stored.max_delivery_attempts == 3
        assert stored.recipient_id == "101"

    def test_create_sets_retry_and_expiry_defaults(self, engine):
        """Test first retry time and expiration default from settings."""
        before = timezone.now()
        notification = engine.create(notification_payload())

        assert notification.next_retry_at >= before + timedelta(seconds=60)
        assert notification.expires_at >= before + timedelta(days=7)
        assert notification.expires_at <= timezone.now() + timedelta(days=7)

    def test_create_honours_explicit_budget_and_deadline(self, engine):
        """Test explicit max attempts and expiration are kept."""
        expires_at = timezone.now() + timedelta(hours=2)
        notification = engine.create(
            notification_payload(max_delivery_attempts=5, expires_at=expires_at)
        )

        assert notification.max_delivery_attempts == 5
        assert notification.expires_at == expires_at

    def test_create_accepts_schema_instance(self, engine):
        """Test create accepts a NotificationCreate instance."""
        spec = NotificationCreate(**notification_payload(channel=Channel.SMS))

        notification = engine.create(spec)

        assert notification.channel == "SMS"

    def test_create_accepts_camel_case_keys(self, engine):
        """Test create accepts the camelCase wire format."""
        notification = engine.create(
            {
                "recipientId": "55",
                "title": "Hello",
                "body": "World",
                "channel": "IN_APP",
                "recipientType": "INSTRUCTOR",
            }
        )

        assert notification.recipient_id == "55"
        assert notification.recipient_type == "INSTRUCTOR"

    def test_create_enqueues_dispatch_job(self, engine, queue):
        """Test creation schedules an asynchronous dispatch."""
        notification = engine.create(notification_payload())

        assert queue.jobs == [(ATTEMPT_DELIVERY_JOB, (notification.pk,))]

    def test_create_does_not_dispatch_inline(self, engine, email_sender):
        """Test creation never contacts the channel."""
        engine.create(notification_payload())

        assert email_sender.sent == []

    def test_create_publishes_created_event(self, engine, event_bus):
        """Test NotificationCreated is published keyed by recipient."""
        notification = engine.create(
            notification_payload(recipient_id="77", correlation_id="corr-1")
        )

        topic, key, payload = event_bus.published[0]
        assert topic == NOTIFICATION_EVENTS_TOPIC
        assert key == "77"
        assert payload["eventType"] == "NotificationCreated"
        assert payload["recipientId"] == "77"
        assert payload["correlationId"] == "corr-1"
        assert payload["source"] == "notification-service"
        assert payload["notification"]["id"] == notification.pk
        assert payload["notification"]["status"] == PENDING
        assert payload["notification"]["deliveryAttempts"] == 0

    @pytest.mark.parametrize("missing", ["recipient_id", "title", "body", "channel"])
    def test_create_rejects_missing_required_field(self, engine, missing):
        """Test creation fails validation when a required field is absent."""
        payload = notification_payload()
        del payload[missing]

        with pytest.raises(NotificationValidationError) as exc_info:
            engine.create(payload)

        assert exc_info.value.errors
        assert Notification.objects.count() == 0

    def test_create_rejects_unknown_channel(self, engine):
        """Test creation fails validation for an unsupported channel."""
        with pytest.raises(NotificationValidationError):
            engine.create(notification_payload(channel="CARRIER_PIGEON"))

    def test_create_is_idempotent_on_source_event_id(self, engine, queue, event_bus):
        """Test repeating an inbound event creates a single notification."""
        first = engine.create(notification_payload(source_event_id="evt-1"))
        second = engine.create(notification_payload(source_event_id="evt-1"))

        assert first.pk == second.pk
        assert Notification.objects.filter(source_event_id="evt-1").count() == 1
        assert len(queue.jobs) == 1
        assert event_bus.event_types() == ["NotificationCreated"]

    def test_create_survives_enqueue_failure(self, email_sender, event_bus):
        """Test a Redis failure while enqueueing leaves the record for the sweep."""
        engine = DeliveryEngine(
            dispatcher=ChannelDispatcher([email_sender]),
            event_bus=event_bus,
            queue=FakeQueue(error=RedisError("connection refused")),
        )

        notification = engine.create(notification_payload())

        assert engine.get(notification.pk).status == PENDING

    def test_create_survives_publish_failure(self, email_sender, queue):
        """Test a bus failure does not fail creation."""
        engine = DeliveryEngine(
            dispatcher=ChannelDispatcher([email_sender]),
            event_bus=FakeEventBus(fail_publish=True),
            queue=queue,
        )

        notification = engine.create(notification_payload())

        assert notification.pk is not None
        assert len(queue.jobs) == 1


@pytest.mark.django_db
class TestAttemptDelivery:
    """Test suite for DeliveryEngine.attempt_delivery."""

    def test_successful_email_delivery(self, engine, email_sender, event_bus):
        """Test a successful send moves the notification to SENT."""
        email_sender.results = [DispatchResult.success(external_id="<msg-1@host>")]
        notification = engine.create(notification_payload())

        result = engine.attempt_delivery(notification.pk)

        assert result.status == SENT
        assert result.delivery_attempts == 1
        assert result.sent_at is not None
        assert result.next_retry_at is None
        assert result.external_id == "<msg-1@host>"
        assert result.dispatch_lease_expires_at is None
        assert email_sender.sent == [notification.pk]
        assert event_bus.event_types() == ["NotificationCreated", "NotificationSent"]

    def test_failed_attempt_schedules_retry(self, engine, email_sender, event_bus):
        """Test a failed send keeps the record pending with a backoff."""
        email_sender.results = [DispatchResult.failure("SMTP unavailable")]
        notification = engine.create(notification_payload())
        before = timezone.now()

        result = engine.attempt_delivery(notification.pk)

        assert result.status == PENDING
        assert result.delivery_attempts == 1
        assert result.last_error == "SMTP unavailable"
        assert result.next_retry_at >= before + timedelta(seconds=300)
        assert result.dispatch_lease_expires_at is None
        assert event_bus.event_types() == ["NotificationCreated"]

    def test_sender_exception_counts_as_failed_attempt(self, engine, email_sender):
        """Test a raising sender is recorded as a failed attempt."""
        email_sender.results = [ConnectionError("connection reset")]
        notification = engine.create(notification_payload())

        result = engine.attempt_delivery(notification.pk)

        assert result.status == PENDING
        assert result.delivery_attempts == 1
        assert result.last_error == "ConnectionError: connection reset"

    def test_retries_exhausted_marks_failed(self, engine, email_sender, event_bus):
        """Test a notification that keeps failing ends FAILED after its budget."""
        email_sender.results = [DispatchResult.failure("timeout")] * 3
        notification = engine.create(notification_payload())

        for _ in range(3):
            result = engine.attempt_delivery(notification.pk)

        assert result.status == FAILED
        assert result.delivery_attempts == 3
        assert result.next_retry_at is None
        assert result.last_error == "timeout"
        assert len(email_sender.sent) == 3
        assert event_bus.event_types() == ["NotificationCreated", "NotificationFailed"]

    def test_attempt_after_failure_is_noop(self, engine, email_sender):
        """Test attempts never exceed the budget once FAILED."""
        email_sender.results = [DispatchResult.failure("timeout")] * 3
        notification = engine.create(notification_payload())
        for _ in range(3):
            engine.attempt_delivery(notification.pk)

        result = engine.attempt_delivery(notification.pk)

        assert result.status == FAILED
        assert result.delivery_attempts == 3
        assert len(email_sender.sent) == 3

    def test_succeeds_on_final_attempt(self, engine, email_sender):
        """Test a send succeeding on the last allowed attempt is SENT."""
        email_sender.results = [
            DispatchResult.failure("timeout"),
            DispatchResult.failure("timeout"),
            DispatchResult.success(),
        ]
        notification = engine.create(notification_payload())

        for _ in range(3):
            result = engine.attempt_delivery(notification.pk)

        assert result.status == SENT
        assert result.delivery_attempts == 3
        assert result.last_error is None

    def test_exhausted_record_fails_without_sending(self, engine, email_sender):
        """Test a pending record with no attempts left is failed directly."""
        notification = create_notification(delivery_attempts=2, max_delivery_attempts=2)

        result = engine.attempt_delivery(notification.pk)

        assert result.status == FAILED
        assert result.delivery_attempts == 2
        assert email_sender.sent == []

    def test_expired_record_is_expired_not_sent(self, engine, email_sender, event_bus):
        """Test a pending record past its deadline expires instead of sending."""
        notification = create_notification(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

        result = engine.attempt_delivery(notification.pk)

        assert result.status == EXPIRED
        assert email_sender.sent == []
        assert event_bus.event_types() == ["NotificationExpired"]

    @pytest.mark.parametrize("status", [SENT, DELIVERED, READ, FAILED, CANCELLED])
    def test_non_pending_is_noop(self, engine, email_sender, status):
        """Test attempts on non-pending records never contact the channel."""
        notification = create_notification(status=status, delivery_attempts=1)

        result = engine.attempt_delivery(notification.pk)

        assert result.status == status
        assert result.delivery_attempts == 1
        assert email_sender.sent == []

    def test_cancelled_then_attempt_is_noop(self, engine, email_sender):
        """Test dispatch after cancellation is a no-op."""
        notification = engine.create(notification_payload())
        engine.cancel(notification.pk)

        result = engine.attempt_delivery(notification.pk)

        assert result.status == CANCELLED
        assert result.delivery_attempts == 0
        assert email_sender.sent == []

    def test_missing_notification_returns_none(self, engine):
        """Test attempts for unknown IDs return None."""
        assert engine.attempt_delivery(999999) is None

    def test_send_now_dispatches_synchronously(self, engine, email_sender):
        """Test send_now dispatches in the calling thread."""
        notification = engine.create(notification_payload())

        result = engine.send_now(notification.pk)

        assert result.status == SENT
        assert email_sender.sent == [notification.pk]

    def test_send_now_missing_notification_raises(self, engine):
        """Test send_now rejects unknown IDs."""
        with pytest.raises(NotificationNotFoundError):
            engine.send_now(999999)

    def test_overlapping_attempts_send_once(self, engine, email_sender, event_bus):
        """Test an attempt started while another is in flight does nothing."""
        notification = engine.create(notification_payload())
        nested = []

        def attempt_again(record):
            nested.append(engine.attempt_delivery(record.pk))

        email_sender.on_send = attempt_again

        result = engine.attempt_delivery(notification.pk)

        assert len(email_sender.sent) == 1
        assert nested[0].status == PENDING
        assert nested[0].delivery_attempts == 0
        assert result.status == SENT
        assert result.delivery_attempts == 1
        assert event_bus.event_types().count("NotificationSent") == 1

    def test_cancel_during_send_discards_result(self, engine, email_sender, event_bus):
        """Test cancellation while a send is in flight wins."""
        notification = engine.create(notification_payload())
        email_sender.on_send = lambda record: engine.cancel(record.pk)

        result = engine.attempt_delivery(notification.pk)

        assert result.status == CANCELLED
        assert result.delivery_attempts == 0
        assert result.sent_at is None
        assert "NotificationSent" not in event_bus.event_types()

    def test_cancel_after_claim_skips_send(self, engine, email_sender, event_bus):
        """Test a cancel landing right after the claim prevents the send."""
        notification = engine.create(notification_payload())
        claim = engine.repository.claim_dispatch

        def claim_then_cancel(*args, **kwargs):
            claimed = claim(*args, **kwargs)
            engine.cancel(notification.pk)
            return claimed

        with patch.object(
            engine.repository, "claim_dispatch", side_effect=claim_then_cancel
        ):
            result = engine.attempt_delivery(notification.pk)

        assert result.status == CANCELLED
        assert email_sender.sent == []
        assert "NotificationSent" not in event_bus.event_types()

    def test_expiry_sweep_during_send_keeps_send(
        self, engine, email_sender, event_bus
    ):
        """Test a deadline passing mid-send does not expire the record."""
        expires_at = timezone.now() + timedelta(seconds=30)
        notification = engine.create(notification_payload(expires_at=expires_at))
        sweeps = []

        def sweep(_record):
            scheduler = ReconciliationScheduler(engine=engine)
            sweeps.append(scheduler.run_once(now=expires_at + timedelta(seconds=1)))

        email_sender.on_send = sweep

        result = engine.attempt_delivery(notification.pk)

        assert sweeps[0].expired == 0
        assert result.status == SENT
        assert result.sent_at is not None
        assert event_bus.event_types() == ["NotificationCreated", "NotificationSent"]

    def test_expire_skips_record_with_live_lease(self, engine, event_bus):
        """Test expire leaves a record another worker is dispatching."""
        now = timezone.now()
        notification = create_notification(
            expires_at=now - timedelta(seconds=1),
            dispatch_lease_expires_at=now + timedelta(seconds=60),
        )

        assert engine.expire(notification, now) is False

        notification.refresh_from_db()
        assert notification.status == PENDING
        assert event_bus.event_types() == []

    def test_stale_lease_can_be_taken_over(self, engine, email_sender):
        """Test a lease left by a crashed worker does not block dispatch forever."""
        notification = create_notification(
            dispatch_lease_expires_at=timezone.now() - timedelta(seconds=1)
        )

        result = engine.attempt_delivery(notification.pk)

        assert result.status == SENT
        assert email_sender.sent == [notification.pk]

    def test_live_lease_blocks_dispatch(self, engine, email_sender):
        """Test a record claimed by another worker is skipped."""
        notification = create_notification(
            dispatch_lease_expires_at=timezone.now() + timedelta(seconds=60)
        )

        result = engine.attempt_delivery(notification.pk)

        assert result.status == PENDING
        assert email_sender.sent == []

    def test_unknown_channel_records_failure(self, engine, email_sender):
        """Test a channel without a sender produces a failed attempt."""
        notification = create_notification(channel=Channel.PUSH.value)

        result = engine.attempt_delivery(notification.pk)

        assert result.status == PENDING
        assert result.delivery_attempts == 1
        assert "PUSH" in result.last_error
        assert email_sender.sent == []


class TestBackoff:
    """Test suite for the retry backoff policy."""

    @pytest.fixture
    def engine(self):
        """Provide engine without collaborators."""
        return DeliveryEngine(dispatcher=ChannelDispatcher([]))

    @pytest.mark.parametrize(
        ("attempts", "seconds"),
        [(1, 300), (2, 600), (3, 900), (12, 3600), (50, 3600)],
    )
    def test_backoff_is_linear_and_capped(self, engine, attempts, seconds):
        """Test delay grows with attempts up to the cap."""
        assert engine.backoff(attempts) == timedelta(seconds=seconds)


@pytest.mark.django_db
class TestLifecycleTransitions:
    """Test suite for administrative transitions."""

    def test_mark_delivered(self, engine, event_bus):
        """Test SENT notifications can be marked delivered."""
        notification = create_notification(status=SENT)

        result = engine.mark_delivered(notification.pk)

        assert result.status == DELIVERED
        assert result.delivered_at is not None
        assert event_bus.event_types() == ["NotificationDelivered"]

    def test_mark_read(self, engine, event_bus):
        """Test DELIVERED notifications can be marked read."""
        notification = create_notification(status=DELIVERED)

        result = engine.mark_read(notification.pk)

        assert result.status == READ
        assert result.read_at is not None
        assert event_bus.event_types() == ["NotificationRead"]

    def test_cancel(self, engine, event_bus):
        """Test PENDING notifications can be cancelled."""
        notification = create_notification()

        result = engine.cancel(notification.pk)

        assert result.status == CANCELLED
        assert result.next_retry_at is None
        assert event_bus.event_types() == ["NotificationCancelled"]

    @pytest.mark.parametrize(
        ("operation", "status"),
        [
            ("mark_delivered", PENDING),
            ("mark_delivered", DELIVERED),
            ("mark_read", SENT),
            ("mark_read", READ),
            ("cancel", SENT),
            ("cancel", FAILED),
            ("cancel", EXPIRED),
        ],
    )
    def test_transition_precondition_failure(
        self, engine, event_bus, operation, status
    ):
        """Test transitions from the wrong status fail and change nothing."""
        notification = create_notification(status=status)
        updated_at = notification.updated_at

        with pytest.raises(PreconditionFailedError) as exc_info:
            getattr(engine, operation)(notification.pk)

        notification.refresh_from_db()
        assert notification.status == status
        assert notification.updated_at == updated_at
        assert exc_info.value.current_status == status
        assert event_bus.published == []

    @pytest.mark.parametrize("operation", ["mark_delivered", "mark_read", "cancel"])
    def test_transition_missing_notification(self, engine, operation):
        """Test transitions on unknown IDs raise not found."""
        with pytest.raises(NotificationNotFoundError):
            getattr(engine, operation)(999999)

    def test_full_lifecycle(self, engine, email_sender, event_bus):
        """Test create, send, deliver and read in order."""
        notification = engine.create(notification_payload())
        engine.attempt_delivery(notification.pk)
        engine.mark_delivered(notification.pk)
        result = engine.mark_read(notification.pk)

        assert result.status == READ
        assert event_bus.event_types() == [
            "NotificationCreated",
            "NotificationSent",
            "NotificationDelivered",
            "NotificationRead",
        ]

    def test_delete(self, engine, event_bus):
        """Test hard delete removes the record without an event."""
        notification = create_notification()

        engine.delete(notification.pk)

        assert not Notification.objects.filter(pk=notification.pk).exists()
        assert event_bus.published == []

    def test_delete_missing_notification(self, engine):
        """Test deleting an unknown ID raises not found."""
        with pytest.raises(NotificationNotFoundError):
            engine.delete(999999)


@pytest.mark.django_db
class TestQueries:
    """Test suite for recipient queries."""

    @pytest.fixture
    def records(self):
        """Create records across statuses for one recipient."""
        return {
            "pending": create_notification(recipient_id="r1"),
            "sent": create_notification(recipient_id="r1", status=SENT),
            "delivered": create_notification(recipient_id="r1", status=DELIVERED),
            "read": create_notification(recipient_id="r1", status=READ),
            "other": create_notification(recipient_id="r2"),
        }

    def test_get_missing_raises(self, engine):
        """Test get raises for unknown IDs."""
        with pytest.raises(NotificationNotFoundError):
            engine.get(999999)

    def test_list_all_for_recipient(self, engine, records):
        """Test listing without a filter returns every record of the recipient."""
        assert engine.list_for_recipient("r1").count() == 4

    def test_list_all(self, engine, records):
        """Test listing every notification, optionally by status."""
        assert engine.list_all().count() == 5
        assert list(engine.list_all(NotificationStatusEnum.SENT)) == [records["sent"]]
        assert set(engine.list_all("PENDING")) == {records["other"], records["pending"]}

    def test_list_pending(self, engine, records):
        """Test pending filter."""
        result = list(engine.list_for_recipient("r1", RecipientFilter.PENDING))
        assert result == [records["pending"]]

    def test_list_unread(self, engine, records):
        """Test unread filter returns delivered, not yet read records."""
        result = list(engine.list_for_recipient("r1", "unread"))
        assert result == [records["delivered"]]

    def test_list_rejects_unknown_filter(self, engine):
        """Test unknown filters are rejected."""
        with pytest.raises(ValueError):
            engine.list_for_recipient("r1", "archived")

    def test_counts(self, engine, records):
        """Test pending and unread counters."""
        assert engine.count_pending("r1") == 1
        assert engine.count_unread("r1") == 1
        assert engine.count_pending("nobody") == 0
