"""Tests for ReconciliationScheduler."""

from datetime import timedelta
from unittest.mock import patch

from django.utils import timezone

import pytest

from core.enums import NotificationStatusEnum
from core.services.reconciliation import ReconciliationResult, ReconciliationScheduler
from tests.factories import create_notification

PENDING = NotificationStatusEnum.PENDING.value
SENT = NotificationStatusEnum.SENT.value
EXPIRED = NotificationStatusEnum.EXPIRED.value


@pytest.mark.django_db
class TestReconciliationScheduler:
    """Test suite for ReconciliationScheduler."""

    @pytest.fixture
    def scheduler(self, engine):
        """Provide scheduler driving the fake-wired engine."""
        return ReconciliationScheduler(engine=engine, interval_seconds=1)

    def test_run_once_enqueues_due_notifications(self, scheduler, queue):
        """Test pending records whose retry time has come are re-enqueued."""
        now = timezone.now()
        due = create_notification(next_retry_at=now - timedelta(minutes=1))
        create_notification(next_retry_at=now + timedelta(minutes=1))

        result = scheduler.run_once(now)

        assert result == ReconciliationResult(retried=1, expired=0, errors=0)
        assert queue.enqueued_ids() == [due.pk]

    def test_run_once_skips_exhausted_and_leased(self, scheduler, queue):
        """Test records without attempts left or with a live claim are skipped."""
        now = timezone.now()
        create_notification(
            next_retry_at=now - timedelta(minutes=1),
            delivery_attempts=3,
            max_delivery_attempts=3,
        )
        create_notification(
            next_retry_at=now - timedelta(minutes=1),
            dispatch_lease_expires_at=now + timedelta(minutes=1),
        )

        result = scheduler.run_once(now)

        assert result.retried == 0
        assert queue.jobs == []

    def test_run_once_expires_without_dispatch(
        self, scheduler, queue, email_sender, event_bus
    ):
        """Test pending records past their deadline are expired, never sent."""
        now = timezone.now()
        stale = create_notification(
            expires_at=now - timedelta(seconds=1),
            next_retry_at=now - timedelta(minutes=5),
        )

        result = scheduler.run_once(now)

        stale.refresh_from_db()
        assert stale.status == EXPIRED
        assert result.expired == 1
        assert result.retried == 0
        assert queue.jobs == []
        assert email_sender.sent == []
        assert event_bus.event_types() == ["NotificationExpired"]

    def test_run_once_ignores_non_pending(self, scheduler, queue):
        """Test records outside PENDING are left alone."""
        now = timezone.now()
        create_notification(
            status=SENT,
            expires_at=now - timedelta(seconds=1),
            next_retry_at=now - timedelta(minutes=1),
        )

        result = scheduler.run_once(now)

        assert result == ReconciliationResult()
        assert queue.jobs == []

    def test_run_once_continues_after_record_fault(self, scheduler, engine, queue):
        """Test a fault on one record does not stop the sweep."""
        now = timezone.now()
        first = create_notification(next_retry_at=now - timedelta(minutes=2))
        second = create_notification(next_retry_at=now - timedelta(minutes=1))

        calls = []

        def flaky_schedule(notification_id):
            calls.append(notification_id)
            if notification_id == first.pk:
                raise RuntimeError("redis down")
            queue.enqueue("job", notification_id)

        with patch.object(engine, "schedule_delivery", side_effect=flaky_schedule):
            result = scheduler.run_once(now)

        assert calls == [first.pk, second.pk]
        assert result == ReconciliationResult(retried=1, expired=0, errors=1)
        assert queue.enqueued_ids() == [second.pk]

    def test_run_once_counts_expire_faults(self, scheduler, engine):
        """Test a failing expiration is counted and the sweep completes."""
        now = timezone.now()
        create_notification(expires_at=now - timedelta(seconds=1))

        with patch.object(engine, "expire", side_effect=RuntimeError("db down")):
            result = scheduler.run_once(now)

        assert result.errors == 1
        assert result.expired == 0

    def test_run_once_respects_batch_size(self, engine, queue):
        """Test at most batch_size records are handled per query."""
        now = timezone.now()
        for _ in range(3):
            create_notification(next_retry_at=now - timedelta(minutes=1))

        result = ReconciliationScheduler(engine=engine, batch_size=2).run_once(now)

        assert result.retried == 2
        assert len(queue.jobs) == 2

    def test_defaults_from_settings(self, engine, settings):
        """Test interval and batch size default to settings."""
        settings.RECONCILIATION_INTERVAL_SECONDS = 15
        settings.RECONCILIATION_BATCH_SIZE = 50

        scheduler = ReconciliationScheduler(engine=engine)

        assert scheduler.interval_seconds == 15
        assert scheduler.batch_size == 50

    def test_run_forever_sweeps_until_stopped(self, scheduler):
        """Test the loop sweeps once per period and exits when stopped."""

        class _StopAfterTwo:
            waits = 0

            def is_set(self):
                return self.waits >= 2

            def wait(self, timeout=None):
                self.waits += 1
                return self.is_set()

        stop_event = _StopAfterTwo()
        with patch.object(scheduler, "run_once") as mock_run_once:
            scheduler.run_forever(stop_event)

        assert mock_run_once.call_count == 2

    def test_run_forever_survives_sweep_failure(self, scheduler):
        """Test an exception in one sweep does not end the loop."""

        class _StopAfterTwo:
            waits = 0

            def is_set(self):
                return self.waits >= 2

            def wait(self, timeout=None):
                self.waits += 1
                return self.is_set()

        with patch.object(
            scheduler, "run_once", side_effect=[RuntimeError("boom"), None]
        ) as mock_run_once:
            scheduler.run_forever(_StopAfterTwo())

        assert mock_run_once.call_count == 2
