"""Periodic sweep that re-drives pending notifications.

Dispatch jobs can be lost (a worker dies, Redis drops the enqueue) and
failed attempts only record when they may be retried, so every period the
sweep enqueues a dispatch job for each pending notification whose retry
time has come and expires pending notifications past their deadline.
"""

import threading
from dataclasses import dataclass
from datetime import datetime

from django.conf import settings
from django.utils import timezone

import structlog

from core.repositories.notification_repository import NotificationRepository
from core.services.delivery_engine import DeliveryEngine, delivery_engine

logger = structlog.get_logger(__name__)


@dataclass
class ReconciliationResult:
    """Counts from one reconciliation sweep."""

    retried: int = 0
    expired: int = 0
    errors: int = 0


class ReconciliationScheduler:
    """Scheduler running the reconciliation sweep on a fixed period."""

    def __init__(
        self,
        engine: DeliveryEngine | None = None,
        interval_seconds: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            engine: Delivery engine the sweep drives
            interval_seconds: Seconds between sweeps
            batch_size: Maximum records handled per query in one sweep
        """
        self.engine = engine or delivery_engine
        self.interval_seconds = (
            interval_seconds or settings.RECONCILIATION_INTERVAL_SECONDS
        )
        self.batch_size = batch_size or settings.RECONCILIATION_BATCH_SIZE

    @property
    def repository(self) -> NotificationRepository:
        return self.engine.repository

    def run_once(self, now: datetime | None = None) -> ReconciliationResult:
        """Run one sweep.

        Expired records are handled first so that a record past its
        deadline is never re-enqueued by the same sweep.

        Args:
            now: Reference time (defaults to the current time)

        Returns:
            ReconciliationResult with the sweep's counts
        """
        now = now or timezone.now()
        result = ReconciliationResult()

        for notification in self.repository.find_expired(now, limit=self.batch_size):
            try:
                if self.engine.expire(notification, now):
                    result.expired += 1
            except Exception as e:
                result.errors += 1
                logger.exception(
                    "reconciliation_expire_failed",
                    notification_id=notification.pk,
                    error=str(e),
                )

        due = self.repository.find_due_for_retry(now, limit=self.batch_size)
        for notification in due:
            try:
                self.engine.schedule_delivery(notification.pk)
                result.retried += 1
            except Exception as e:
                result.errors += 1
                logger.exception(
                    "reconciliation_retry_failed",
                    notification_id=notification.pk,
                    error=str(e),
                )

        logger.info(
            "reconciliation_completed",
            retried=result.retried,
            expired=result.expired,
            errors=result.errors,
        )
        return result

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Run sweeps every ``interval_seconds`` until ``stop_event`` is set."""
        stop_event = stop_event or threading.Event()
        logger.info("reconciliation_started", interval_seconds=self.interval_seconds)
        while not stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.exception("reconciliation_failed", error=str(e))
            stop_event.wait(timeout=self.interval_seconds)
        logger.info("reconciliation_stopped")
