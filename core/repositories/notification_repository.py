"""Repository for notification record queries and conditional updates."""

from datetime import datetime, timedelta
from typing import Any

from django.db.models import F, Q, QuerySet
from django.utils import timezone

from core.enums import NotificationStatusEnum
from core.exceptions import NotificationNotFoundError
from core.models import Notification

PENDING = NotificationStatusEnum.PENDING.value


def _unleased(now: datetime) -> Q:
    return Q(dispatch_lease_expires_at__isnull=True) | Q(
        dispatch_lease_expires_at__lt=now
    )


class NotificationRepository:
    """Repository encapsulating notification database access.

    Every status change goes through ``transition``, a single UPDATE
    conditioned on the status (and optionally the attempt count) the caller
    last observed. A caller whose view of the record is stale gets ``False``
    back instead of overwriting a concurrent change.
    """

    @staticmethod
    def create(**fields: Any) -> Notification:
        """Insert a new notification record.

        Args:
            **fields: Model field values

        Returns:
            The persisted Notification
        """
        return Notification.objects.create(**fields)

    @staticmethod
    def find(notification_id: int) -> Notification | None:
        """Look up a notification by ID, returning None if absent."""
        return Notification.objects.filter(pk=notification_id).first()

    @staticmethod
    def get(notification_id: int) -> Notification:
        """Look up a notification by ID.

        Args:
            notification_id: Notification ID

        Returns:
            Notification instance

        Raises:
            NotificationNotFoundError: If the notification does not exist
        """
        try:
            return Notification.objects.get(pk=notification_id)
        except Notification.DoesNotExist as e:
            raise NotificationNotFoundError(notification_id) from e

    @staticmethod
    def find_by_source_event_id(source_event_id: str) -> Notification | None:
        """Look up the notification produced by a given inbound event."""
        return Notification.objects.filter(source_event_id=source_event_id).first()

    @staticmethod
    def list_all(status: str | None = None) -> QuerySet[Notification]:
        """List every notification, newest first, optionally by status."""
        queryset = Notification.objects.all()
        if status is not None:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-created_at")

    @staticmethod
    def list_for_recipient(
        recipient_id: str,
        status: str | None = None,
    ) -> QuerySet[Notification]:
        """List a recipient's notifications, newest first.

        Args:
            recipient_id: Recipient identifier
            status: Optional status filter

        Returns:
            QuerySet of Notification instances
        """
        queryset = Notification.objects.filter(recipient_id=recipient_id)
        if status is not None:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-created_at")

    @staticmethod
    def count_for_recipient(recipient_id: str, status: str) -> int:
        """Count a recipient's notifications in the given status."""
        return Notification.objects.filter(
            recipient_id=recipient_id, status=status
        ).count()

    @staticmethod
    def find_due_for_retry(now: datetime, limit: int = 500) -> QuerySet[Notification]:
        """Find pending notifications whose retry time has come.

        Records with attempts left and no live dispatch claim are returned,
        oldest retry time first.

        Args:
            now: Reference time
            limit: Maximum number of results

        Returns:
            QuerySet of Notification instances
        """
        return (
            Notification.objects.filter(
                status=PENDING,
                next_retry_at__lte=now,
                delivery_attempts__lt=F("max_delivery_attempts"),
            )
            .filter(_unleased(now))
            .order_by("next_retry_at")[:limit]
        )

    @staticmethod
    def find_expired(now: datetime, limit: int = 500) -> QuerySet[Notification]:
        """Find pending notifications past their expiration time.

        Records another worker is dispatching are left out until its lease
        lapses; the outcome of that attempt decides their status.
        """
        return (
            Notification.objects.filter(status=PENDING, expires_at__lte=now)
            .filter(_unleased(now))
            .order_by("expires_at")[:limit]
        )

    @staticmethod
    def transition(
        notification_id: int,
        from_status: str,
        expected_attempts: int | None = None,
        unleased_at: datetime | None = None,
        **changes: Any,
    ) -> bool:
        """Apply field changes if the record is still in ``from_status``.

        Args:
            notification_id: Notification ID
            from_status: Status the caller observed
            expected_attempts: Attempt count the caller observed, if it matters
            unleased_at: If given, only apply while no dispatch lease is live
                at this time
            **changes: Field values to write

        Returns:
            True if the row was updated, False if it changed underneath
        """
        queryset = Notification.objects.filter(pk=notification_id, status=from_status)
        if expected_attempts is not None:
            queryset = queryset.filter(delivery_attempts=expected_attempts)
        if unleased_at is not None:
            queryset = queryset.filter(_unleased(unleased_at))
        changes["updated_at"] = timezone.now()
        return queryset.update(**changes) == 1

    @staticmethod
    def claim_dispatch(notification_id: int, now: datetime, lease_seconds: int) -> bool:
        """Claim the right to dispatch a pending notification.

        The claim succeeds only when the record is pending and no other
        worker holds an unexpired lease on it.

        Args:
            notification_id: Notification ID
            now: Reference time
            lease_seconds: How long the claim stays valid

        Returns:
            True if this caller now holds the claim
        """
        updated = (
            Notification.objects.filter(pk=notification_id, status=PENDING)
            .filter(_unleased(now))
            .update(
                dispatch_lease_expires_at=now + timedelta(seconds=lease_seconds),
                updated_at=now,
            )
        )
        return updated == 1

    @staticmethod
    def delete(notification_id: int) -> bool:
        """Hard delete a notification.

        Returns:
            True if a record was removed
        """
        deleted, _ = Notification.objects.filter(pk=notification_id).delete()
        return deleted > 0
