"""Background jobs for notification dispatch.

This module provides the job executed by RQ workers for each dispatch
attempt. Jobs are enqueued by the delivery engine right after a
notification is created and by the reconciliation sweep for retries.
"""

import structlog

from core.services.delivery_engine import delivery_engine

logger = structlog.get_logger(__name__)


def attempt_delivery_job(notification_id: int) -> str | None:
    """Make one dispatch attempt for a notification.

    This job is executed by RQ workers. The engine handles concurrent
    attempts for the same notification, so a job enqueued twice (once on
    creation, once by the sweep) sends at most once.

    Args:
        notification_id: ID of the notification to dispatch.

    Returns:
        The notification status after the attempt, or None if the
        notification no longer exists.
    """
    logger.debug("attempt_delivery_job_started", notification_id=notification_id)

    notification = delivery_engine.attempt_delivery(int(notification_id))
    if notification is None:
        return None

    logger.debug(
        "attempt_delivery_job_finished",
        notification_id=notification_id,
        status=notification.status,
        delivery_attempts=notification.delivery_attempts,
    )
    return notification.status
