"""In-app channel sender."""

import structlog

from core.enums import Channel
from core.models import Notification
from core.schemas.notification import DispatchResult
from core.services.channels.base import ChannelSender

logger = structlog.get_logger(__name__)


class InAppSender(ChannelSender):
    """Sender for the IN_APP channel.

    The stored notification record is the in-app inbox entry, so sending
    only marks it as handed over.
    """

    channel = Channel.IN_APP

    def send(self, notification: Notification) -> DispatchResult:
        """Accept the notification into the recipient's in-app inbox."""
        logger.info(
            "in_app_notification_sent",
            notification_id=notification.pk,
            recipient_id=notification.recipient_id,
        )
        return DispatchResult.success()
