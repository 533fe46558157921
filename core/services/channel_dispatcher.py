"""Channel dispatcher: uniform send interface over all delivery channels."""

from collections.abc import Iterable

import structlog

from core.exceptions import ChannelConfigurationError
from core.models import Notification
from core.schemas.notification import DispatchResult
from core.services.channels import (
    ChannelSender,
    EmailSender,
    InAppSender,
    PushSender,
    SmsSender,
    WebhookSender,
)

logger = structlog.get_logger(__name__)


def default_senders() -> list[ChannelSender]:
    """Build one sender per supported channel from Django settings."""
    return [EmailSender(), SmsSender(), PushSender(), InAppSender(), WebhookSender()]


class ChannelDispatcher:
    """Route a notification to the sender registered for its channel.

    ``dispatch`` never raises: sender exceptions, timeouts and unknown
    channels all come back as a failed DispatchResult.
    """

    def __init__(self, senders: Iterable[ChannelSender] | None = None) -> None:
        """Initialize dispatcher.

        Args:
            senders: Senders to register (defaults to one per channel)
        """
        if senders is None:
            senders = default_senders()
        self._senders: dict[str, ChannelSender] = {
            sender.channel.value: sender for sender in senders
        }

    def dispatch(self, notification: Notification) -> DispatchResult:
        """Make exactly one send attempt for the notification.

        Args:
            notification: Notification to send

        Returns:
            DispatchResult describing the outcome
        """
        sender = self._senders.get(notification.channel)
        if sender is None:
            error = str(ChannelConfigurationError(notification.channel))
            logger.error(
                "channel_not_configured",
                notification_id=notification.pk,
                channel=notification.channel,
            )
            return DispatchResult.failure(error)

        try:
            result = sender.send(notification)
        except Exception as e:
            logger.warning(
                "channel_send_failed",
                notification_id=notification.pk,
                channel=notification.channel,
                error_type=type(e).__name__,
                error=str(e),
            )
            return DispatchResult.failure(f"{type(e).__name__}: {e}")

        logger.info(
            "channel_send_completed",
            notification_id=notification.pk,
            channel=notification.channel,
            ok=result.ok,
            external_id=result.external_id,
        )
        return result
