"""Base class for channel senders."""

from core.enums import Channel
from core.models import Notification
from core.schemas.notification import DispatchResult


class ChannelSender:
    """A transport capable of sending a notification over one channel.

    Implementations return a DispatchResult on success and either return a
    failed result or raise on failure; the ChannelDispatcher turns raised
    exceptions into failed results.
    """

    channel: Channel

    def send(self, notification: Notification) -> DispatchResult:
        """Send the notification over this sender's channel."""
        raise NotImplementedError
