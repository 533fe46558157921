"""Channel senders, one per delivery channel."""

from core.services.channels.base import ChannelSender
from core.services.channels.email_sender import EmailSender
from core.services.channels.http_senders import (
    HttpChannelSender,
    PushSender,
    SmsSender,
    WebhookSender,
)
from core.services.channels.in_app_sender import InAppSender

__all__ = [
    "ChannelSender",
    "EmailSender",
    "HttpChannelSender",
    "InAppSender",
    "PushSender",
    "SmsSender",
    "WebhookSender",
]
