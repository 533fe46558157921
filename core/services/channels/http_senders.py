"""HTTP-based channel senders (SMS gateway, push gateway, webhooks)."""

from typing import Any

from django.conf import settings

import requests
import structlog

from core.enums import Channel
from core.exceptions import ChannelConfigurationError
from core.models import Notification
from core.schemas.notification import DispatchResult
from core.services.channels.base import ChannelSender

logger = structlog.get_logger(__name__)


class HttpChannelSender(ChannelSender):
    """Base class for senders that POST JSON to an HTTP endpoint.

    Any non-2xx response raises ``requests.HTTPError``; timeouts and
    connection failures propagate as ``requests.RequestException``.
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize HTTP sender.

        Args:
            timeout: Request timeout in seconds (defaults to
                CHANNEL_TIMEOUT_SECONDS)
        """
        self.timeout = timeout or settings.CHANNEL_TIMEOUT_SECONDS

    def send(self, notification: Notification) -> DispatchResult:
        """POST the channel payload and report the provider's message ID."""
        url = self.get_url(notification)
        if not url:
            raise ChannelConfigurationError(
                self.channel.value,
                f"No endpoint configured for channel '{self.channel.value}'",
            )

        response = self._post(url, self.build_payload(notification), notification)
        return DispatchResult.success(external_id=self._extract_external_id(response))

    def get_url(self, notification: Notification) -> str | None:
        """Return the endpoint to deliver this notification to."""
        raise NotImplementedError

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        """Return the JSON body for this notification."""
        raise NotImplementedError

    def _post(
        self,
        url: str,
        payload: dict[str, Any],
        notification: Notification,
    ) -> requests.Response:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if notification.correlation_id:
            headers["X-Correlation-ID"] = notification.correlation_id

        try:
            response = requests.post(
                url, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.Timeout:
            logger.error(
                "channel_request_timed_out",
                channel=self.channel.value,
                notification_id=notification.pk,
                url=url,
                timeout=self.timeout,
            )
            raise
        except requests.ConnectionError as e:
            logger.error(
                "channel_connection_failed",
                channel=self.channel.value,
                notification_id=notification.pk,
                url=url,
                error=str(e),
            )
            raise

        logger.info(
            "channel_response_received",
            channel=self.channel.value,
            notification_id=notification.pk,
            status_code=response.status_code,
        )
        response.raise_for_status()
        return response

    def _extract_external_id(self, response: requests.Response) -> str | None:
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        external_id = data.get("messageId") or data.get("id")
        return str(external_id) if external_id is not None else None


class SmsSender(HttpChannelSender):
    """Sender for the SMS channel via an HTTP SMS gateway."""

    channel = Channel.SMS

    def get_url(self, notification: Notification) -> str | None:
        return settings.SMS_GATEWAY_URL

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        if not notification.recipient_address:
            raise ValueError("No recipient phone number")
        return {
            "to": notification.recipient_address,
            "message": f"{notification.title}: {notification.body}",
        }


class PushSender(HttpChannelSender):
    """Sender for the PUSH channel via an HTTP push gateway."""

    channel = Channel.PUSH

    def get_url(self, notification: Notification) -> str | None:
        return settings.PUSH_GATEWAY_URL

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        if not notification.recipient_address:
            raise ValueError("No recipient device token")
        return {
            "token": notification.recipient_address,
            "title": notification.title,
            "body": notification.body,
            "priority": notification.priority,
        }


class WebhookSender(HttpChannelSender):
    """Sender for the WEBHOOK channel.

    Posts to the notification's recipient_address when it is set, otherwise
    to WEBHOOK_DEFAULT_URL.
    """

    channel = Channel.WEBHOOK

    def get_url(self, notification: Notification) -> str | None:
        return notification.recipient_address or settings.WEBHOOK_DEFAULT_URL

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        return {
            "notificationId": notification.pk,
            "recipientId": notification.recipient_id,
            "recipientType": notification.recipient_type,
            "title": notification.title,
            "body": notification.body,
            "category": notification.category,
            "priority": notification.priority,
            "correlationId": notification.correlation_id,
        }
