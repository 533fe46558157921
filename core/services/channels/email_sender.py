"""Email channel sender using SMTP."""

import re
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from django.conf import settings

import structlog

from core.enums import Channel
from core.models import Notification
from core.schemas.notification import DispatchResult
from core.services.channels.base import ChannelSender

logger = structlog.get_logger(__name__)


class EmailSender(ChannelSender):
    """Sender for the EMAIL channel.

    Handles email formatting, HTML/plain text conversion, and SMTP delivery.
    The generated Message-ID is reported as the notification's external ID.
    """

    channel = Channel.EMAIL

    def __init__(self) -> None:
        """Initialize email sender with SMTP configuration."""
        self.smtp_host = settings.EMAIL_HOST
        self.smtp_port = settings.EMAIL_PORT
        self.smtp_user = settings.EMAIL_HOST_USER
        self.smtp_password = settings.EMAIL_HOST_PASSWORD
        self.use_tls = settings.EMAIL_USE_TLS
        self.from_email = settings.DEFAULT_FROM_EMAIL
        self.timeout = settings.CHANNEL_TIMEOUT_SECONDS

    def send(self, notification: Notification) -> DispatchResult:
        """Send a notification as an email.

        Args:
            notification: Notification whose recipient_address is an email

        Returns:
            Successful DispatchResult carrying the Message-ID

        Raises:
            ValueError: If the recipient address is missing or invalid
            smtplib.SMTPException: If SMTP operation fails
            OSError: If the SMTP server cannot be reached
        """
        if not notification.recipient_address:
            raise ValueError("No recipient email address")

        message_id = self.send_email(
            to_email=notification.recipient_address,
            subject=notification.title,
            html_content=notification.body,
        )
        return DispatchResult.success(external_id=message_id)

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        from_email: str | None = None,
    ) -> str:
        """Send an email via SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject line
            html_content: HTML email content
            from_email: Sender email (defaults to DEFAULT_FROM_EMAIL)

        Returns:
            The Message-ID header of the sent email

        Raises:
            ValueError: If email address is invalid
            smtplib.SMTPException: If SMTP operation fails
        """
        if not self._is_valid_email(to_email):
            error_msg = f"Invalid email address: {to_email}"
            raise ValueError(error_msg)

        sender = from_email or self.from_email
        message_id = make_msgid()

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to_email
        msg["Message-ID"] = message_id

        # Attach both plain text and HTML versions
        msg.attach(MIMEText(self._html_to_plain(html_content), "plain"))
        msg.attach(MIMEText(html_content, "html"))

        try:
            with smtplib.SMTP(
                self.smtp_host, self.smtp_port, timeout=self.timeout
            ) as server:
                if self.use_tls:
                    server.starttls()

                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)

                server.send_message(msg)

                logger.info(
                    "email_sent",
                    to_email=to_email,
                    subject=subject,
                    message_id=message_id,
                )
                return message_id

        except smtplib.SMTPException as e:
            logger.error(
                "email_send_failed",
                to_email=to_email,
                subject=subject,
                error=str(e),
            )
            raise

    def _is_valid_email(self, email: str) -> bool:
        """Validate email address format."""
        pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
        return bool(re.match(pattern, email))

    def _html_to_plain(self, html: str) -> str:
        """Convert HTML to plain text.

        Args:
            html: HTML content

        Returns:
            Plain text version of the HTML
        """
        text = re.sub(r"<[^>]+>", "", html)

        text = text.replace("&nbsp;", " ")
        text = text.replace("&lt;", "<")
        text = text.replace("&gt;", ">")
        text = text.replace("&amp;", "&")
        text = text.replace("&quot;", '"')

        text = re.sub(r"\n\s*\n", "\n\n", text)
        return text.strip()
