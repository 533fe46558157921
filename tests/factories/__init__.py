"""Factory helpers for test data generation."""

from datetime import timedelta

from django.utils import timezone

from faker import Faker

from core.enums import Channel, NotificationStatusEnum
from core.models import Notification

fake = Faker()


def notification_payload(**overrides):
    """Build a valid creation request mapping."""
    payload = {
        "recipient_id": str(fake.random_int(min=1, max=99999)),
        "recipient_address": fake.email(),
        "title": fake.sentence(nb_words=4),
        "body": fake.text(max_nb_chars=200),
        "channel": Channel.EMAIL.value,
    }
    payload.update(overrides)
    return payload


def create_notification(**overrides) -> Notification:
    """Insert a notification record directly, bypassing the engine."""
    now = timezone.now()
    fields = {
        "recipient_id": str(fake.random_int(min=1, max=99999)),
        "recipient_address": fake.email(),
        "title": fake.sentence(nb_words=4),
        "body": fake.text(max_nb_chars=200),
        "channel": Channel.EMAIL.value,
        "status": NotificationStatusEnum.PENDING.value,
        "next_retry_at": now - timedelta(seconds=1),
        "expires_at": now + timedelta(days=7),
    }
    fields.update(overrides)
    return Notification.objects.create(**fields)
