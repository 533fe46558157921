"""Pytest configuration and shared fixtures."""

import os

import django

import pytest

# Configure Django settings for tests
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "notification_service.settings_test")
django.setup()

from core.services.channel_dispatcher import ChannelDispatcher  # noqa: E402
from core.services.delivery_engine import DeliveryEngine  # noqa: E402
from tests.fakes import FakeEventBus, FakeQueue, StubSender  # noqa: E402


@pytest.fixture
def event_bus():
    """Provide an in-memory event bus."""
    return FakeEventBus()


@pytest.fixture
def queue():
    """Provide an in-memory job queue."""
    return FakeQueue()


@pytest.fixture
def email_sender():
    """Provide a stub EMAIL sender that succeeds unless told otherwise."""
    return StubSender()


@pytest.fixture
def engine(email_sender, event_bus, queue):
    """Provide a delivery engine wired to fakes."""
    return DeliveryEngine(
        dispatcher=ChannelDispatcher([email_sender]),
        event_bus=event_bus,
        queue=queue,
    )
