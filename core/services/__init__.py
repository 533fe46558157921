"""Services for the core app."""

from core.services.channel_dispatcher import ChannelDispatcher
from core.services.delivery_engine import DeliveryEngine, delivery_engine
from core.services.event_ingest import EventIngestAdapter
from core.services.reconciliation import ReconciliationResult, ReconciliationScheduler

__all__ = [
    "ChannelDispatcher",
    "DeliveryEngine",
    "EventIngestAdapter",
    "ReconciliationResult",
    "ReconciliationScheduler",
    "delivery_engine",
]
