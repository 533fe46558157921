"""Event bus integration."""

from core.events.bus import EventBus, InboundMessage, RedisStreamEventBus, get_event_bus

__all__ = ["EventBus", "InboundMessage", "RedisStreamEventBus", "get_event_bus"]
