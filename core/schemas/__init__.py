"""Schemas for the core app."""

from core.schemas.events import DomainEvent, NotificationEvent, parse_domain_event
from core.schemas.notification import (
    DispatchResult,
    NotificationCreate,
    NotificationDetail,
)

__all__ = [
    "DispatchResult",
    "DomainEvent",
    "NotificationCreate",
    "NotificationDetail",
    "NotificationEvent",
    "parse_domain_event",
]
