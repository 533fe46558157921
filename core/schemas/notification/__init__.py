"""Notification schemas."""

from core.schemas.notification.dispatch_result import DispatchResult
from core.schemas.notification.notification_create import NotificationCreate
from core.schemas.notification.notification_detail import NotificationDetail

__all__ = [
    "DispatchResult",
    "NotificationCreate",
    "NotificationDetail",
]
