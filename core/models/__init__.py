"""Database models for core application."""

from core.models.notification import Notification

__all__ = ["Notification"]
