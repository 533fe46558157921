"""Django project package for the notification service."""
