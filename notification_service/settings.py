"""Django settings for the notification service.

Every value can be overridden through an environment variable of the same
name. Defaults are suitable for local development against a PostgreSQL
database and a Redis instance on localhost.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-notification-service-dev-key")
DEBUG = _env_bool("DEBUG", False)
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django_rq",
    "core",
]

# Database

DATABASES = {
    "default": {
        "ENGINE": os.getenv("DATABASE_ENGINE", "django.db.backends.postgresql"),
        "NAME": os.getenv("DATABASE_NAME", "notification_service"),
        "USER": os.getenv("DATABASE_USER", "postgres"),
        "PASSWORD": os.getenv("DATABASE_PASSWORD", ""),
        "HOST": os.getenv("DATABASE_HOST", "localhost"),
        "PORT": os.getenv("DATABASE_PORT", "5432"),
        "CONN_MAX_AGE": int(os.getenv("DATABASE_CONN_MAX_AGE", "60")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

# Redis (RQ queues and event bus)

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD") or None

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}",
    }
}

NOTIFICATION_QUEUE_NAME = os.getenv("NOTIFICATION_QUEUE_NAME", "default")

RQ_QUEUES = {
    name: {
        "HOST": REDIS_HOST,
        "PORT": REDIS_PORT,
        "DB": REDIS_DB,
        "PASSWORD": REDIS_PASSWORD,
        "DEFAULT_TIMEOUT": int(os.getenv("RQ_DEFAULT_TIMEOUT", "300")),
    }
    for name in {"default", NOTIFICATION_QUEUE_NAME}
}

# Email (SMTP channel)

EMAIL_HOST = os.getenv("EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = _env_bool("EMAIL_USE_TLS", True)
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "noreply@example.com")

# Channel gateways

CHANNEL_TIMEOUT_SECONDS = int(os.getenv("CHANNEL_TIMEOUT_SECONDS", "30"))
SMS_GATEWAY_URL = os.getenv("SMS_GATEWAY_URL", "")
PUSH_GATEWAY_URL = os.getenv("PUSH_GATEWAY_URL", "")
WEBHOOK_DEFAULT_URL = os.getenv("WEBHOOK_DEFAULT_URL", "")

# Delivery policy

NOTIFICATION_MAX_DELIVERY_ATTEMPTS = int(
    os.getenv("NOTIFICATION_MAX_DELIVERY_ATTEMPTS", "3")
)
NOTIFICATION_DEFAULT_TTL_DAYS = int(os.getenv("NOTIFICATION_DEFAULT_TTL_DAYS", "7"))
NOTIFICATION_INITIAL_RETRY_DELAY_SECONDS = int(
    os.getenv("NOTIFICATION_INITIAL_RETRY_DELAY_SECONDS", "60")
)
NOTIFICATION_RETRY_BACKOFF_SECONDS = int(
    os.getenv("NOTIFICATION_RETRY_BACKOFF_SECONDS", "300")
)
NOTIFICATION_RETRY_BACKOFF_CAP_SECONDS = int(
    os.getenv("NOTIFICATION_RETRY_BACKOFF_CAP_SECONDS", "3600")
)
# Must exceed CHANNEL_TIMEOUT_SECONDS
DISPATCH_LEASE_SECONDS = int(os.getenv("DISPATCH_LEASE_SECONDS", "120"))

# Reconciliation sweep

RECONCILIATION_INTERVAL_SECONDS = int(
    os.getenv("RECONCILIATION_INTERVAL_SECONDS", "60")
)
RECONCILIATION_BATCH_SIZE = int(os.getenv("RECONCILIATION_BATCH_SIZE", "500"))

# Event bus (Redis Streams)

EVENT_BUS_STREAM_PREFIX = os.getenv("EVENT_BUS_STREAM_PREFIX", "")
EVENT_BUS_CONSUMER_GROUP = os.getenv(
    "EVENT_BUS_CONSUMER_GROUP", "notification-service-group"
)
EVENT_BUS_CONSUMER_NAME = os.getenv(
    "EVENT_BUS_CONSUMER_NAME", f"notification-service-{os.getpid()}"
)
EVENT_BUS_BLOCK_MS = int(os.getenv("EVENT_BUS_BLOCK_MS", "5000"))
EVENT_BUS_BATCH_SIZE = int(os.getenv("EVENT_BUS_BATCH_SIZE", "10"))
EVENT_BUS_REDELIVERY_IDLE_MS = int(os.getenv("EVENT_BUS_REDELIVERY_IDLE_MS", "60000"))
EVENT_BUS_MAX_STREAM_LENGTH = int(os.getenv("EVENT_BUS_MAX_STREAM_LENGTH", "100000"))
EVENT_BUS_ERROR_BACKOFF_SECONDS = int(os.getenv("EVENT_BUS_ERROR_BACKOFF_SECONDS", "5"))

# Logging

SERVICE_NAME = os.getenv("SERVICE_NAME", "notification-service")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE_PATH = os.getenv("LOG_FILE_PATH", "")
LOG_FILE_MAX_BYTES = int(os.getenv("LOG_FILE_MAX_BYTES", str(100 * 1024 * 1024)))
LOG_FILE_BACKUP_COUNT = int(os.getenv("LOG_FILE_BACKUP_COUNT", "10"))

TEST_MODE = False
