from django.db import migrations, models

RECIPIENT_TYPES = [
    ("STUDENT", "STUDENT"),
    ("INSTRUCTOR", "INSTRUCTOR"),
    ("ADMIN", "ADMIN"),
    ("SYSTEM", "SYSTEM"),
]

CATEGORIES = [
    ("ENROLLMENT_CONFIRMATION", "ENROLLMENT_CONFIRMATION"),
    ("ENROLLMENT_CANCELLATION", "ENROLLMENT_CANCELLATION"),
    ("GRADE_UPDATE", "GRADE_UPDATE"),
    ("COURSE_UPDATE", "COURSE_UPDATE"),
    ("DEADLINE_REMINDER", "DEADLINE_REMINDER"),
    ("SYSTEM_MAINTENANCE", "SYSTEM_MAINTENANCE"),
    ("SECURITY_ALERT", "SECURITY_ALERT"),
    ("WELCOME", "WELCOME"),
    ("PASSWORD_RESET", "PASSWORD_RESET"),
    ("ACCOUNT_ACTIVATION", "ACCOUNT_ACTIVATION"),
    ("GENERAL", "GENERAL"),
]

PRIORITIES = [
    ("LOW", "LOW"),
    ("MEDIUM", "MEDIUM"),
    ("HIGH", "HIGH"),
    ("URGENT", "URGENT"),
]

CHANNELS = [
    ("EMAIL", "EMAIL"),
    ("SMS", "SMS"),
    ("PUSH", "PUSH"),
    ("IN_APP", "IN_APP"),
    ("WEBHOOK", "WEBHOOK"),
]

STATUSES = [
    ("PENDING", "PENDING"),
    ("SENT", "SENT"),
    ("DELIVERED", "DELIVERED"),
    ("READ", "READ"),
    ("FAILED", "FAILED"),
    ("EXPIRED", "EXPIRED"),
    ("CANCELLED", "CANCELLED"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "recipient_id",
                    models.CharField(
                        help_text="Identifier of the recipient in the originating service",
                        max_length=100,
                    ),
                ),
                (
                    "recipient_type",
                    models.CharField(
                        choices=RECIPIENT_TYPES, default="STUDENT", max_length=20
                    ),
                ),
                (
                    "recipient_address",
                    models.CharField(
                        blank=True,
                        help_text="Email address, phone number, device token or webhook URL",
                        max_length=255,
                        null=True,
                    ),
                ),
                ("title", models.CharField(max_length=200)),
                ("body", models.TextField()),
                (
                    "category",
                    models.CharField(
                        choices=CATEGORIES, default="GENERAL", max_length=50
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=PRIORITIES, default="MEDIUM", max_length=10
                    ),
                ),
                (
                    "channel",
                    models.CharField(choices=CHANNELS, default="EMAIL", max_length=20),
                ),
                (
                    "status",
                    models.CharField(choices=STATUSES, default="PENDING", max_length=20),
                ),
                ("delivery_attempts", models.PositiveIntegerField(default=0)),
                ("max_delivery_attempts", models.PositiveIntegerField(default=3)),
                ("next_retry_at", models.DateTimeField(blank=True, null=True)),
                ("expires_at", models.DateTimeField()),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                (
                    "dispatch_lease_expires_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Set while a worker holds the dispatch claim for this record",
                        null=True,
                    ),
                ),
                (
                    "source_service",
                    models.CharField(blank=True, max_length=100, null=True),
                ),
                (
                    "source_event_id",
                    models.CharField(
                        blank=True,
                        help_text="Idempotency key of the event that produced this notification",
                        max_length=100,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "correlation_id",
                    models.CharField(blank=True, max_length=100, null=True),
                ),
                (
                    "external_id",
                    models.CharField(blank=True, max_length=200, null=True),
                ),
                ("last_error", models.TextField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "notifications",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["recipient_id", "-created_at"],
                        name="notificatio_recipie_5c1f0e_idx",
                    ),
                    models.Index(
                        fields=["recipient_id", "status"],
                        name="notificatio_recipie_8d2a41_idx",
                    ),
                    models.Index(
                        fields=["status", "next_retry_at"],
                        name="notificatio_status_3b7e92_idx",
                    ),
                    models.Index(
                        fields=["status", "expires_at"],
                        name="notificatio_status_a4c6d0_idx",
                    ),
                ],
            },
        ),
    ]
