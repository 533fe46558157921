"""Management command running the inbound event consumer."""

import signal
import threading

from django.core.management.base import BaseCommand

from core.services.event_ingest import EventIngestAdapter


class Command(BaseCommand):
    """Consume domain events and create notifications until stopped."""

    help = "Consume inbound domain events and create notifications"

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Poll the event bus a single time and exit",
        )

    def handle(self, *_args, **options):
        adapter = EventIngestAdapter()

        if options["once"]:
            acked = adapter.process_batch()
            self.stdout.write(f"Processed {acked} event(s)")
            return

        stop_event = threading.Event()

        def _stop(*_):
            stop_event.set()

        signal.signal(signal.SIGINT, _stop)
        signal.signal(signal.SIGTERM, _stop)

        self.stdout.write(self.style.SUCCESS("Event consumer started"))
        adapter.run_forever(stop_event)
