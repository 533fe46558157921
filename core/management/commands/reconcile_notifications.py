"""Management command running the reconciliation sweep."""

import signal
import threading

from django.core.management.base import BaseCommand

from core.services.reconciliation import ReconciliationScheduler


class Command(BaseCommand):
    """Retry due notifications and expire stale ones on a fixed period."""

    help = "Re-enqueue due notifications and expire stale ones"

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single sweep and exit (for cron)",
        )
        parser.add_argument(
            "--interval",
            type=int,
            default=None,
            help="Seconds between sweeps (defaults to RECONCILIATION_INTERVAL_SECONDS)",
        )

    def handle(self, *_args, **options):
        scheduler = ReconciliationScheduler(interval_seconds=options["interval"])

        if options["once"]:
            result = scheduler.run_once()
            self.stdout.write(
                f"Retried {result.retried}, expired {result.expired}, "
                f"errors {result.errors}"
            )
            return

        stop_event = threading.Event()

        def _stop(*_):
            stop_event.set()

        signal.signal(signal.SIGINT, _stop)
        signal.signal(signal.SIGTERM, _stop)

        self.stdout.write(self.style.SUCCESS("Reconciliation scheduler started"))
        scheduler.run_forever(stop_event)
