# Process Notifications Management Command
import time

from django.core.management.base import BaseCommand, CommandError

from core.notifications import process_due_events


class Command(BaseCommand):
    help = 'Sends pending notification emails from the outbox.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--batch-size',
            type=int,
            default=None,
            help='Number of events to process per batch (defaults to NOTIFICATION_BATCH_SIZE).',
        )
        parser.add_argument(
            '--loop',
            action='store_true',
            help='Keep polling for due events instead of exiting after one pass.',
        )
        parser.add_argument(
            '--interval',
            type=float,
            default=10.0,
            help='Seconds to sleep between polls when the outbox is empty (with --loop).',
        )

    def handle(self, *args, **options):
        batch_size = options['batch_size']
        if batch_size is not None and batch_size < 1:
            raise CommandError('--batch-size must be a positive integer.')

        if not options['loop']:
            total = self.drain(batch_size)
            self.stdout.write(self.style.SUCCESS(f'Processed {total} notification events.'))
            return

        self.stdout.write('Polling for notification events. Press Ctrl+C to stop.')
        try:
            while True:
                if self.drain(batch_size) == 0:
                    time.sleep(options['interval'])
        except KeyboardInterrupt:
            self.stdout.write(self.style.SUCCESS('Stopped.'))

    def drain(self, batch_size):
        """Process batches until no due event is left."""
        total = 0
        while True:
            result = process_due_events(batch_size=batch_size)
            if result.processed == 0:
                return total

            total += result.processed
            self.stdout.write(
                f'Sent {result.sent}, skipped {result.skipped}, '
                f'retrying {result.retried}, failed {result.failed}'
            )
