"""
Management command running the publication sweep on a fixed interval.

Sweeps once on start, then every ``--interval`` seconds. SIGINT and SIGTERM
let the current sweep finish and stop before the next one.

Usage:
    python manage.py run_publication_scheduler
    python manage.py run_publication_scheduler --interval 60
    python manage.py run_publication_scheduler --max-ticks 1
"""

import logging
import signal
import threading

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.articles.services import PublicationSweep

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Run the scheduled-article publication sweep in a loop'

    def add_arguments(self, parser):
        parser.add_argument(
            '--interval',
            type=int,
            default=None,
            help='Seconds between sweeps (default: PUBLICATION_SWEEP_INTERVAL_SECONDS)'
        )
        parser.add_argument(
            '--max-ticks',
            type=int,
            default=0,
            help='Stop after this many sweeps (default: run until signalled)'
        )

    def handle(self, *args, **options):
        interval = options['interval']
        if interval is None:
            interval = getattr(settings, 'PUBLICATION_SWEEP_INTERVAL_SECONDS', 300)
        if interval <= 0:
            raise CommandError('--interval must be a positive number of seconds')
        max_ticks = options['max_ticks']

        self.stop_event = threading.Event()
        previous = self._install_signal_handlers()

        self.stdout.write(self.style.NOTICE(f'Publication scheduler started (every {interval}s)'))
        sweep = PublicationSweep(trigger='scheduler')
        ticks = 0
        try:
            while not self.stop_event.is_set():
                self.tick(sweep)
                ticks += 1
                if max_ticks and ticks >= max_ticks:
                    break
                self.stop_event.wait(interval)
        finally:
            self._restore_signal_handlers(previous)

        self.stdout.write(self.style.SUCCESS(f'Publication scheduler stopped after {ticks} sweep(s)'))

    def tick(self, sweep):
        try:
            result = sweep.run()
        except Exception as e:
            logger.error("Publication sweep failed: %s", e)
            self.stdout.write(self.style.ERROR(f'Sweep failed: {e}'))
            return None

        if result.published_count or result.failed:
            self.stdout.write(
                f'{result.started_at.isoformat()}: published {result.published_count}, '
                f'failed {len(result.failed)}'
            )
        return result

    def _handle_signal(self, signum, frame):
        logger.info("Received signal %s; stopping after the current sweep", signum)
        self.stop_event.set()

    def _install_signal_handlers(self):
        previous = {}
        if threading.current_thread() is not threading.main_thread():
            return previous
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, self._handle_signal)
        return previous

    def _restore_signal_handlers(self, previous):
        for signum, handler in previous.items():
            signal.signal(signum, handler)
