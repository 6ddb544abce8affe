# donations/management/commands/run_reconciler.py
import asyncio

from django.apps import apps
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = 'Reclaims donations from volunteers who accepted a pickup but never started it.'

    def add_arguments(self, parser):
        parser.add_argument('--once', action='store_true', help='Run a single sweep and exit.')
        parser.add_argument(
            '--interval',
            type=float,
            default=None,
            help='Minutes between sweeps (defaults to RECONCILER_INTERVAL_MINUTES).',
        )

    def handle(self, *args, **options):
        services = apps.get_app_config('donations').services

        if options['once']:
            report = services.reconciler.sweep()
            self.stdout.write(self.style.SUCCESS(f"Sweep finished: {report.to_dict()}"))
            return

        interval = options['interval']
        scheduler = services.scheduler(interval * 60 if interval else None)
        self.stdout.write(f"Running reconciler every {scheduler.interval_seconds / 60:g} minutes. Press Ctrl+C to stop.")
        try:
            asyncio.run(scheduler.run_forever())
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('Reconciler stopped.'))
