"""
Management command for running one publication sweep from the CLI.

Cron-friendly: exits non-zero when the sweep itself fails.

Usage:
    python manage.py publish_scheduled
    python manage.py publish_scheduled --json
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.articles.services import PublicationSweep


class Command(BaseCommand):
    help = 'Publish every scheduled article whose publication time has passed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--json',
            action='store_true',
            help='Print the sweep result as JSON'
        )

    def handle(self, *args, **options):
        try:
            result = PublicationSweep(trigger='command').run()
        except Exception as e:
            raise CommandError(f'Publication sweep failed: {e}')

        if options['json']:
            self.stdout.write(json.dumps(result.to_dict(), indent=2))
            return

        if not result.published_count:
            self.stdout.write('No scheduled articles to publish')
        else:
            self.stdout.write(self.style.SUCCESS(f'Published {result.published_count} article(s):'))
            for item in result.published:
                self.stdout.write(f"  - {item['title']} ({item['slug']})")

        if result.skipped:
            self.stdout.write(f'Skipped {len(result.skipped)} article(s) already published elsewhere')
        if result.failed:
            self.stdout.write(self.style.WARNING(f'Failed to publish {len(result.failed)} article(s):'))
            for item in result.failed:
                self.stdout.write(f"  - {item['id']}: {item['error']}")
