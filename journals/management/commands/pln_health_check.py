from django.core.management.base import BaseCommand

from journals.healthcheck import health_check


class Command(BaseCommand):
    help = 'Find journals which have gone silent and notify the staff.'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true',
                            help='Do not send notifications or update the journals.')
        parser.add_argument('--days', type=int, default=None,
                            help='Number of days of silence, PLN_DAYS_SILENT by default.')

    def handle(self, *args, **options):
        journals = health_check(days=options['days'], dry_run=options['dry_run'])
        for journal in journals:
            self.stdout.write('%s %s (last contact %s)' % (
                journal.uuid, journal.url, journal.contacted.date()))
