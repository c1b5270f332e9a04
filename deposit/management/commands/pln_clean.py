from django.core.management.base import BaseCommand

from deposit.cleanup import CleanupSweeper
from deposit.utils import format_counts


class Command(BaseCommand):
    help = 'Remove the files of the deposits the network has agreed to preserve. Nothing is removed without --force.'

    def add_arguments(self, parser):
        parser.add_argument('--force', action='store_true',
                            help='Really remove the files.')
        parser.add_argument('--limit', type=int, default=None,
                            help='Clean at most that many deposits.')

    def handle(self, *args, **options):
        counts = CleanupSweeper().run(force=options['force'], limit=options['limit'])
        if not options['force']:
            self.stdout.write('Dry run, use --force to remove the files.')
        self.stdout.write('cleanup: %s' % format_counts(counts))
