from django.core.management.base import BaseCommand

from journals.ping import ping_journals


class Command(BaseCommand):
    help = 'Ping the journals and whitelist those running a sufficiently recent version of OJS.'

    def add_arguments(self, parser):
        parser.add_argument('min_version', nargs='?', default=None,
                            help='Minimum OJS version required to whitelist a journal.')
        parser.add_argument('--dry-run', action='store_true',
                            help='Do not update the whitelist, report only.')
        parser.add_argument('--all', action='store_true', dest='all_journals',
                            help='Ping all journals, including whitelisted and blacklisted ones.')

    def handle(self, *args, **options):
        results = ping_journals(min_version=options['min_version'],
                                dry_run=options['dry_run'],
                                all_journals=options['all_journals'])
        for journal, result in results:
            if result.has_error:
                self.stdout.write('%s %s' % (journal.uuid, result.error))
            else:
                self.stdout.write('%s OJS %s' % (journal.uuid, result.ojs_version))
