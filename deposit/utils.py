from django.core.management.base import CommandError

from journals.models import Journal


def add_pipeline_arguments(parser):
    """
    Adds the options shared by the commands running the pipeline.
    """
    parser.add_argument('uuids', nargs='*', metavar='uuid',
                        help='Only process the deposits with these UUIDs.')
    parser.add_argument('--force', action='store_true',
                        help='Process the named deposits whatever their state.')
    parser.add_argument('--retry', action='store_true',
                        help='Retry the deposits which failed at this stage.')
    parser.add_argument('--dry-run', action='store_true',
                        help='Do not save anything to the database.')
    parser.add_argument('--limit', type=int, default=None,
                        help='Process at most that many deposits per stage.')
    parser.add_argument('--journal', default=None, metavar='UUID',
                        help='Only process the deposits of this journal.')


def pipeline_options(options):
    """
    Turns the parsed command line options into keyword arguments
    for :class:`~deposit.pipeline.PipelineRunner`.
    """
    if options['force'] and not options['uuids']:
        raise CommandError('--force needs the UUIDs of the deposits to process')
    journal = None
    if options['journal']:
        try:
            journal = Journal.objects.by_uuid(options['journal'])
        except Journal.DoesNotExist:
            raise CommandError('Unknown journal %s' % options['journal'])
    return {
        'limit': options['limit'],
        'force': options['force'],
        'retry': options['retry'],
        'journal': journal,
        'uuids': options['uuids'] or None,
    }


def format_counts(counts):
    if not counts:
        return 'nothing to do'
    return ', '.join('%s %d' % item for item in sorted(counts.items()))
