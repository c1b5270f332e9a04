from django.core.management.base import BaseCommand

from deposit.pipeline import STAGE_NAMES
from deposit.pipeline import PipelineRunner
from deposit.store import DepositStore
from deposit.utils import add_pipeline_arguments
from deposit.utils import format_counts
from deposit.utils import pipeline_options


class Command(BaseCommand):
    help = 'Run one processing stage over the deposits waiting for it.'

    def add_arguments(self, parser):
        parser.add_argument('stage', choices=STAGE_NAMES,
                            help='The stage to run.')
        add_pipeline_arguments(parser)

    def handle(self, *args, **options):
        kwargs = pipeline_options(options)
        runner = PipelineRunner(store=DepositStore(dry_run=options['dry_run']))
        counts = runner.run_stage(options['stage'], **kwargs)
        self.stdout.write('%s: %s' % (options['stage'], format_counts(counts)))
