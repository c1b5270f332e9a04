from django.core.management.base import BaseCommand

from deposit.pipeline import PipelineRunner
from deposit.store import DepositStore
from deposit.utils import add_pipeline_arguments
from deposit.utils import format_counts
from deposit.utils import pipeline_options


class Command(BaseCommand):
    help = 'Run all the processing stages, in order: harvest, validate-payload, validate-bag, validate-xml, scan, reserialize, deposit, status.'

    def add_arguments(self, parser):
        add_pipeline_arguments(parser)

    def handle(self, *args, **options):
        kwargs = pipeline_options(options)
        runner = PipelineRunner(store=DepositStore(dry_run=options['dry_run']))
        results = runner.run_all(**kwargs)
        for stage, counts in results.items():
            self.stdout.write('%s: %s' % (stage, format_counts(counts)))
