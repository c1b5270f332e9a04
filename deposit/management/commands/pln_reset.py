from django.core.management.base import BaseCommand
from django.core.management.base import CommandError
from django.db import transaction

from deposit.models import PIPELINE_STATES
from deposit.models import Deposit


class Command(BaseCommand):
    help = 'Reset deposits to a state of the pipeline, clearing their error logs.'

    def add_arguments(self, parser):
        parser.add_argument('uuids', nargs='+', metavar='uuid',
                            help='The deposits to reset.')
        parser.add_argument('--state', default='depositedByJournal',
                            choices=PIPELINE_STATES,
                            help='The state to reset the deposits to.')

    @transaction.atomic
    def handle(self, *args, **options):
        for uuid in options['uuids']:
            try:
                deposit = Deposit.objects.by_uuid(uuid)
            except Deposit.DoesNotExist:
                raise CommandError('Unknown deposit %s' % uuid)
            previous = deposit.state
            deposit.reset(options['state'])
            deposit.save()
            self.stdout.write('%s: %s → %s' % (deposit.deposit_uuid, previous, deposit.state))
