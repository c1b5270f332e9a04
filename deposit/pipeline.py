# -*- encoding: utf-8 -*-

# PLN Staging: preservation network staging server
# Copyright (C) 2014 Antonin Delpeuch
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; either version 2
# of the License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.
#

"""
The processing pipeline: the fixed list of stages a deposit goes
through, and the runner which applies them to the deposits.
"""

import logging

from collections import Counter
from collections import OrderedDict
from collections import namedtuple

from django.conf import settings

from backend.utils import group_by_batches
from backend.utils import with_speed_report
from deposit.filepaths import FilePaths
from deposit.models import Deposit
from deposit.models import InvalidTransition
from deposit.processing import RETRY
from deposit.processing import SKIPPED
from deposit.processors.bag import BagValidator
from deposit.processors.depositor import Depositor
from deposit.processors.harvest import Harvester
from deposit.processors.payload import PayloadValidator
from deposit.processors.reserialize import Reserializer
from deposit.processors.scan import Scanner
from deposit.processors.status import StatusPoller
from deposit.processors.xmlvalidate import XmlValidator
from deposit.store import DepositStore

logger = logging.getLogger('plnstaging.' + __name__)


Stage = namedtuple('Stage', ['name', 'processor_class'])

#: The stages, in the order they are run
PIPELINE = (
    Stage('harvest', Harvester),
    Stage('validate-payload', PayloadValidator),
    Stage('validate-bag', BagValidator),
    Stage('validate-xml', XmlValidator),
    Stage('scan', Scanner),
    Stage('reserialize', Reserializer),
    Stage('deposit', Depositor),
    Stage('status', StatusPoller),
)

STAGE_NAMES = [stage.name for stage in PIPELINE]


def get_stage(name):
    """
    :raises KeyError: if there is no stage with that name
    """
    for stage in PIPELINE:
        if stage.name == name:
            return stage
    raise KeyError('Unknown stage %s, expected one of %s' % (name, ', '.join(STAGE_NAMES)))


class PipelineRunner(object):
    """
    Runs the processors of the pipeline over the deposits.

    Deposits are loaded and saved by batches of `batch_size`: each batch
    is committed on its own, so an interrupted run keeps the work of the
    batches it finished, and the others are picked up again next time.

    :param store: the :class:`~deposit.store.DepositStore` used to load
        and save deposits
    :param file_paths: the :class:`~deposit.filepaths.FilePaths` given
        to the processors
    """

    def __init__(self, store=None, file_paths=None, batch_size=None):
        self.store = store or DepositStore()
        self.file_paths = file_paths or FilePaths()
        self.batch_size = batch_size or settings.PLN_BATCH_SIZE

    def make_processor(self, stage):
        return stage.processor_class(file_paths=self.file_paths)

    def requeue_failed(self, processor, journal=None, uuids=None):
        """
        Puts the deposits which failed at the stage of `processor` back
        in its precondition.

        :returns: the number of deposits requeued
        """
        qs = Deposit.objects.in_state('failed').filter(
            failed_state=processor.precondition)
        if journal is not None:
            qs = qs.for_journal(journal)
        if uuids:
            qs = qs.filter(deposit_uuid__in=[u.upper() for u in uuids])
        ids = list(qs.order_by('id').values_list('id', flat=True))
        for batch in group_by_batches(ids, self.batch_size):
            with self.store.batch():
                for deposit in self.store.load(batch):
                    deposit.requeue(processor.precondition,
                                    'Retrying %s' % processor.name)
                    self.store.save(deposit)
        if ids:
            logger.info('Requeued %d failed deposits for %s', len(ids), processor.name)
        return len(ids)

    def select(self, processor, limit=None, force=False, journal=None, uuids=None):
        """
        Ids of the deposits to process at one stage.
        """
        if force and uuids:
            deposits = self.store.find_by_uuids(uuids)
            if journal is not None:
                deposits = [d for d in deposits if d.journal_id == journal.id]
            ids = [d.id for d in deposits]
            return ids[:limit] if limit is not None else ids
        return self.store.select_ids(processor.precondition, journal=journal,
                                     uuids=uuids, limit=limit)

    def run_stage(self, stage, limit=None, force=False, retry=False,
                  journal=None, uuids=None):
        """
        Runs one stage over the deposits waiting for it.

        :param stage: a :class:`Stage` or the name of one
        :param limit: process at most that many deposits
        :param force: process the deposits named by `uuids` whatever
            their state, putting them back at this stage first
        :param retry: first requeue the deposits which failed at this stage
        :param journal: only process the deposits of this journal
        :param uuids: only process these deposits
        :returns: a :class:`~collections.Counter` of the outcomes
        """
        if not isinstance(stage, Stage):
            stage = get_stage(stage)
        processor = self.make_processor(stage)
        counts = Counter()

        if retry and not self.store.dry_run:
            self.requeue_failed(processor, journal=journal, uuids=uuids)

        ids = self.select(processor, limit=limit, force=force,
                          journal=journal, uuids=uuids)
        if not ids:
            logger.info('%s: no deposit to process', stage.name)
            return counts

        logger.info('%s: processing %d deposits', stage.name, len(ids))
        prepared = False
        batches = group_by_batches(ids, self.batch_size)
        for batch in with_speed_report(batches, name=stage.name):
            with self.store.batch():
                for deposit in self.store.load(batch):
                    if not force and not processor.eligible(deposit):
                        counts[SKIPPED] += 1
                        continue
                    if not prepared:
                        processor.prepare()
                        prepared = True
                    try:
                        result = processor.run(deposit, force=force)
                    except InvalidTransition as e:
                        logger.warning('%s: %s', stage.name, e)
                        counts[SKIPPED] += 1
                        continue
                    if result.outcome == SKIPPED:
                        counts[SKIPPED] += 1
                    elif self.store.save(deposit):
                        counts[result.outcome] += 1
                    else:
                        # the database refused the deposit, it stays where it was
                        counts[RETRY] += 1

        logger.info('%s: %s', stage.name,
                    ', '.join('%s %d' % item for item in sorted(counts.items())))
        return counts

    def run_all(self, limit=None, force=False, retry=False, journal=None, uuids=None):
        """
        Runs every stage in order, each one over all the deposits
        waiting for it before the next stage starts.

        `force` only applies to the first stage: the named deposits
        start over from the beginning and then follow the pipeline.

        :returns: an ordered dict from stage names to outcome counters
        """
        results = OrderedDict()
        for idx, stage in enumerate(PIPELINE):
            results[stage.name] = self.run_stage(
                stage, limit=limit, force=force and idx == 0, retry=retry,
                journal=journal, uuids=uuids)
        return results
