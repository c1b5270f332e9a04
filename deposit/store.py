import gc
import logging

from contextlib import contextmanager

from django.db import DatabaseError
from django.db import transaction

from deposit.models import Deposit

logger = logging.getLogger('plnstaging.' + __name__)


class DepositStore(object):
    """
    Access to the persisted deposits, as used by the pipeline.

    Deposits are loaded and saved by batches: each batch is one
    transaction, so a crash in the middle of a batch leaves the deposits
    of that batch as they were before it started.

    :param dry_run: roll back every batch instead of committing it
    """

    def __init__(self, dry_run=False):
        self.dry_run = dry_run

    def select_ids(self, state, journal=None, uuids=None, limit=None):
        """
        Ids of the deposits in a given state, oldest first.

        :param journal: only the deposits of this journal
        :param uuids: only the deposits with these UUIDs (any case)
        :param limit: at most that many ids
        """
        qs = Deposit.objects.in_state(state)
        if journal is not None:
            qs = qs.for_journal(journal)
        if uuids:
            qs = qs.filter(deposit_uuid__in=[u.upper() for u in uuids])
        ids = qs.order_by('id').values_list('id', flat=True)
        if limit is not None:
            ids = ids[:limit]
        return list(ids)

    def find_by_uuids(self, uuids):
        """
        The deposits with the given UUIDs. Unknown UUIDs are logged.
        """
        uuids = [u.upper() for u in uuids]
        deposits = list(Deposit.objects.filter(deposit_uuid__in=uuids)
                        .select_related('journal').order_by('id'))
        missing = set(uuids) - set(d.deposit_uuid for d in deposits)
        for uuid in sorted(missing):
            logger.warning('No deposit with UUID %s', uuid)
        return deposits

    def load(self, ids):
        """
        Loads a batch of deposits, in the order of `ids`.
        """
        by_id = Deposit.objects.select_related(
            'journal', 'au_container').in_bulk(ids)
        return [by_id[i] for i in ids if i in by_id]

    @contextmanager
    def batch(self):
        """
        Context manager wrapping one batch in a transaction. Memory is
        reclaimed once the batch is over.
        """
        try:
            with transaction.atomic():
                yield self
                if self.dry_run:
                    transaction.set_rollback(True)
        finally:
            gc.collect()

    def save(self, deposit):
        """
        Saves one deposit in its own savepoint, so that the database
        refusing it does not abort the rest of the batch. The error is
        then recorded on a fresh copy of the deposit.

        :returns: True if the deposit was saved as it was
        """
        try:
            with transaction.atomic():
                deposit.save()
            return True
        except DatabaseError as e:
            logger.exception('Cannot save deposit %s', deposit.deposit_uuid)
            message = '%s: %s' % (type(e).__name__, e)

        try:
            with transaction.atomic():
                deposit.refresh_from_db()
                deposit.add_error('database: %s' % message)
                deposit.add_to_processing_log('Changes not saved\n%s' % message)
                deposit.save()
        except DatabaseError:
            logger.exception('Cannot record the error on deposit %s', deposit.deposit_uuid)
        return False
