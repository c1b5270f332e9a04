import logging
import os

from collections import Counter

from django.conf import settings

from backend.utils import group_by_batches
from deposit.filepaths import FilePaths
from deposit.store import DepositStore

logger = logging.getLogger('plnstaging.' + __name__)


def remove_tree(path):
    """
    Removes a file, or a directory and everything below it, children
    first. A missing path is not an error.

    :returns: the number of files and directories removed
    """
    if not os.path.lexists(path):
        return 0
    if os.path.isfile(path) or os.path.islink(path):
        os.unlink(path)
        return 1
    removed = 0
    for dirpath, dirnames, filenames in os.walk(path, topdown=False):
        for filename in filenames:
            os.unlink(os.path.join(dirpath, filename))
            removed += 1
        for dirname in dirnames:
            subdir = os.path.join(dirpath, dirname)
            if os.path.islink(subdir):
                os.unlink(subdir)
            else:
                os.rmdir(subdir)
            removed += 1
    os.rmdir(path)
    return removed + 1


class CleanupSweeper(object):
    """
    Removes the files of the deposits the network has agreed to
    preserve.

    Without `force` nothing is removed: the paths that would be
    deleted are only logged.
    """

    def __init__(self, store=None, file_paths=None, batch_size=None):
        self.store = store or DepositStore()
        self.file_paths = file_paths or FilePaths()
        self.batch_size = batch_size or settings.PLN_BATCH_SIZE

    def clean(self, deposit, force=False):
        """
        Cleans one deposit.

        :returns: True if the deposit is now 'cleaned'
        """
        if deposit.state != 'agreement':
            return False
        paths = self.file_paths.all_paths(deposit)
        if not force:
            for path in paths:
                if os.path.lexists(path):
                    logger.info('Would remove %s', path)
            return False

        try:
            removed = sum(remove_tree(path) for path in paths)
        except OSError as e:
            logger.warning('Cannot clean %s: %s', deposit.deposit_uuid, e)
            deposit.add_error('cleanup: %s' % e)
            deposit.add_to_processing_log('cleanup failed: %s' % e)
            return False
        deposit.advance('cleaned', 'Removed %d files and directories' % removed)
        return True

    def run(self, force=False, limit=None):
        """
        Cleans all the deposits in 'agreement'.

        :returns: a :class:`~collections.Counter` with the number of
            deposits 'cleaned', 'failed' to clean and 'dry-run'
        """
        counts = Counter()
        ids = self.store.select_ids('agreement', limit=limit)
        if not ids:
            logger.info('No deposit to clean')
            return counts
        if not force:
            logger.info('Dry run: %d deposits would be cleaned', len(ids))

        for batch in group_by_batches(ids, self.batch_size):
            with self.store.batch():
                for deposit in self.store.load(batch):
                    if not force:
                        self.clean(deposit, force=False)
                        counts['dry-run'] += 1
                        continue
                    cleaned = self.clean(deposit, force=True)
                    if self.store.save(deposit) and cleaned:
                        counts['cleaned'] += 1
                    else:
                        counts['failed'] += 1
        logger.info('Cleanup: %s', ', '.join('%s %d' % item for item in sorted(counts.items())))
        return counts
