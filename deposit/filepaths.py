import os
import re

from django.conf import settings

# Journal and deposit UUIDs are used as path components.
safe_identifier_re = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')


def ensure_dir(path):
    """
    Creates a directory and its parents if they do not exist yet.

    :returns: the path
    """
    os.makedirs(path, exist_ok=True)
    return path


class FilePaths(object):
    """
    Where the files of a deposit live on disk.

    Every path is derived from the UUIDs of the deposit and of its
    journal, below ``PLN_DATA_DIR``::

        <data>/<harvest>/<JOURNAL>/<DEPOSIT>.zip     the downloaded file
        <data>/<processing>/<JOURNAL>/<DEPOSIT>      the extracted bag
        <data>/<staging>/<JOURNAL>/<DEPOSIT>.zip     the package for the network

    Computing a path never touches the disk. Use :func:`ensure_dir` on
    :meth:`harvest_dir` and friends before writing.
    """

    def __init__(self, root=None, harvest_dir=None, processing_dir=None,
                 staging_dir=None):
        self.root = os.path.abspath(root or settings.PLN_DATA_DIR)
        self.harvest_root = os.path.join(
            self.root, harvest_dir or settings.PLN_HARVEST_DIR)
        self.processing_root = os.path.join(
            self.root, processing_dir or settings.PLN_PROCESSING_DIR)
        self.staging_root = os.path.join(
            self.root, staging_dir or settings.PLN_STAGING_DIR)

    @staticmethod
    def _component(identifier):
        """
        Upper-cases an identifier and checks that it is safe to use it
        as a file name.

        :raises ValueError: if the identifier could escape its directory
        """
        identifier = (identifier or '').upper()
        if not safe_identifier_re.match(identifier) or '..' in identifier:
            raise ValueError('Unsafe identifier for a path: %r' % identifier)
        return identifier

    def _journal_dir(self, root, deposit):
        return os.path.join(root, self._component(deposit.journal.uuid))

    def harvest_dir(self, deposit):
        return self._journal_dir(self.harvest_root, deposit)

    def processing_dir(self, deposit):
        return self._journal_dir(self.processing_root, deposit)

    def staging_dir(self, deposit):
        return self._journal_dir(self.staging_root, deposit)

    def harvest_file(self, deposit):
        return os.path.join(self.harvest_dir(deposit),
                            self._component(deposit.deposit_uuid) + '.zip')

    def processing_bag(self, deposit):
        return os.path.join(self.processing_dir(deposit),
                            self._component(deposit.deposit_uuid))

    def staging_bag(self, deposit):
        return os.path.join(self.staging_dir(deposit),
                            self._component(deposit.deposit_uuid) + '.zip')

    def all_paths(self, deposit):
        """
        The three locations of a deposit, in the order they are created.
        """
        return [self.harvest_file(deposit),
                self.processing_bag(deposit),
                self.staging_bag(deposit)]
