import logging
import os
import shutil
import tempfile
import zipfile

import bagit

from deposit.filepaths import ensure_dir
from deposit.processing import DepositProcessor
from deposit.processing import ProcessingError
from deposit.processing import RetryableError

logger = logging.getLogger('plnstaging.' + __name__)

OJS_VERSION_TAG = 'PKP-PLN-OJS-Version'


def find_bag_root(directory):
    """
    Journals zip their bag either at the root of the archive or in a
    single top level directory.

    :returns: the directory holding ``bagit.txt``
    """
    if os.path.isfile(os.path.join(directory, 'bagit.txt')):
        return directory
    entries = [e for e in os.listdir(directory) if not e.startswith('__MACOSX')]
    if len(entries) == 1:
        candidate = os.path.join(directory, entries[0])
        if os.path.isfile(os.path.join(candidate, 'bagit.txt')):
            return candidate
    raise ProcessingError('No bag found in the archive')


def tag_value(info, tag):
    value = info.get(tag)
    if isinstance(value, list):
        value = value[0] if value else None
    return value


class BagValidator(DepositProcessor):
    """
    Extracts the harvested archive into the processing directory and
    validates it as a BagIt bag.
    """
    name = 'validate-bag'
    precondition = 'payload-validated'
    postcondition = 'bag-validated'

    def process(self, deposit):
        source = self.file_paths.harvest_file(deposit)
        target = self.file_paths.processing_bag(deposit)
        tmp = None
        try:
            tmp = tempfile.mkdtemp(dir=ensure_dir(self.file_paths.processing_dir(deposit)),
                                   prefix='.tmp-')
            with zipfile.ZipFile(source) as archive:
                archive.extractall(tmp)
            root = find_bag_root(tmp)

            bag = bagit.Bag(root)
            bag.validate()
            self.log('Bag is valid, %d payload files' % len(list(bag.payload_files())))

            version = tag_value(bag.info, OJS_VERSION_TAG)
            if version and version != deposit.journal_version:
                self.log('Bag declares OJS %s, the deposit was sent by OJS %s' %
                         (version, deposit.journal_version))

            if os.path.exists(target):
                shutil.rmtree(target)
            os.replace(root, target)
        except bagit.BagValidationError as e:
            details = '; '.join(str(d) for d in e.details) or e.message
            raise ProcessingError('Invalid bag: %s' % details)
        except bagit.BagError as e:
            raise ProcessingError('Invalid bag: %s' % e)
        except zipfile.BadZipFile as e:
            raise ProcessingError('Corrupt archive: %s' % e)
        except OSError as e:
            raise RetryableError('Cannot extract %s: %s' % (source, e))
        finally:
            if tmp:
                shutil.rmtree(tmp, ignore_errors=True)
