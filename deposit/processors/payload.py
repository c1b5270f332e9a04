import logging
import os
import zipfile
import zlib

from backend.utils import file_checksum
from deposit.processing import DepositProcessor
from deposit.processing import ProcessingError
from deposit.processing import RetryableError

logger = logging.getLogger('plnstaging.' + __name__)


def unsafe_member(name):
    """
    Would extracting this archive member write outside of the target
    directory?
    """
    normalized = name.replace('\\', '/')
    if normalized.startswith('/') or (len(normalized) > 1 and normalized[1] == ':'):
        return True
    return '..' in normalized.split('/')


class PayloadValidator(DepositProcessor):
    """
    Checks that the harvested file is a sound zip archive which still
    matches the checksum declared by the journal.
    """
    name = 'validate-payload'
    precondition = 'harvested'
    postcondition = 'payload-validated'

    def process(self, deposit):
        path = self.file_paths.harvest_file(deposit)
        if not os.path.isfile(path):
            raise ProcessingError('Harvested file %s is missing' % path)

        try:
            if not zipfile.is_zipfile(path):
                raise ProcessingError('%s is not a zip archive' % os.path.basename(path))
            with zipfile.ZipFile(path) as archive:
                names = archive.namelist()
                if not names:
                    raise ProcessingError('The archive is empty')
                for name in names:
                    if unsafe_member(name):
                        raise ProcessingError('Unsafe path in the archive: %s' % name)
                bad = archive.testzip()
                if bad is not None:
                    raise ProcessingError('CRC error on %s' % bad)
            self.log('Archive contains %d entries' % len(names))

            checksum = file_checksum(path, deposit.checksum_type)
        except (zipfile.BadZipFile, zlib.error) as e:
            raise ProcessingError('Corrupt archive: %s' % e)
        except ValueError as e:
            raise ProcessingError(str(e))
        except OSError as e:
            raise RetryableError('Cannot read %s: %s' % (path, e))

        if checksum != deposit.checksum_value:
            raise ProcessingError('%s checksum mismatch: expected %s, got %s' %
                                  (deposit.checksum_type, deposit.checksum_value, checksum))
