import logging
import os

import requests
import requests.exceptions

from django.conf import settings

from backend.utils import new_hash
from deposit.filepaths import ensure_dir
from deposit.processing import DepositProcessor
from deposit.processing import ProcessingError
from deposit.processing import RetryableError
from deposit.processing import remove_quietly
from deposit.processing import temporary_path

logger = logging.getLogger('plnstaging.' + __name__)

CHUNK_SIZE = 64 * 1024


class Harvester(DepositProcessor):
    """
    Downloads the deposits from the journals.

    The download is written to a temporary file next to the harvest path
    while its checksum is computed, and only moved into place once its
    size and checksum match what the journal declared. Mismatches are
    retried: the journal might still be generating the deposit.
    """
    name = 'harvest'
    precondition = 'depositedByJournal'
    postcondition = 'harvested'
    max_attempts_setting = 'PLN_MAX_HARVEST_ATTEMPTS'

    def count_attempt(self, deposit):
        # harvest_attempts is incremented by every attempt, failed or not
        return deposit.harvest_attempts

    def check_size(self, deposit, actual):
        """
        Journals declare the size of their deposits in kB, rounded.
        We accept a download that differs by at most one kB or by
        ``PLN_HARVEST_SIZE_TOLERANCE`` of the declared size.
        """
        if not deposit.size:
            return
        expected = deposit.size * 1000
        tolerance = max(expected * settings.PLN_HARVEST_SIZE_TOLERANCE, 1000)
        if abs(actual - expected) > tolerance:
            raise RetryableError(
                'Expected about %d bytes, downloaded %d bytes' % (expected, actual))

    def fetch(self, deposit, target):
        """
        Streams the deposit to `target`.

        :returns: the number of bytes written and the hexadecimal checksum
        """
        try:
            h = new_hash(deposit.checksum_type)
        except ValueError as e:
            raise ProcessingError(str(e))

        try:
            r = requests.get(deposit.url, stream=True,
                             timeout=settings.PLN_HTTP_TIMEOUT,
                             headers={'User-Agent': settings.PLN_USER_AGENT})
        except requests.exceptions.RequestException as e:
            raise RetryableError('Unable to fetch %s: %s' % (deposit.url, e))

        with r:
            self.log('--- Request to %s' % deposit.url)
            self.log('Status code: %d (expected 200)' % r.status_code)
            if r.status_code != 200:
                raise RetryableError('HTTP %d from %s' % (r.status_code, deposit.url))
            if not deposit.file_type:
                deposit.file_type = r.headers.get('Content-Type', '').split(';')[0].strip()

            size = 0
            with open(target, 'wb') as f:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
                    h.update(chunk)
                    size += len(chunk)
        return size, h.hexdigest().upper()

    def process(self, deposit):
        deposit.harvest_attempts += 1
        path = self.file_paths.harvest_file(deposit)
        tmp = None
        try:
            tmp = temporary_path(ensure_dir(self.file_paths.harvest_dir(deposit)), '.zip')
            size, checksum = self.fetch(deposit, tmp)
            self.check_size(deposit, size)
            if checksum != deposit.checksum_value:
                raise RetryableError('%s checksum mismatch: expected %s, got %s' %
                                     (deposit.checksum_type, deposit.checksum_value, checksum))
            os.replace(tmp, path)
        except OSError as e:
            raise RetryableError('Error while downloading %s: %s' % (deposit.url, e))
        finally:
            if tmp:
                remove_quietly(tmp)
        self.log('Downloaded %d bytes to %s' % (size, path))
