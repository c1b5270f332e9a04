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



import logging
import os
import tempfile
import traceback

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction

from deposit.filepaths import FilePaths

logger = logging.getLogger('plnstaging.' + __name__)

# Outcomes of a processor run
ADVANCE = 'advance'
RETRY = 'retry'
FAIL = 'fail'
PENDING = 'pending'
SKIPPED = 'skipped'

OUTCOMES = [ADVANCE, RETRY, FAIL, PENDING, SKIPPED]


class ProcessingError(Exception):
    """
    The exception to raise when a deposit cannot go further:
    its content is wrong and trying again will not change that.
    """
    pass


class RetryableError(ProcessingError):
    """
    The exception to raise when something went wrong while reading or
    writing the deposit (network, disk) and the next run might succeed.
    """
    pass


class ProcessingResult(object):
    """
    Small object describing what a processor did with a deposit.

    outcome should be one of OUTCOMES
    """

    def __init__(self, outcome, message=None):
        if outcome not in OUTCOMES:
            raise ValueError('invalid outcome '+str(outcome))
        self.outcome = outcome
        self.message = message

    def __repr__(self):
        return '<ProcessingResult %s>' % self.outcome


class DepositProcessor(object):
    """
    One stage of the pipeline. Actual stages should inherit from this
    class and implement :meth:`process`.

    A processor only acts on deposits whose state is its
    ``precondition``. It moves them to its ``postcondition`` when
    :meth:`process` returns, and records the errors it raises:
    :class:`RetryableError` leaves the deposit where it is until the
    attempts are exhausted, :class:`ProcessingError` fails it.
    """

    #: Name of the stage, as used on the command line
    name = None
    #: State of the deposits this processor works on
    precondition = None
    #: State of the deposits once processed
    postcondition = None
    #: Setting holding the maximum number of attempts, None for no limit
    max_attempts_setting = 'PLN_MAX_ATTEMPTS'
    #: Record a failure again when it repeats the previous one
    log_repeated_errors = True

    def __init__(self, file_paths=None):
        self.file_paths = file_paths or FilePaths()
        self._logs = ''

    def __repr__(self):
        return self.__class__.__name__

    @property
    def max_attempts(self):
        if self.max_attempts_setting is None:
            return None
        return getattr(settings, self.max_attempts_setting)

    def prepare(self):
        """
        Called once before the first deposit is processed. Errors raised
        here are configuration errors: they stop the run.
        """
        pass

    def eligible(self, deposit):
        return deposit.state == self.precondition

    def process(self, deposit):
        """
        Does the work of the stage on one deposit.
        This is expected to raise ProcessingError or RetryableError if
        something goes wrong.

        :returns: None, or a :class:`ProcessingResult` when the deposit
            should not advance (see the status poller)
        """
        raise NotImplementedError(
            'process should be implemented in the DepositProcessor subclass.')

    def count_attempt(self, deposit):
        """
        Records a failed attempt and returns the number of attempts so far.
        """
        deposit.retry_count += 1
        return deposit.retry_count

    def run(self, deposit, force=False):
        """
        Wrapper of the process method (that should not need to be
        reimplemented). It catches the errors raised while processing
        and records them in the deposit.

        :param force: process the deposit even if it is not in the
            precondition state, putting it back there first
        :returns: a :class:`ProcessingResult`
        """
        if not self.eligible(deposit):
            if not force:
                return ProcessingResult(SKIPPED)
            deposit.requeue(self.precondition, 'Forced %s' % self.name)

        self._logs = ''
        try:
            result = self._process_in_savepoint(deposit)
        except ImproperlyConfigured:
            raise
        except RetryableError as e:
            return self._retry(deposit, str(e))
        except ProcessingError as e:
            return self._fail(deposit, str(e))
        except Exception as e:
            logger.exception('Unexpected error while processing %s in %s',
                             deposit.deposit_uuid, self)
            self.log("Caught exception:")
            self.log(traceback.format_exc())
            return self._retry(deposit, '%s: %s' % (type(e).__name__, e))

        if isinstance(result, ProcessingResult):
            return result

        deposit.advance(self.postcondition, self._logs.strip() or None)
        logger.debug('%s: %s → %s', deposit.deposit_uuid,
                     self.precondition, self.postcondition)
        return ProcessingResult(ADVANCE)

    def _process_in_savepoint(self, deposit):
        """
        Runs :meth:`process` in a savepoint. If it raises, what it wrote
        to the database is rolled back, and so is the link of the deposit
        to its archival unit.
        """
        container = deposit.au_container
        try:
            with transaction.atomic():
                return self.process(deposit)
        except Exception:
            deposit.au_container = container
            raise

    def _retry(self, deposit, message):
        attempts = self.count_attempt(deposit)
        error = '%s: %s' % (self.name, message)
        max_attempts = self.max_attempts
        if max_attempts is not None and attempts >= max_attempts:
            deposit.add_error(error)
            return self._fail(deposit, '%s (giving up after %d attempts)' %
                              (message, attempts), log_error=False)
        if not self.log_repeated_errors and deposit.get_error_log()[-1:] == [error]:
            logger.info('%s: %s still failing (attempt %d): %s',
                        deposit.deposit_uuid, self.name, attempts, message)
            return ProcessingResult(RETRY, message)
        deposit.add_error(error)
        logger.info('%s: %s failed (attempt %d), will retry: %s',
                    deposit.deposit_uuid, self.name, attempts, message)
        entry = '%s failed (attempt %d): %s' % (self.name, attempts, message)
        if self._logs:
            entry += '\n' + self._logs.strip()
        deposit.add_to_processing_log(entry)
        return ProcessingResult(RETRY, message)

    def _fail(self, deposit, message, log_error=True):
        if log_error:
            deposit.add_error('%s: %s' % (self.name, message))
        logger.warning('%s: %s failed: %s', deposit.deposit_uuid, self.name, message)
        entry = '%s failed: %s' % (self.name, message)
        if self._logs:
            entry += '\n' + self._logs.strip()
        deposit.fail(entry)
        return ProcessingResult(FAIL, message)

    ### Logging utilities
    # These lines are saved in the processing log of the deposit,
    # so use them to explain what happened to a particular deposit.

    def log(self, line):
        """
        Logs a line in the processor log.
        """
        self._logs += line+'\n'


def temporary_path(directory, suffix=''):
    """
    Reserves a fresh file name in `directory`, so that a file can be
    written there and then moved into place with :func:`os.replace`.
    """
    fd, path = tempfile.mkstemp(dir=directory, prefix='.tmp-', suffix=suffix)
    os.close(fd)
    return path


def remove_quietly(path):
    """
    Removes a temporary file if it is still there.
    """
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
