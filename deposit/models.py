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

from django.conf import settings
from django.db import models
from django.db.models import Sum
from django.utils import timezone

from journals.models import Journal

logger = logging.getLogger('plnstaging.' + __name__)

#: The states of a deposit, in the order of the pipeline
PIPELINE_STATES = [
    'depositedByJournal', # the journal told us about the deposit
    'harvested', # we downloaded it
    'payload-validated',
    'bag-validated',
    'xml-validated',
    'scanned',
    'reserialized', # the package for the network is ready
    'deposited', # the network accepted the package
    'agreement', # the network confirmed the preservation
    'cleaned', # the local files have been removed
    ]

DEPOSIT_STATE_CHOICES = [(s, s) for s in PIPELINE_STATES] + [('failed', 'failed')]

#: Forward edges of the state machine. Any state of the pipeline which
#: is not final can also go to 'failed'.
TRANSITIONS = dict(zip(PIPELINE_STATES[:-1], PIPELINE_STATES[1:]))

DEFAULT_JOURNAL_VERSION = '2.4.8'


class InvalidTransition(ValueError):
    """
    Raised when a deposit is asked to move along an edge which does not
    exist in the state machine.
    """
    pass


def can_transition(from_state, to_state):
    """
    Is `from_state` → `to_state` an edge of the state machine?
    """
    if to_state == 'failed':
        return from_state in TRANSITIONS
    return TRANSITIONS.get(from_state) == to_state


class AuContainerManager(models.Manager):

    def open_container(self):
        """
        Returns the oldest open container, creating one if needed.
        """
        container = self.filter(open=True).order_by('id').first()
        if container is None:
            container = self.create()
        return container


class AuContainer(models.Model):
    """
    An archival unit: a group of deposits stored together in the
    preservation network. Once a container is full it is closed, and
    new deposits go to a new one.
    """
    open = models.BooleanField(default=True)
    created = models.DateTimeField(auto_now_add=True)

    objects = AuContainerManager()

    @property
    def size(self):
        """
        Total size of the packages in this container, in bytes.
        """
        return self.deposits.aggregate(total=Sum('package_size'))['total'] or 0

    def close_if_full(self, pending=0):
        """
        Closes the container if it has grown past ``PLN_MAX_AU_SIZE``.

        :param pending: bytes of packages added but not saved yet
        :returns: True if the container was closed
        """
        if self.open and self.size + pending > settings.PLN_MAX_AU_SIZE:
            self.open = False
            self.save(update_fields=['open'])
            logger.info('Closed %r', self)
            return True
        return False

    def __repr__(self):
        return '<AuContainer %s>' % self.id


class DepositQuerySet(models.QuerySet):

    def in_state(self, state):
        return self.filter(state=state)

    def for_journal(self, journal):
        return self.filter(journal=journal)

    def by_uuid(self, uuid):
        """
        Case-insensitive lookup of a deposit by its UUID.
        """
        return self.get(deposit_uuid=uuid.upper())


class Deposit(models.Model):
    """
    One deposit sent by a journal, followed from the notification to
    the confirmation of its preservation.

    The lifecycle fields (``state``, the logs and the counters) are only
    changed through the methods below, which enforce the state machine
    defined by :data:`TRANSITIONS`. Nothing is saved by those methods:
    the pipeline saves the deposits in batches.
    """
    journal = models.ForeignKey(Journal, related_name='deposits', on_delete=models.CASCADE)
    au_container = models.ForeignKey(AuContainer, related_name='deposits',
                                     null=True, blank=True, on_delete=models.SET_NULL)

    #: UUID sent by the journal, stored upper-cased
    deposit_uuid = models.CharField(max_length=36, unique=True)
    #: OJS version of the journal when it sent the deposit
    journal_version = models.CharField(max_length=32, default=DEFAULT_JOURNAL_VERSION)
    received = models.DateTimeField(auto_now_add=True)
    modified = models.DateTimeField(auto_now=True)

    #: 'add' or 'edit'
    action = models.CharField(max_length=32, default='add')
    volume = models.CharField(max_length=32, blank=True, default='')
    issue = models.CharField(max_length=32, blank=True, default='')
    pub_date = models.DateField(null=True, blank=True)
    file_type = models.CharField(max_length=64, blank=True, default='')
    #: Where we fetch the deposit from
    url = models.URLField(max_length=2048)
    #: Size declared by the journal, in kB
    size = models.BigIntegerField(default=0)
    checksum_type = models.CharField(max_length=24)
    checksum_value = models.CharField(max_length=128)
    license = models.JSONField(default=dict, blank=True)

    state = models.CharField(max_length=32, choices=DEPOSIT_STATE_CHOICES,
                             default='depositedByJournal', db_index=True)
    #: State the deposit was in when it failed
    failed_state = models.CharField(max_length=32, null=True, blank=True)
    error_log = models.JSONField(default=list, blank=True)
    processing_log = models.TextField(blank=True, default='')
    harvest_attempts = models.IntegerField(default=0)
    #: Attempts of the current stage (except harvest), reset on success
    retry_count = models.IntegerField(default=0)

    #: Description of the package we send to the network
    package_size = models.BigIntegerField(null=True, blank=True)
    package_checksum_type = models.CharField(max_length=24, null=True, blank=True)
    package_checksum_value = models.CharField(max_length=128, null=True, blank=True)

    #: State of the deposit as reported by the network
    pln_state = models.CharField(max_length=32, null=True, blank=True)
    deposit_date = models.DateTimeField(null=True, blank=True)
    #: URL of the SWORD deposit receipt
    deposit_receipt = models.URLField(max_length=2048, null=True, blank=True)

    objects = DepositQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['journal', 'state'], name='deposit_journal_state_idx'),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super(Deposit, cls).from_db(db, field_names, values)
        instance._stored_uuid = instance.__dict__.get('deposit_uuid')
        return instance

    def save(self, *args, **kwargs):
        self.normalize()
        stored_uuid = getattr(self, '_stored_uuid', None)
        if stored_uuid and stored_uuid != self.deposit_uuid:
            raise ValueError('The UUID of deposit %s cannot be changed' % stored_uuid)
        super(Deposit, self).save(*args, **kwargs)
        self._stored_uuid = self.deposit_uuid

    def normalize(self):
        """
        Puts identifiers and checksums in their canonical case.
        """
        if self.deposit_uuid:
            self.deposit_uuid = self.deposit_uuid.upper()
        if self.checksum_type:
            self.checksum_type = self.checksum_type.lower()
        if self.checksum_value:
            self.checksum_value = self.checksum_value.upper()
        if self.package_checksum_type:
            self.package_checksum_type = self.package_checksum_type.lower()
        if self.package_checksum_value:
            self.package_checksum_value = self.package_checksum_value.upper()

    ### Lifecycle ###

    def advance(self, state, message=None):
        """
        Moves the deposit to the next state of the pipeline and records
        it in the processing log.

        :raises InvalidTransition: if `state` does not follow the current one
        """
        if state == 'failed' or not can_transition(self.state, state):
            raise InvalidTransition('Cannot move deposit %s from %s to %s' %
                                    (self.deposit_uuid, self.state, state))
        previous = self.state
        self.state = state
        self.retry_count = 0
        entry = '%s → %s' % (previous, state)
        if message:
            entry += '\n' + message
        self.add_to_processing_log(entry)

    def fail(self, message):
        """
        Marks the deposit as permanently failed.
        """
        if not can_transition(self.state, 'failed'):
            raise InvalidTransition('Cannot fail deposit %s in state %s' %
                                    (self.deposit_uuid, self.state))
        self.failed_state = self.state
        self.state = 'failed'
        self.add_to_processing_log('%s → failed\n%s' % (self.failed_state, message))

    def add_error(self, message):
        self.error_log = list(self.error_log or []) + [message]

    def add_to_processing_log(self, content):
        """
        Appends a timestamped entry to the processing log.
        """
        self.processing_log = (self.processing_log or '') + \
            '%s\n%s\n\n' % (timezone.now().isoformat(), content)

    def add_license(self, key, value):
        """
        Adds one term of the license of the deposit. Empty terms are dropped.
        """
        value = (value or '').strip()
        if not value:
            return
        license = dict(self.license or {})
        license[key] = value
        self.license = license

    def get_error_log(self, delim=None):
        if delim is None:
            return list(self.error_log or [])
        return delim.join(self.error_log or [])

    def requeue(self, state, reason):
        """
        Puts the deposit back in a state of the pipeline so that it gets
        processed again. This is an explicit operator action: the error
        log is kept.
        """
        if state not in PIPELINE_STATES or state == 'cleaned':
            raise InvalidTransition('Cannot requeue deposit %s to %s' %
                                    (self.deposit_uuid, state))
        if self.state == 'cleaned' and state != 'depositedByJournal':
            raise InvalidTransition('Deposit %s has been cleaned, it can only be harvested again' %
                                    self.deposit_uuid)
        previous = self.state
        self.state = state
        self.failed_state = None
        self.retry_count = 0
        if state == 'depositedByJournal':
            self.harvest_attempts = 0
        self.add_to_processing_log('%s → %s (requeued)\n%s' % (previous, state, reason))

    def reset(self, state='depositedByJournal'):
        """
        Resets the deposit to a state of the pipeline, clearing its error
        log and attempt counters.
        """
        if state not in PIPELINE_STATES:
            raise InvalidTransition('Cannot reset deposit %s to %s' %
                                    (self.deposit_uuid, state))
        previous = self.state
        self.state = state
        self.failed_state = None
        self.error_log = []
        self.retry_count = 0
        self.harvest_attempts = 0
        self.add_to_processing_log('%s → %s (reset)' % (previous, state))

    def __str__(self):
        return self.deposit_uuid

    def __repr__(self):
        return '<Deposit %s (%s)>' % (self.deposit_uuid, self.state)
