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



from datetime import timedelta

from django.db import models
from django.conf import settings
from django.utils import timezone


JOURNAL_STATUS_CHOICES = [
    ('new', 'New'), # the journal sent its first deposit
    ('healthy', 'Healthy'), # we heard from the journal recently
    ('unhealthy', 'Unhealthy'), # the journal has gone silent,
    # and the staff has been notified
    ('ping-error', 'Ping error'), # the journal gateway did not answer
    ]


class JournalQuerySet(models.QuerySet):

    def by_uuid(self, uuid):
        """
        Case-insensitive lookup of a journal by its UUID.
        """
        return self.get(uuid=uuid.upper())

    def silent(self, days):
        """
        Journals which did not contact us during the last `days` days.
        Journals we already notified the staff about since then are
        left out.
        """
        cutoff = timezone.now() - timedelta(days=days)
        return self.filter(contacted__lt=cutoff).exclude(
            notified__gte=cutoff).order_by('contacted')

    def to_ping(self):
        """
        Journals which are neither whitelisted nor blacklisted.
        """
        listed = list(Whitelist.objects.values_list('uuid', flat=True)) + \
            list(Blacklist.objects.values_list('uuid', flat=True))
        return self.exclude(uuid__in=listed).order_by('id')


class Journal(models.Model):
    """
    A journal running the PLN plugin, which sends us its deposits.

    The journal is identified by the UUID its plugin generated, stored
    upper-cased. The other fields are updated each time the journal
    sends a deposit or answers a ping.
    """
    #: UUID of the journal, as generated by the journal
    uuid = models.CharField(max_length=36, unique=True)
    #: Base URL of the journal
    url = models.URLField(max_length=512)
    title = models.CharField(max_length=512, null=True, blank=True)
    issn = models.CharField(max_length=9, null=True, blank=True)
    #: Contact email of the journal manager
    email = models.EmailField(max_length=512, null=True, blank=True)
    publisher_name = models.CharField(max_length=512, null=True, blank=True)
    publisher_url = models.URLField(max_length=512, null=True, blank=True)

    status = models.CharField(max_length=32, choices=JOURNAL_STATUS_CHOICES,
                              default='new')
    #: Last time the journal contacted us, or answered a ping
    contacted = models.DateTimeField(default=timezone.now)
    #: Last time we notified the staff that this journal was silent
    notified = models.DateTimeField(null=True, blank=True)

    #: Versions reported by the journal gateway
    ojs_version = models.CharField(max_length=32, null=True, blank=True)
    plugin_version = models.CharField(max_length=32, null=True, blank=True)
    terms_accepted = models.BooleanField(default=False)

    created = models.DateTimeField(auto_now_add=True)

    objects = JournalQuerySet.as_manager()

    def save(self, *args, **kwargs):
        self.uuid = self.uuid.upper()
        super(Journal, self).save(*args, **kwargs)

    @property
    def gateway_url(self):
        """
        URL of the PLN plugin gateway of this journal.
        """
        return self.url.rstrip('/') + settings.PLN_GATEWAY_PATH

    def mark_contacted(self):
        self.contacted = timezone.now()
        self.status = 'healthy'

    def __str__(self):
        if self.title:
            return self.title
        return self.uuid

    def __repr__(self):
        return '<Journal %s>' % self.uuid


class ListedJournal(models.Model):
    """
    Abstract model for the lists of journal UUIDs kept by the staff.
    """
    uuid = models.CharField(max_length=36, unique=True)
    comment = models.TextField(blank=True, default='')
    created = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.uuid = self.uuid.upper()
        super(ListedJournal, self).save(*args, **kwargs)

    def __str__(self):
        return self.uuid


class Whitelist(ListedJournal):
    """
    Journals whose deposits are accepted without further checks.
    """

    @classmethod
    def contains(cls, journal):
        return cls.objects.filter(uuid=journal.uuid.upper()).exists()


class Blacklist(ListedJournal):
    """
    Journals we refuse to ping or to accept deposits from.
    """

    @classmethod
    def contains(cls, journal):
        return cls.objects.filter(uuid=journal.uuid.upper()).exists()
