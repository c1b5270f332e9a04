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

import requests
import requests.exceptions
from lxml import etree

from django.conf import settings

from backend.utils import version_tuple
from journals.models import Blacklist
from journals.models import Journal
from journals.models import Whitelist

logger = logging.getLogger('plnstaging.' + __name__)


class PingResult(object):
    """
    What a journal gateway told us about the journal.
    """

    def __init__(self, status_code=None, ojs_version=None,
                 plugin_version=None, terms_accepted=False, title=None,
                 error=None):
        self.status_code = status_code
        self.ojs_version = ojs_version
        self.plugin_version = plugin_version
        self.terms_accepted = terms_accepted
        self.title = title
        self.error = error

    @property
    def has_error(self):
        return self.error is not None

    def __repr__(self):
        if self.has_error:
            return '<PingResult error: %s>' % self.error
        return '<PingResult OJS %s>' % self.ojs_version


class Ping(object):
    """
    Fetches the PLN gateway page of journals and records what it says.
    """

    def __init__(self, timeout=None, user_agent=None):
        self.timeout = timeout or settings.PLN_HTTP_TIMEOUT
        self.user_agent = user_agent or settings.PLN_USER_AGENT

    def fetch(self, journal):
        """
        Fetches and parses the gateway page of a journal.

        :returns: a :class:`PingResult`, with its ``error`` set if the
            gateway could not be reached or returned something we do not
            understand.
        """
        url = journal.gateway_url
        try:
            r = requests.get(url, timeout=self.timeout,
                             headers={'User-Agent': self.user_agent})
        except requests.exceptions.RequestException as e:
            return PingResult(error='Unable to reach %s: %s' % (url, e))

        if r.status_code != 200:
            return PingResult(
                status_code=r.status_code,
                error='HTTP %d from %s' % (r.status_code, url))

        return self.parse(r.content, status_code=r.status_code)

    @staticmethod
    def parse(content, status_code=200):
        """
        Parses the XML document served by the PLN gateway plugin.
        """
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            root = etree.fromstring(content, parser)
        except etree.XMLSyntaxError as e:
            return PingResult(status_code=status_code,
                              error='Invalid gateway XML: %s' % e)

        terms = root.find('terms')
        return PingResult(
            status_code=status_code,
            ojs_version=root.findtext('ojsInfo/release'),
            plugin_version=root.findtext('pluginInfo/release'),
            terms_accepted=(terms is not None and
                            terms.get('termsAccepted', '').lower() == 'yes'),
            title=root.findtext('journalInfo/title'))

    def ping(self, journal):
        """
        Pings a journal and updates it (without saving it).

        :returns: the :class:`PingResult`
        """
        result = self.fetch(journal)
        if result.has_error:
            logger.warning('Ping of %s failed: %s', journal.uuid, result.error)
            journal.status = 'ping-error'
            return result

        journal.mark_contacted()
        journal.ojs_version = result.ojs_version
        journal.plugin_version = result.plugin_version
        journal.terms_accepted = result.terms_accepted
        if result.title:
            journal.title = result.title.strip()
        return result


def ping_journals(min_version=None, dry_run=False, all_journals=False):
    """
    Pings the journals and whitelists those running at least
    `min_version` of OJS.

    :param min_version: minimum OJS version to whitelist a journal,
        nobody is whitelisted if it is not given
    :param dry_run: only report, do not whitelist anyone
    :param all_journals: also ping whitelisted and blacklisted journals
    :returns: a list of (journal, result) pairs
    """
    if all_journals:
        journals = Journal.objects.order_by('id')
    else:
        journals = Journal.objects.to_ping()

    pinger = Ping()
    minimum = version_tuple(min_version)
    results = []
    for journal in journals.iterator():
        result = pinger.ping(journal)
        journal.save()
        results.append((journal, result))
        if result.has_error or not minimum:
            continue
        if version_tuple(result.ojs_version) < minimum:
            logger.info('%s runs OJS %s, not whitelisted',
                        journal.uuid, result.ojs_version)
            continue
        if Whitelist.contains(journal) or Blacklist.contains(journal):
            continue
        logger.info('Whitelisting %s (OJS %s)', journal.uuid, result.ojs_version)
        if not dry_run:
            Whitelist.objects.create(
                uuid=journal.uuid,
                comment='Automatically whitelisted, OJS %s' % result.ojs_version)
    return results
