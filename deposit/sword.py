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
import math

import requests
import requests.exceptions
from lxml import etree

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

logger = logging.getLogger('plnstaging.' + __name__)


# Namespaces
APP_NAMESPACE = "http://www.w3.org/2007/app"
ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"
DCTERMS_NAMESPACE = "http://purl.org/dc/terms/"
LOM_NAMESPACE = "http://lockssomatic.info/SWORD2"
PKP_NAMESPACE = "http://pkp.sfu.ca/SWORD"
SWORD_NAMESPACE = "http://purl.org/net/sword/terms/"

ATOM = "{%s}" % ATOM_NAMESPACE
LOM = "{%s}" % LOM_NAMESPACE
PKP = "{%s}" % PKP_NAMESPACE

NSMAP = {
    'app' : APP_NAMESPACE,
    'atom' : ATOM_NAMESPACE,
    'dcterms' : DCTERMS_NAMESPACE,
    'lom' : LOM_NAMESPACE,
    'pkp' : PKP_NAMESPACE,
    'sword' : SWORD_NAMESPACE,
}

ENTRY_NSMAP = {
    None : ATOM_NAMESPACE,
    'dcterms' : DCTERMS_NAMESPACE,
    'lom' : LOM_NAMESPACE,
    'pkp' : PKP_NAMESPACE,
}

STATEMENT_REL = SWORD_NAMESPACE + 'statement'
STATE_SCHEME = SWORD_NAMESPACE + 'state'


def normalize_checksum_type(checksum_type):
    return (checksum_type or '').lower().replace('-', '')


class SwordError(Exception):
    """
    The exception raised when the network does not answer what we
    expect. ``retryable`` tells whether asking again later could work
    (connection problems, server errors) or not (the request was refused).
    """

    def __init__(self, message, retryable=False, status_code=None):
        super(SwordError, self).__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class ServiceDocument(object):
    """
    What the network told us about itself.

    :param max_upload_size: maximum size of a package, in kB
    :param checksum_types: the checksum types it accepts
    :param collection_uri: where deposits should be sent
    """

    def __init__(self, collection_uri, max_upload_size=None, checksum_types=None):
        self.collection_uri = collection_uri
        self.max_upload_size = max_upload_size
        self.checksum_types = checksum_types or []

    def accepts_checksum(self, checksum_type):
        if not self.checksum_types:
            return True
        return normalize_checksum_type(checksum_type) in \
            [normalize_checksum_type(t) for t in self.checksum_types]

    def accepts_size(self, size):
        """
        :param size: size of a package, in bytes
        """
        if not self.max_upload_size:
            return True
        return size <= self.max_upload_size * 1000

    @classmethod
    def parse(cls, content):
        try:
            root = etree.fromstring(content)
        except etree.XMLSyntaxError as e:
            raise SwordError('Invalid service document: %s' % e)

        collection = root.find('.//app:collection', namespaces=NSMAP)
        if collection is None or not collection.get('href'):
            raise SwordError('The service document has no collection')

        max_upload_size = root.findtext('.//sword:maxUploadSize', namespaces=NSMAP)
        try:
            max_upload_size = int(max_upload_size) if max_upload_size else None
        except ValueError:
            raise SwordError('Invalid maxUploadSize: %s' % max_upload_size)

        checksum_types = (root.findtext('.//lom:uploadChecksumType', namespaces=NSMAP) or '').split()
        return cls(collection.get('href'), max_upload_size, checksum_types)


class SwordClient(object):
    """
    Talks SWORD v2 to the preservation network.
    """

    def __init__(self, service_uri=None, on_behalf_of=None, staging_url=None,
                 timeout=None, user_agent=None):
        self.service_uri = service_uri or settings.PLN_SWORD_SERVICE_URI
        self.on_behalf_of = on_behalf_of or settings.PLN_UUID
        self.staging_url = staging_url or settings.PLN_STAGING_URL
        self.timeout = timeout or settings.PLN_HTTP_TIMEOUT
        self.user_agent = user_agent or settings.PLN_USER_AGENT

    def _request(self, method, url, expected_status_codes=(200,), **kwargs):
        """
        Performs an HTTP request to the network, turning errors into
        :class:`SwordError`.
        """
        headers = kwargs.pop('headers', {})
        headers.setdefault('User-Agent', self.user_agent)
        try:
            r = requests.request(method, url, headers=headers,
                                 timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise SwordError('Unable to reach %s: %s' % (url, e), retryable=True)

        if r.status_code not in expected_status_codes:
            raise SwordError('HTTP %d from %s: %s' % (r.status_code, url, r.text[:1000]),
                             retryable=r.status_code >= 500,
                             status_code=r.status_code)
        return r

    def service_document(self):
        """
        Fetches the service document of the network.

        :raises ImproperlyConfigured: if the network is not configured
        :raises SwordError: if the document cannot be fetched or read
        """
        if not self.service_uri or not self.on_behalf_of:
            raise ImproperlyConfigured('PLN_SWORD_SERVICE_URI and PLN_UUID must be set')
        r = self._request('GET', self.service_uri,
                          headers={'On-Behalf-Of': self.on_behalf_of})
        return ServiceDocument.parse(r.content)

    def content_url(self, deposit):
        """
        The URL the network downloads the package of a deposit from.
        """
        if not self.staging_url:
            raise ImproperlyConfigured('PLN_STAGING_URL must be set')
        return '%s/fetch/%s/%s.zip' % (self.staging_url.rstrip('/'),
                                       deposit.journal.uuid, deposit.deposit_uuid)

    def deposit_entry(self, deposit):
        """
        Creates the Atom entry describing a deposit.

        :returns: the entry, serialized
        """
        journal = deposit.journal

        entry = etree.Element(ATOM + 'entry', nsmap=ENTRY_NSMAP)
        etree.SubElement(entry, ATOM + 'email').text = journal.email or ''
        etree.SubElement(entry, ATOM + 'title').text = journal.title or journal.uuid
        etree.SubElement(entry, ATOM + 'id').text = 'urn:uuid:' + deposit.deposit_uuid
        etree.SubElement(entry, ATOM + 'updated').text = timezone.now().isoformat()
        author = etree.SubElement(entry, ATOM + 'author')
        etree.SubElement(author, ATOM + 'name').text = 'PLN Staging Server'
        etree.SubElement(entry, ATOM + 'summary', type='text').text = \
            'Content deposited to the network by journal %s' % journal.uuid

        etree.SubElement(entry, PKP + 'journal_url').text = journal.url
        if journal.publisher_name:
            etree.SubElement(entry, PKP + 'publisherName').text = journal.publisher_name
        if journal.publisher_url:
            etree.SubElement(entry, PKP + 'publisherUrl').text = journal.publisher_url
        if journal.issn:
            etree.SubElement(entry, PKP + 'issn').text = journal.issn

        content = etree.SubElement(entry, LOM + 'content')
        content.set('size', str(int(math.ceil((deposit.package_size or 0) / 1000.0))))
        content.set('checksumType', deposit.package_checksum_type or '')
        content.set('checksumValue', deposit.package_checksum_value or '')
        content.set('volume', deposit.volume or '')
        content.set('issue', deposit.issue or '')
        content.set('pubdate', deposit.pub_date.isoformat() if deposit.pub_date else '')
        content.text = self.content_url(deposit)

        if deposit.license:
            license = etree.SubElement(entry, PKP + 'license')
            for key, value in sorted(deposit.license.items()):
                etree.SubElement(license, PKP + key).text = value

        return etree.tostring(entry, pretty_print=True, encoding='utf-8', xml_declaration=True)

    def create_deposit(self, deposit, service):
        """
        Sends a deposit to the collection of the network.

        A 409 Conflict carrying a receipt means the network already
        holds the deposit, from a previous run that was interrupted
        before it could record the receipt.

        :param service: the :class:`ServiceDocument` of the network
        :returns: the URL of the deposit receipt
        """
        r = self._request('POST', service.collection_uri,
                          expected_status_codes=(200, 201, 409),
                          data=self.deposit_entry(deposit),
                          headers={'Content-Type': 'application/atom+xml;type=entry',
                                   'On-Behalf-Of': self.on_behalf_of})
        receipt = r.headers.get('Location')
        if not receipt:
            try:
                root = etree.fromstring(r.content)
                link = root.find("atom:link[@rel='edit']", namespaces=NSMAP)
                receipt = link.get('href') if link is not None else None
            except etree.XMLSyntaxError:
                receipt = None
        if not receipt and r.status_code == 409:
            raise SwordError('HTTP 409 from %s: %s' % (service.collection_uri, r.text[:1000]),
                             status_code=409)
        if not receipt:
            raise SwordError('The network accepted the deposit without a receipt URL')
        if r.status_code == 409:
            logger.info('The network already holds deposit %s', deposit.deposit_uuid)
        return receipt

    def statement(self, deposit):
        """
        Asks the network about the state of a deposit, following the
        statement link of its deposit receipt.

        :returns: the state reported by the network (such as
            'inProgress', 'agreement' or 'rejected')
        """
        r = self._request('GET', deposit.deposit_receipt,
                          headers={'On-Behalf-Of': self.on_behalf_of})
        try:
            receipt = etree.fromstring(r.content)
        except etree.XMLSyntaxError as e:
            raise SwordError('Invalid deposit receipt: %s' % e, retryable=True)
        link = receipt.find("atom:link[@rel='%s']" % STATEMENT_REL, namespaces=NSMAP)
        if link is None or not link.get('href'):
            raise SwordError('The deposit receipt has no statement link')

        r = self._request('GET', link.get('href'),
                          headers={'On-Behalf-Of': self.on_behalf_of})
        try:
            statement = etree.fromstring(r.content)
        except etree.XMLSyntaxError as e:
            raise SwordError('Invalid statement: %s' % e, retryable=True)
        category = statement.find(".//atom:category[@scheme='%s']" % STATE_SCHEME,
                                  namespaces=NSMAP)
        if category is None or not category.get('term'):
            raise SwordError('The statement has no state', retryable=True)
        return category.get('term')
