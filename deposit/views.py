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

"""
SWORD endpoints the journals post their deposit notifications to.
"""

import logging

from lxml import etree

from django.http import HttpResponse
from django.http import HttpResponseBadRequest
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from deposit.notification import NotificationError
from deposit.notification import parse_deposit_entry
from deposit.notification import receive_deposit
from deposit.sword import ATOM_NAMESPACE
from deposit.sword import PKP_NAMESPACE

logger = logging.getLogger('plnstaging.' + __name__)

ATOM_CONTENT_TYPE = 'application/atom+xml; type=entry'

#: Header the journals use to announce their OJS version
VERSION_HEADER = 'HTTP_X_OJS_VERSION'


def deposit_receipt(request, deposit):
    """
    Renders the Atom entry acknowledging a notification.
    """
    nsmap = {None: ATOM_NAMESPACE, 'pkp': PKP_NAMESPACE}
    entry = etree.Element('{%s}entry' % ATOM_NAMESPACE, nsmap=nsmap)
    etree.SubElement(entry, '{%s}id' % ATOM_NAMESPACE).text = 'urn:uuid:%s' % deposit.deposit_uuid
    etree.SubElement(entry, '{%s}title' % ATOM_NAMESPACE).text = deposit.journal.title or ''
    edit_iri = request.build_absolute_uri(
        reverse('sword-edit', args=[deposit.journal.uuid, deposit.deposit_uuid]))
    etree.SubElement(entry, '{%s}link' % ATOM_NAMESPACE, rel='edit', href=edit_iri)
    etree.SubElement(entry, '{%s}state' % PKP_NAMESPACE).text = deposit.state
    return etree.tostring(entry, xml_declaration=True, encoding='utf-8'), edit_iri


def notify(request, journal_uuid, action, deposit_uuid=None):
    try:
        record = parse_deposit_entry(request.body)
        if deposit_uuid is not None and record['deposit_uuid'].upper() != deposit_uuid.upper():
            raise NotificationError('The entry describes deposit %s, not %s' %
                                    (record['deposit_uuid'], deposit_uuid))
        deposit = receive_deposit(journal_uuid, record,
                                  journal_version=request.META.get(VERSION_HEADER),
                                  action=action)
    except NotificationError as e:
        logger.warning('Refused notification from journal %s: %s', journal_uuid, e)
        return HttpResponseBadRequest(str(e), content_type='text/plain')

    body, edit_iri = deposit_receipt(request, deposit)
    response = HttpResponse(body, content_type=ATOM_CONTENT_TYPE,
                            status=201 if action == 'add' else 200)
    response['Location'] = edit_iri
    return response


@csrf_exempt
@require_http_methods(['POST'])
def create_deposit(request, journal_uuid):
    """
    Collection IRI of a journal: a POST notifies a new deposit.
    """
    return notify(request, journal_uuid, 'add')


@csrf_exempt
@require_http_methods(['PUT'])
def edit_deposit(request, journal_uuid, deposit_uuid):
    """
    Edit IRI of a deposit: a PUT notifies a new version of it.
    """
    return notify(request, journal_uuid, 'edit', deposit_uuid=deposit_uuid)
