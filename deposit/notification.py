import logging

from lxml import etree

from django.db import transaction
from django.utils.dateparse import parse_date

from deposit.models import DEFAULT_JOURNAL_VERSION
from deposit.models import Deposit
from deposit.sword import ATOM_NAMESPACE
from deposit.sword import PKP_NAMESPACE
from journals.models import Blacklist
from journals.models import Journal

logger = logging.getLogger('plnstaging.' + __name__)

NSMAP = {
    'atom' : ATOM_NAMESPACE,
    'pkp' : PKP_NAMESPACE,
}

UUID_PREFIX = 'urn:uuid:'


class NotificationError(ValueError):
    """
    Raised when a deposit notification cannot be accepted.
    """
    pass


def _text(root, path):
    value = root.findtext(path, namespaces=NSMAP)
    if value is None:
        return None
    return value.strip() or None


def parse_deposit_entry(content):
    """
    Reads the SWORD Atom entry a journal sends to notify us of a deposit.

    :param content: the entry, as bytes
    :returns: a dict describing the journal and the deposit
    :raises NotificationError: if the entry is not usable
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(content, parser)
    except etree.XMLSyntaxError as e:
        raise NotificationError('Invalid XML: %s' % e)

    deposit_uuid = _text(root, 'atom:id') or ''
    if deposit_uuid.lower().startswith(UUID_PREFIX):
        deposit_uuid = deposit_uuid[len(UUID_PREFIX):]
    if not deposit_uuid:
        raise NotificationError('The entry has no deposit UUID')

    content_elem = root.find('pkp:content', namespaces=NSMAP)
    if content_elem is None or not (content_elem.text or '').strip():
        raise NotificationError('The entry has no content URL')

    try:
        size = int(content_elem.get('size') or 0)
    except ValueError:
        raise NotificationError('Invalid size: %s' % content_elem.get('size'))

    record = {
        'title': _text(root, 'atom:title'),
        'email': _text(root, 'atom:email'),
        'journal_url': _text(root, 'pkp:journal_url'),
        'publisher_name': _text(root, 'pkp:publisherName'),
        'publisher_url': _text(root, 'pkp:publisherUrl'),
        'issn': _text(root, 'pkp:issn'),
        'deposit_uuid': deposit_uuid,
        'url': content_elem.text.strip(),
        'size': size,
        'volume': content_elem.get('volume', ''),
        'issue': content_elem.get('issue', ''),
        'pub_date': parse_date(content_elem.get('pubdate', '')) if content_elem.get('pubdate') else None,
        'checksum_type': content_elem.get('checksumType', ''),
        'checksum_value': content_elem.get('checksumValue', ''),
        'license': {},
    }
    if not record['checksum_type'] or not record['checksum_value']:
        raise NotificationError('The entry has no checksum')

    license = root.find('pkp:license', namespaces=NSMAP)
    if license is not None:
        for child in license:
            if not isinstance(child.tag, str):
                continue
            record['license'][etree.QName(child).localname] = child.text or ''
    return record


def update_journal(journal, record):
    """
    Copies what a journal says about itself into its record.
    """
    for field in ['title', 'email', 'issn', 'publisher_name', 'publisher_url']:
        if record.get(field):
            setattr(journal, field, record[field])
    if record.get('journal_url'):
        journal.url = record['journal_url']
    journal.mark_contacted()


@transaction.atomic
def receive_deposit(journal_uuid, record, journal_version=None, action='add'):
    """
    Records a deposit notification.

    Creates the journal if we did not know it, and the deposit. An
    'edit' of a known deposit updates it and starts its processing
    over.

    :param journal_uuid: the UUID of the journal (any case)
    :param record: the dict returned by :func:`parse_deposit_entry`
    :param journal_version: the OJS version of the journal, if known
    :param action: 'add' or 'edit'
    :returns: the saved :class:`~deposit.models.Deposit`
    :raises NotificationError: if the notification is refused
    """
    journal_uuid = journal_uuid.upper()
    try:
        journal = Journal.objects.by_uuid(journal_uuid)
    except Journal.DoesNotExist:
        if not record.get('journal_url'):
            raise NotificationError('Unknown journal %s and no journal URL' % journal_uuid)
        journal = Journal(uuid=journal_uuid)
    if Blacklist.contains(journal):
        raise NotificationError('Journal %s is blacklisted' % journal_uuid)
    update_journal(journal, record)
    journal.save()

    try:
        deposit = Deposit.objects.by_uuid(record['deposit_uuid'])
    except Deposit.DoesNotExist:
        deposit = Deposit(journal=journal, deposit_uuid=record['deposit_uuid'])
        created = True
    else:
        created = False
        if deposit.journal_id != journal.id:
            raise NotificationError('Deposit %s belongs to another journal' % deposit.deposit_uuid)
        if action != 'edit':
            raise NotificationError('Deposit %s has already been received' % deposit.deposit_uuid)

    deposit.action = action
    deposit.journal_version = journal_version or DEFAULT_JOURNAL_VERSION
    deposit.url = record['url']
    deposit.size = record.get('size') or 0
    deposit.volume = record.get('volume') or ''
    deposit.issue = record.get('issue') or ''
    deposit.pub_date = record.get('pub_date')
    deposit.checksum_type = record['checksum_type']
    deposit.checksum_value = record['checksum_value']
    deposit.license = {}
    for key, value in (record.get('license') or {}).items():
        deposit.add_license(key, value)

    if not created and deposit.state != 'depositedByJournal':
        deposit.requeue('depositedByJournal', 'Deposit edited by the journal')
    deposit.save()
    logger.info('%s deposit %s from journal %s', 'Received' if created else 'Updated',
                deposit.deposit_uuid, journal.uuid)
    return deposit
