from lxml import etree

from django.urls import reverse

from deposit.models import Deposit
from journals.models import Blacklist
from journals.models import Journal

NEW_JOURNAL = 'B2A9D27C-6A43-4B77-8C1F-5E0C1F4A2D10'
DEPOSIT_UUID = 'F93A8108-B705-4763-A592-B718B00BD4EA'

ENTRY = """<?xml version="1.0" encoding="utf-8"?>
<entry xmlns="http://www.w3.org/2005/Atom"
       xmlns:pkp="http://pkp.sfu.ca/SWORD">
  <email>editor@journal.test</email>
  <title>Journal of Imaginary Libraries</title>
  <pkp:journal_url>http://journal.test/index.php/ojs</pkp:journal_url>
  <id>urn:uuid:{uuid}</id>
  <pkp:content size="{size}" volume="4" issue="2" pubdate="2020-06-01"
      checksumType="SHA-1" checksumValue="2aae6c35c94fcfb415dbe95f408b9ce91ee846ed"
      >http://journal.test/index.php/ojs/pln/deposits/f93a8108</pkp:content>
</entry>
"""


def entry(uuid=DEPOSIT_UUID.lower(), size=124):
    return ENTRY.format(uuid=uuid, size=size).encode('utf-8')


def post_entry(client, journal_uuid, content, **extra):
    return client.post(reverse('sword-collection', args=[journal_uuid]), content,
                       content_type='application/atom+xml', **extra)


def put_entry(client, journal_uuid, deposit_uuid, content):
    return client.put(reverse('sword-edit', args=[journal_uuid, deposit_uuid]), content,
                      content_type='application/atom+xml')


class TestCreateDeposit:
    """
    Tests the collection IRI the journals notify their deposits to
    """

    def test_create(self, client, db):
        response = post_entry(client, NEW_JOURNAL, entry(), HTTP_X_OJS_VERSION='3.1.2.0')
        assert response.status_code == 201
        assert response['Location'].endswith(
            '/api/sword/2.0/cont-iri/%s/%s/edit' % (NEW_JOURNAL, DEPOSIT_UUID))

        deposit = Deposit.objects.by_uuid(DEPOSIT_UUID)
        assert deposit.state == 'depositedByJournal'
        assert deposit.journal_version == '3.1.2.0'
        assert deposit.journal == Journal.objects.by_uuid(NEW_JOURNAL)

        receipt = etree.fromstring(response.content)
        assert receipt.findtext('{http://www.w3.org/2005/Atom}id') == 'urn:uuid:%s' % DEPOSIT_UUID
        assert receipt.findtext('{http://pkp.sfu.ca/SWORD}state') == 'depositedByJournal'

    def test_invalid_entry(self, client, db):
        response = post_entry(client, NEW_JOURNAL, b'<entry')
        assert response.status_code == 400
        assert not Deposit.objects.exists()

    def test_blacklisted(self, client, db):
        Blacklist.objects.create(uuid=NEW_JOURNAL)
        response = post_entry(client, NEW_JOURNAL, entry())
        assert response.status_code == 400
        assert b'blacklisted' in response.content
        assert not Deposit.objects.exists()

    def test_duplicate(self, client, db):
        assert post_entry(client, NEW_JOURNAL, entry()).status_code == 201
        assert post_entry(client, NEW_JOURNAL, entry()).status_code == 400
        assert Deposit.objects.count() == 1

    def test_get_not_allowed(self, client, db):
        response = client.get(reverse('sword-collection', args=[NEW_JOURNAL]))
        assert response.status_code == 405


class TestEditDeposit:

    def test_edit(self, client, db):
        post_entry(client, NEW_JOURNAL, entry())
        deposit = Deposit.objects.by_uuid(DEPOSIT_UUID)
        deposit.advance('harvested')
        deposit.save()

        response = put_entry(client, NEW_JOURNAL, DEPOSIT_UUID, entry(size=200))
        assert response.status_code == 200
        deposit = Deposit.objects.by_uuid(DEPOSIT_UUID)
        assert deposit.size == 200
        assert deposit.action == 'edit'
        assert deposit.state == 'depositedByJournal'

    def test_other_deposit(self, client, db):
        post_entry(client, NEW_JOURNAL, entry())
        response = put_entry(client, NEW_JOURNAL, 'ABC-123', entry(size=200))
        assert response.status_code == 400
        assert Deposit.objects.by_uuid(DEPOSIT_UUID).size == 124
