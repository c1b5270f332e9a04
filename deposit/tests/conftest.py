import hashlib
import pytest
import responses

from django.conf import settings

from deposit.filepaths import ensure_dir
from deposit.models import PIPELINE_STATES
from deposit.pipeline import PIPELINE


SERVICE_DOCUMENT = """<?xml version="1.0" encoding="utf-8"?>
<service xmlns="http://www.w3.org/2007/app"
         xmlns:atom="http://www.w3.org/2005/Atom"
         xmlns:sword="http://purl.org/net/sword/terms/"
         xmlns:lom="http://lockssomatic.info/SWORD2">
  <sword:version>2.0</sword:version>
  <sword:maxUploadSize>{max_upload_size}</sword:maxUploadSize>
  <lom:uploadChecksumType>{checksum_type}</lom:uploadChecksumType>
  <workspace>
    <atom:title>LOCKSSOMatic</atom:title>
    <collection href="{collection}">
      <atom:title>PKP PLN</atom:title>
      <accept>application/atom+xml;type=entry</accept>
      <sword:mediation>true</sword:mediation>
    </collection>
  </workspace>
</service>
"""

RECEIPT = """<?xml version="1.0" encoding="utf-8"?>
<entry xmlns="http://www.w3.org/2005/Atom">
  <link rel="edit" href="{receipt}"/>
  <link rel="http://purl.org/net/sword/terms/statement"
        type="application/atom+xml;type=feed" href="{statement}"/>
</entry>
"""

STATEMENT = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <category scheme="http://purl.org/net/sword/terms/state" term="{state}" label="State"/>
</feed>
"""

LOM = 'http://lom.test/api/sword/2.0/'


def collection_uri():
    return LOM + 'col-iri/' + settings.PLN_UUID


def receipt_uri(deposit):
    return '%scont-iri/%s/%s/edit' % (LOM, settings.PLN_UUID, deposit.deposit_uuid)


def statement_uri(deposit):
    return '%scont-iri/%s/%s/state' % (LOM, settings.PLN_UUID, deposit.deposit_uuid)


@pytest.fixture
def mock_harvest():
    """
    Returns a function serving the content of a deposit at its URL.
    Use it in tests decorated with responses.activate.
    """
    def add(deposit, content=b'', status=200, content_type='application/zip'):
        responses.add(responses.GET, deposit.url, body=content, status=status,
                      content_type=content_type)
    return add


@pytest.fixture
def mock_network():
    """
    Returns an object registering the answers of the preservation
    network. Use it in tests decorated with responses.activate.
    """
    class Network():

        collection_uri = staticmethod(collection_uri)
        receipt_uri = staticmethod(receipt_uri)
        statement_uri = staticmethod(statement_uri)

        def service_document(self, max_upload_size=10000, checksum_type='SHA-1', status=200):
            responses.add(
                responses.GET, settings.PLN_SWORD_SERVICE_URI,
                body=SERVICE_DOCUMENT.format(max_upload_size=max_upload_size,
                                             checksum_type=checksum_type,
                                             collection=collection_uri()),
                status=status, content_type='application/atomsvc+xml')

        def create_deposit(self, deposit, status=201):
            headers = {'Location': receipt_uri(deposit)} if status == 201 else {}
            responses.add(
                responses.POST, collection_uri(),
                body=RECEIPT.format(receipt=receipt_uri(deposit),
                                    statement=statement_uri(deposit)),
                status=status, headers=headers,
                content_type='application/atom+xml;type=entry')

        def statement(self, deposit, state='agreement'):
            responses.add(
                responses.GET, receipt_uri(deposit),
                body=RECEIPT.format(receipt=receipt_uri(deposit),
                                    statement=statement_uri(deposit)),
                content_type='application/atom+xml;type=entry')
            responses.add(
                responses.GET, statement_uri(deposit),
                body=STATEMENT.format(state=state),
                content_type='application/atom+xml;type=feed')

    return Network()


@pytest.fixture
def run_until(file_paths):
    """
    Returns a function running the processors of the pipeline on a
    deposit until it reaches a given state. The HTTP answers the
    processors need must have been registered before.
    """
    def run(deposit, state):
        target = PIPELINE_STATES.index(state)
        for stage in PIPELINE:
            if PIPELINE_STATES.index(deposit.state) >= target:
                break
            processor = stage.processor_class(file_paths=file_paths)
            if processor.precondition != deposit.state:
                continue
            processor.prepare()
            result = processor.run(deposit)
            assert result.outcome == 'advance', deposit.get_error_log('\n')
        deposit.save()
        return deposit
    return run


@pytest.fixture
def harvested_deposit(deposit_factory, bag_zip, file_paths):
    """
    A deposit whose archive has been downloaded
    """
    deposit = deposit_factory(state='harvested')
    ensure_dir(file_paths.harvest_dir(deposit))
    with open(file_paths.harvest_file(deposit), 'wb') as f:
        f.write(bag_zip[0])
    return deposit


@pytest.fixture
def harvested(deposit_factory, file_paths):
    """
    Returns a function creating a harvested deposit from the content
    of a zip file.
    """
    def create(content, uuid='abc-123', **kwargs):
        deposit = deposit_factory(uuid=uuid, state='harvested',
                                  checksum_value=hashlib.sha1(content).hexdigest(),
                                  size=len(content) // 1000, **kwargs)
        ensure_dir(file_paths.harvest_dir(deposit))
        with open(file_paths.harvest_file(deposit), 'wb') as f:
            f.write(content)
        return deposit
    return create
