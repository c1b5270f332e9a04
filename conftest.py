import base64
import hashlib
import io
import os
import pytest
import zipfile

import bagit

from django.utils import timezone

from deposit.filepaths import FilePaths
from deposit.models import Deposit
from journals.models import Journal


JOURNAL_UUID = '7c4a8d09-ca37-4f3e-9c1d-2b6d0a6d3a11'
JOURNAL_URL = 'http://journal.test/index.php/ojs'
DEPOSIT_URL = 'http://journal.test/index.php/ojs/pln/deposits/'

EXPORT_XML = """<?xml version="1.0" encoding="utf-8"?>
<issue xmlns="http://pkp.sfu.ca">
  <id type="internal">12</id>
  <issue_identification>
    <volume>4</volume>
    <number>2</number>
    <year>2020</year>
  </issue_identification>
  <articles>
    <article>
      <title>The Garden of Forking Paths</title>
      <submission_file>
        <revision>
          <embed encoding="base64" filename="article.pdf" mime_type="application/pdf">%s</embed>
        </revision>
      </submission_file>
    </article>
  </articles>
</issue>
"""


def export_xml(embedded=b'%PDF-1.4\n% Forking paths\n'):
    return (EXPORT_XML % base64.b64encode(embedded).decode('ascii')).encode('utf-8')


def make_bag_zip(directory, files=None, bag_info=None, top_dir='bag', tamper=None):
    """
    Builds a zipped BagIt bag, the way journals send their deposits.

    :param directory: a scratch directory (a pathlib.Path)
    :param files: dict from payload paths to bytes
    :param tamper: dict from payload paths to bytes, written after the
        manifests so that the bag is invalid
    :returns: the content of the zip file
    """
    if files is None:
        files = {'export.xml': export_xml()}
    bag_dir = directory / top_dir
    bag_dir.mkdir(parents=True)
    for name, content in files.items():
        path = bag_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    bagit.make_bag(str(bag_dir), bag_info or {'PKP-PLN-OJS-Version': '3.1.2.0'},
                   checksums=['sha1'])
    for name, content in (tamper or {}).items():
        (bag_dir / 'data' / name).write_bytes(content)

    out = io.BytesIO()
    with zipfile.ZipFile(out, 'w') as archive:
        for dirpath, dirnames, filenames in os.walk(str(bag_dir)):
            for filename in filenames:
                path = os.path.join(dirpath, filename)
                archive.write(path, os.path.join(top_dir, os.path.relpath(path, str(bag_dir))))
    return out.getvalue()


def sha1_hex(content):
    return hashlib.sha1(content).hexdigest()


@pytest.fixture
def data_dir(settings, tmp_path):
    """
    Points PLN_DATA_DIR to a fresh temporary directory.
    """
    path = tmp_path / 'pln_data'
    path.mkdir()
    settings.PLN_DATA_DIR = str(path)
    return path


@pytest.fixture
def file_paths(data_dir):
    return FilePaths()


@pytest.fixture
def journal(db):
    """
    A journal which already sent us deposits
    """
    return Journal.objects.create(
        uuid=JOURNAL_UUID,
        url=JOURNAL_URL,
        title='Journal of Imaginary Libraries',
        issn='1234-5678',
        email='editor@journal.test',
        publisher_name='Babel Press',
        publisher_url='http://babel.test',
        status='healthy',
        contacted=timezone.now(),
    )


@pytest.fixture
def bag_zip(tmp_path):
    """
    The content of a valid zipped bag, with its (lower-case) sha1
    """
    content = make_bag_zip(tmp_path / 'bag_fixture')
    return content, sha1_hex(content)


@pytest.fixture
def deposit_factory(journal, bag_zip):
    """
    Returns a function creating deposits of the journal, by default
    matching the content of the bag_zip fixture.
    """
    content, checksum = bag_zip

    def create(uuid='abc-123', state='depositedByJournal', **kwargs):
        fields = {
            'journal': journal,
            'deposit_uuid': uuid,
            'url': DEPOSIT_URL + uuid,
            'size': len(content) // 1000,
            'checksum_type': 'sha1',
            'checksum_value': checksum,
            'volume': '4',
            'issue': '2',
            'journal_version': '3.1.2.0',
        }
        fields.update(kwargs)
        deposit = Deposit(**fields)
        deposit.state = state
        deposit.save()
        return deposit
    return create


@pytest.fixture
def deposit(deposit_factory):
    return deposit_factory()


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(
        username='librarian', email='librarian@pln.test', password='secret',
        is_staff=True)


@pytest.fixture
def make_bag(tmp_path):
    """
    Returns a function building zipped bags in a scratch directory,
    see make_bag_zip.
    """
    counter = [0]

    def build(**kwargs):
        counter[0] += 1
        return make_bag_zip(tmp_path / ('bag_%d' % counter[0]), **kwargs)
    return build


@pytest.fixture
def sample_export_xml():
    return export_xml


@pytest.fixture
def free_locks(monkeypatch):
    """
    Replaces the Redis locks taken by the tasks with locks which are
    always free. Returns the ids of the locks taken.
    """
    taken = []

    class FreeLock:

        def acquire(self, blocking=True):
            return True

        def release(self):
            pass

    def lock(lock_id, timeout):
        taken.append(lock_id)
        return FreeLock()
    monkeypatch.setattr('backend.utils.redis_lock', lock)
    return taken
