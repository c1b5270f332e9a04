import logging
import os
import zipfile

import bagit

from backend.utils import file_checksum
from deposit.filepaths import ensure_dir
from deposit.models import AuContainer
from deposit.processing import DepositProcessor
from deposit.processing import ProcessingError
from deposit.processing import RetryableError
from deposit.processing import remove_quietly
from deposit.processing import temporary_path

logger = logging.getLogger('plnstaging.' + __name__)

PACKAGE_CHECKSUM_TYPE = 'sha1'


def deposit_tags(deposit):
    """
    The bag-info tags describing a deposit and its journal, as the
    network expects them.
    """
    journal = deposit.journal
    tags = [
        ('PKP-PLN-Deposit-UUID', deposit.deposit_uuid),
        ('PKP-PLN-Deposit-Received', deposit.received.isoformat() if deposit.received else None),
        ('PKP-PLN-Deposit-Volume', deposit.volume),
        ('PKP-PLN-Deposit-Issue', deposit.issue),
        ('PKP-PLN-Deposit-PubDate', deposit.pub_date.isoformat() if deposit.pub_date else None),
        ('PKP-PLN-Journal-UUID', journal.uuid),
        ('PKP-PLN-Journal-Title', journal.title),
        ('PKP-PLN-Journal-ISSN', journal.issn),
        ('PKP-PLN-Journal-URL', journal.url),
        ('PKP-PLN-Journal-Email', journal.email),
        ('PKP-PLN-Publisher-Name', journal.publisher_name),
        ('PKP-PLN-Publisher-URL', journal.publisher_url),
        ('PKP-PLN-OJS-Version', deposit.journal_version),
    ]
    for key, value in sorted((deposit.license or {}).items()):
        tags.append(('PKP-PLN-' + key.replace(' ', '-'), value))
    return [(key, str(value)) for key, value in tags if value]


def zip_directory(directory, target, prefix):
    """
    Zips a directory, storing its files under `prefix` in the archive.
    """
    with zipfile.ZipFile(target, 'w', zipfile.ZIP_DEFLATED, allowZip64=True) as archive:
        for dirpath, dirnames, filenames in os.walk(directory):
            dirnames.sort()
            for filename in sorted(filenames):
                path = os.path.join(dirpath, filename)
                archive.write(path, os.path.join(prefix, os.path.relpath(path, directory)))


class Reserializer(DepositProcessor):
    """
    Turns the validated bag into the package sent to the network: adds
    the PLN tags, rewrites the manifests, zips the bag into the staging
    directory and assigns the deposit to an archival unit.
    """
    name = 'reserialize'
    precondition = 'scanned'
    postcondition = 'reserialized'

    def process(self, deposit):
        bag_path = self.file_paths.processing_bag(deposit)
        target = self.file_paths.staging_bag(deposit)
        tmp = None
        try:
            bag = bagit.Bag(bag_path)
            for key, value in deposit_tags(deposit):
                bag.info[key] = value
            bag.save(manifests=True)

            tmp = temporary_path(ensure_dir(self.file_paths.staging_dir(deposit)), '.zip')
            zip_directory(bag_path, tmp, deposit.deposit_uuid)
            os.replace(tmp, target)

            deposit.package_size = os.path.getsize(target)
            deposit.package_checksum_type = PACKAGE_CHECKSUM_TYPE
            deposit.package_checksum_value = file_checksum(target, PACKAGE_CHECKSUM_TYPE)
        except bagit.BagError as e:
            raise ProcessingError('Invalid bag: %s' % e)
        except OSError as e:
            raise RetryableError('Cannot write the package: %s' % e)
        finally:
            if tmp:
                remove_quietly(tmp)
        self.log('Package of %d bytes, %s %s' % (
            deposit.package_size, deposit.package_checksum_type,
            deposit.package_checksum_value))

        if deposit.au_container is None:
            container = AuContainer.objects.open_container()
            deposit.au_container = container
            container.close_if_full(pending=deposit.package_size)
            self.log('Added to archival unit %d' % container.id)
