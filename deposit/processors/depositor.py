import logging
import os

from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from deposit.processing import DepositProcessor
from deposit.processing import ProcessingError
from deposit.processing import RetryableError
from deposit.sword import SwordClient
from deposit.sword import SwordError

logger = logging.getLogger('plnstaging.' + __name__)


class Depositor(DepositProcessor):
    """
    Sends the staged packages to the preservation network.

    The service document of the network is fetched once per run, in
    :meth:`prepare`: if the network cannot tell us where to deposit,
    there is no point in going through the deposits.
    """
    name = 'deposit'
    precondition = 'reserialized'
    postcondition = 'deposited'

    def __init__(self, file_paths=None, client=None):
        super(Depositor, self).__init__(file_paths)
        self.client = client or SwordClient()
        self.service = None

    def prepare(self):
        try:
            self.service = self.client.service_document()
        except SwordError as e:
            raise ImproperlyConfigured('Cannot fetch the service document of the network: %s' % e)
        logger.info('Depositing to %s', self.service.collection_uri)

    def check(self, deposit):
        """
        Checks that the network can accept the package of a deposit.
        """
        if deposit.au_container is None:
            raise ProcessingError('The deposit has not been assigned to an archival unit')
        if not os.path.isfile(self.file_paths.staging_bag(deposit)):
            raise ProcessingError('The staged package is missing')
        if not self.service.accepts_size(deposit.package_size or 0):
            raise ProcessingError('The package is too large for the network (%d bytes, at most %d kB)' %
                                  (deposit.package_size, self.service.max_upload_size))
        if not self.service.accepts_checksum(deposit.package_checksum_type):
            raise ProcessingError('The network does not accept %s checksums' %
                                  deposit.package_checksum_type)

    def process(self, deposit):
        if self.service is None:
            self.prepare()
        self.check(deposit)

        try:
            receipt = self.client.create_deposit(deposit, self.service)
        except SwordError as e:
            if e.retryable:
                raise RetryableError(str(e))
            raise ProcessingError('The network refused the deposit: %s' % e)

        deposit.deposit_receipt = receipt
        deposit.deposit_date = timezone.now()
        deposit.pln_state = 'inProgress'
        self.log('Deposit receipt: %s' % receipt)
