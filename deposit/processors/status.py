import logging

from deposit.processing import PENDING
from deposit.processing import DepositProcessor
from deposit.processing import ProcessingError
from deposit.processing import ProcessingResult
from deposit.processing import RetryableError
from deposit.sword import SwordClient
from deposit.sword import SwordError

logger = logging.getLogger('plnstaging.' + __name__)


class StatusPoller(DepositProcessor):
    """
    Asks the network whether it holds the deposits we sent.

    Deposits move to 'agreement' once the network says so. Until then
    they stay 'deposited': waiting is not an error. The network being
    unreachable is retried without limit, and recorded once for as long
    as it keeps failing the same way.
    """
    name = 'status'
    precondition = 'deposited'
    postcondition = 'agreement'
    max_attempts_setting = None
    log_repeated_errors = False

    def __init__(self, file_paths=None, client=None):
        super(StatusPoller, self).__init__(file_paths)
        self.client = client or SwordClient()

    def process(self, deposit):
        if not deposit.deposit_receipt:
            raise ProcessingError('The deposit has no receipt URL')

        try:
            state = self.client.statement(deposit)
        except SwordError as e:
            if e.retryable:
                raise RetryableError(str(e))
            raise ProcessingError('Cannot get the state of the deposit: %s' % e)

        previous = deposit.pln_state
        deposit.pln_state = state
        if state == 'agreement':
            self.log('The network reached agreement')
            return
        if state == 'rejected':
            raise ProcessingError('The network rejected the deposit')
        if state != previous:
            logger.info('%s: network state %s', deposit.deposit_uuid, state)
        return ProcessingResult(PENDING, 'Network state: %s' % state)
