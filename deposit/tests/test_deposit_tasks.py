import responses

from deposit.models import Deposit
from deposit.tasks import clean_deposits
from deposit.tasks import run_all_stages


class TestDepositTasks:
    """
    Tests the scheduled tasks
    """

    @responses.activate
    def test_run_all_stages(self, free_locks, data_dir, harvested_deposit, mock_network):
        mock_network.service_document()
        mock_network.create_deposit(harvested_deposit)
        mock_network.statement(harvested_deposit, state='inProgress')
        run_all_stages()
        assert Deposit.objects.get(pk=harvested_deposit.pk).state == 'deposited'
        assert free_locks == ['deposit_pipeline-']

    def test_clean_without_force(self, settings, free_locks, data_dir, deposit_factory):
        settings.PLN_CLEANUP_FORCE = False
        deposit = deposit_factory(state='agreement')
        clean_deposits()
        assert Deposit.objects.get(pk=deposit.pk).state == 'agreement'

    def test_clean_with_force(self, settings, free_locks, data_dir, deposit_factory):
        settings.PLN_CLEANUP_FORCE = True
        deposit = deposit_factory(state='agreement')
        clean_deposits()
        assert Deposit.objects.get(pk=deposit.pk).state == 'cleaned'
        assert free_locks == ['deposit_pipeline-']
