import pytest

from django.utils.dateparse import parse_datetime

from deposit.models import PIPELINE_STATES
from deposit.models import TRANSITIONS
from deposit.models import AuContainer
from deposit.models import Deposit
from deposit.models import InvalidTransition
from deposit.models import can_transition


def log_entries(deposit):
    """
    Splits the processing log of a deposit into (timestamp, content) pairs
    """
    entries = []
    for block in deposit.processing_log.strip().split('\n\n'):
        timestamp, _, content = block.partition('\n')
        entries.append((parse_datetime(timestamp), content))
    return entries


class TestStateMachine:
    """
    Tests the edges of the deposit state machine
    """

    def test_transitions_only_go_forward(self):
        for source, target in TRANSITIONS.items():
            assert PIPELINE_STATES.index(target) == PIPELINE_STATES.index(source) + 1

    def test_cleaned_only_after_agreement(self):
        assert [s for s, t in TRANSITIONS.items() if t == 'cleaned'] == ['agreement']

    @pytest.mark.parametrize('state', PIPELINE_STATES[:-1])
    def test_any_active_state_can_fail(self, state):
        assert can_transition(state, 'failed')

    @pytest.mark.parametrize('state', ['cleaned', 'failed'])
    def test_final_states_cannot_fail(self, state):
        assert not can_transition(state, 'failed')

    def test_no_backward_edge(self):
        assert not can_transition('harvested', 'depositedByJournal')
        assert not can_transition('agreement', 'deposited')

    def test_no_skipping(self):
        assert not can_transition('depositedByJournal', 'payload-validated')
        assert not can_transition('deposited', 'cleaned')


class TestDeposit:
    """
    Tests the Deposit model and its lifecycle operations
    """

    def test_default_state(self, deposit):
        assert deposit.state == 'depositedByJournal'
        assert deposit.error_log == []
        assert deposit.processing_log == ''
        assert deposit.harvest_attempts == 0

    def test_uuid_upper_case(self, deposit_factory):
        deposit = deposit_factory(uuid='f93a8108-b705-4763-a592-b718b00bd4ea')
        deposit.refresh_from_db()
        assert deposit.deposit_uuid == 'F93A8108-B705-4763-A592-B718B00BD4EA'

    @pytest.mark.parametrize('lookup', ['abc-123', 'ABC-123', 'Abc-123'])
    def test_lookup_case_insensitive(self, deposit, lookup):
        assert Deposit.objects.by_uuid(lookup) == deposit

    def test_uuid_immutable(self, deposit):
        deposit = Deposit.objects.get(pk=deposit.pk)
        deposit.deposit_uuid = 'def-456'
        with pytest.raises(ValueError):
            deposit.save()

    def test_uuid_case_change_is_not_a_change(self, deposit):
        deposit = Deposit.objects.get(pk=deposit.pk)
        deposit.deposit_uuid = 'abc-123'
        deposit.save()
        assert Deposit.objects.get(pk=deposit.pk).deposit_uuid == 'ABC-123'

    def test_checksum_case(self, deposit_factory):
        deposit = deposit_factory(checksum_type='SHA1', checksum_value='abcdef0123')
        deposit.package_checksum_type = 'SHA1'
        deposit.package_checksum_value = 'deadbeef'
        deposit.save()
        deposit.refresh_from_db()
        assert deposit.checksum_type == 'sha1'
        assert deposit.checksum_value == 'ABCDEF0123'
        assert deposit.package_checksum_type == 'sha1'
        assert deposit.package_checksum_value == 'DEADBEEF'

    def test_advance(self, deposit):
        deposit.retry_count = 3
        deposit.advance('harvested', 'Downloaded')
        assert deposit.state == 'harvested'
        assert deposit.retry_count == 0
        entries = log_entries(deposit)
        assert len(entries) == 1
        assert entries[0][0] is not None
        assert entries[0][1] == 'depositedByJournal → harvested\nDownloaded'

    def test_advance_invalid_edge(self, deposit):
        with pytest.raises(InvalidTransition):
            deposit.advance('scanned')
        assert deposit.state == 'depositedByJournal'
        assert deposit.processing_log == ''

    def test_advance_to_failed_is_refused(self, deposit):
        with pytest.raises(InvalidTransition):
            deposit.advance('failed')

    def test_invalid_transition_is_a_value_error(self):
        assert issubclass(InvalidTransition, ValueError)

    def test_fail(self, deposit_factory):
        deposit = deposit_factory(state='scanned')
        deposit.fail('Something is wrong')
        assert deposit.state == 'failed'
        assert deposit.failed_state == 'scanned'
        assert 'scanned → failed' in deposit.processing_log

    def test_fail_cleaned(self, deposit_factory):
        deposit = deposit_factory(state='cleaned')
        with pytest.raises(InvalidTransition):
            deposit.fail('Too late')

    def test_processing_log_is_appended(self, deposit):
        deposit.add_to_processing_log('first')
        deposit.add_to_processing_log('second')
        assert [content for _, content in log_entries(deposit)] == ['first', 'second']

    def test_error_log(self, deposit):
        deposit.add_error('one')
        deposit.add_error('two')
        deposit.save()
        deposit.refresh_from_db()
        assert deposit.get_error_log() == ['one', 'two']
        assert deposit.get_error_log('; ') == 'one; two'

    def test_add_license(self, deposit):
        deposit.add_license('openAccessPolicy', ' Yes. ')
        deposit.add_license('copyrightNotice', '')
        deposit.add_license('copyrightHolder', None)
        assert deposit.license == {'openAccessPolicy': 'Yes.'}

    def test_requeue_keeps_error_log(self, deposit_factory):
        deposit = deposit_factory(state='harvested')
        deposit.add_error('payload: bad zip')
        deposit.fail('bad zip')
        deposit.requeue('harvested', 'Try again')
        assert deposit.state == 'harvested'
        assert deposit.failed_state is None
        assert deposit.get_error_log() == ['payload: bad zip']

    def test_requeue_to_start_resets_harvest_attempts(self, deposit):
        deposit.harvest_attempts = 5
        deposit.fail('gave up')
        deposit.requeue('depositedByJournal', 'The journal fixed its deposit')
        assert deposit.harvest_attempts == 0

    def test_requeue_cleaned(self, deposit_factory):
        deposit = deposit_factory(state='cleaned')
        with pytest.raises(InvalidTransition):
            deposit.requeue('reserialized', 'No files left')
        deposit.requeue('depositedByJournal', 'Harvest again')
        assert deposit.state == 'depositedByJournal'

    def test_reset_clears_error_log(self, deposit_factory):
        deposit = deposit_factory(state='scanned', harvest_attempts=2, retry_count=1)
        deposit.add_error('oops')
        deposit.reset()
        assert deposit.state == 'depositedByJournal'
        assert deposit.error_log == []
        assert deposit.harvest_attempts == 0
        assert deposit.retry_count == 0

    def test_queries(self, journal, deposit_factory):
        d1 = deposit_factory(uuid='d-1', state='harvested')
        deposit_factory(uuid='d-2', state='scanned')
        assert list(Deposit.objects.in_state('harvested')) == [d1]
        assert list(Deposit.objects.in_state('harvested').for_journal(journal)) == [d1]


class TestAuContainer:
    """
    Tests the grouping of deposits in archival units
    """

    def test_open_container_is_reused(self, db):
        container = AuContainer.objects.open_container()
        assert AuContainer.objects.open_container() == container
        assert container.open

    def test_size(self, deposit_factory):
        container = AuContainer.objects.open_container()
        deposit_factory(uuid='d-1', au_container=container, package_size=100)
        deposit_factory(uuid='d-2', au_container=container, package_size=250)
        assert container.size == 350

    def test_close_if_full(self, settings, deposit_factory):
        settings.PLN_MAX_AU_SIZE = 300
        container = AuContainer.objects.open_container()
        deposit_factory(uuid='d-1', au_container=container, package_size=200)
        assert not container.close_if_full()
        assert container.close_if_full(pending=200)
        assert not container.open
        assert AuContainer.objects.open_container() != container
