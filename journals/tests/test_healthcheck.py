import datetime

from django.utils import timezone

from journals.healthcheck import health_check
from journals.healthcheck import staff_recipients
from journals.models import Journal


def make_silent(journal, days=100):
    journal.contacted = timezone.now() - datetime.timedelta(days=days)
    journal.save()
    return journal


class TestHealthCheck:
    """
    Tests the notifications about silent journals
    """

    def test_recipients(self, django_user_model, staff_user):
        django_user_model.objects.create_user(username='reader', email='reader@pln.test')
        django_user_model.objects.create_user(username='ghost', email='', is_staff=True)
        django_user_model.objects.create_user(username='former', email='former@pln.test',
                                              is_staff=True, is_active=False)
        assert staff_recipients() == ['librarian@pln.test']

    def test_nothing_silent(self, journal, staff_user, mailoutbox):
        assert health_check() == []
        assert len(mailoutbox) == 0

    def test_notification(self, settings, journal, staff_user, mailoutbox):
        make_silent(journal)
        assert health_check() == [journal]

        assert len(mailoutbox) == 1
        mail = mailoutbox[0]
        assert mail.to == ['librarian@pln.test']
        assert mail.from_email == settings.PLN_NOTIFICATION_SENDER
        assert mail.subject == 'Silent journals in the preservation network'
        assert 'during the last 90 days' in mail.body
        assert journal.uuid in mail.body
        assert 'editor@journal.test' in mail.body

        journal = Journal.objects.get(pk=journal.pk)
        assert journal.status == 'unhealthy'
        assert journal.notified is not None

    def test_notified_once(self, journal, staff_user, mailoutbox):
        make_silent(journal)
        health_check()
        assert health_check() == []
        assert len(mailoutbox) == 1

    def test_days(self, journal, staff_user, mailoutbox):
        make_silent(journal, days=10)
        assert health_check() == []
        assert health_check(days=7) == [journal]

    def test_dry_run(self, journal, staff_user, mailoutbox):
        make_silent(journal)
        assert health_check(dry_run=True) == [journal]
        assert len(mailoutbox) == 0
        assert Journal.objects.get(pk=journal.pk).status == 'healthy'

    def test_no_recipients(self, journal, mailoutbox):
        make_silent(journal)
        assert health_check() == [journal]
        assert len(mailoutbox) == 0
        assert Journal.objects.get(pk=journal.pk).status == 'healthy'
