import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils import timezone

from journals.models import Journal

logger = logging.getLogger('plnstaging.' + __name__)


def staff_recipients():
    """
    Email addresses of the active staff users.
    """
    User = get_user_model()
    return list(User.objects.filter(is_staff=True, is_active=True)
                .exclude(email='')
                .values_list('email', flat=True))


def health_check(days=None, dry_run=False):
    """
    Finds the journals which have been silent for too long and notifies
    the staff about them.

    :param days: number of days of silence, defaults to ``PLN_DAYS_SILENT``
    :param dry_run: do not send anything, do not update the journals
    :returns: the list of silent journals
    """
    if days is None:
        days = settings.PLN_DAYS_SILENT
    journals = list(Journal.objects.silent(days))
    if not journals:
        logger.info('No journal has been silent for %d days', days)
        return []

    recipients = staff_recipients()
    if not recipients:
        logger.warning('%d silent journals but no user to notify', len(journals))
        return journals

    logger.info('Notifying %d users about %d silent journals',
                len(recipients), len(journals))
    if dry_run:
        return journals

    body = render_to_string('journals/health_check_notification.txt', {
        'journals': journals,
        'days': days,
    })
    send_mail('Silent journals in the preservation network',
              body, settings.PLN_NOTIFICATION_SENDER, recipients)

    now = timezone.now()
    for journal in journals:
        journal.status = 'unhealthy'
        journal.notified = now
        journal.save(update_fields=['status', 'notified'])
    return journals
