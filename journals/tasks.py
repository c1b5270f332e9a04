import logging

from celery import shared_task

from backend.utils import run_only_once
from journals.healthcheck import health_check as check_silent_journals
from journals.ping import ping_journals as ping_all_journals

logger = logging.getLogger('plnstaging.' + __name__)


@shared_task(name='ping_journals')
@run_only_once('ping_journals')
def ping_journals(min_version=None):
    """
    Pings the journals we do not know yet, whitelisting the up to date ones.
    """
    results = ping_all_journals(min_version=min_version)
    errors = len([r for _, r in results if r.has_error])
    logger.info('Pinged %d journals, %d errors', len(results), errors)


@shared_task(name='health_check')
@run_only_once('health_check')
def health_check():
    """
    Notifies the staff about the journals which went silent.
    """
    check_silent_journals()
