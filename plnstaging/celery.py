import os
import logging

from celery import Celery

logger = logging.getLogger('plnstaging.' + __name__)

# set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'plnstaging.settings')

app = Celery('plnstaging')

app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
