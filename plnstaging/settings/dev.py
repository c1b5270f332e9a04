"""
Development specific settings for the PLN staging server.
"""

import os

from .common import *

DEBUG = True

LOGLEVEL = 'DEBUG'
LOGGING['loggers']['plnstaging']['level'] = os.environ.get('PLN_LOGLEVEL', LOGLEVEL).upper()

ALLOWED_HOSTS = ['localhost', '127.0.0.1']

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

PLN_DATA_DIR = os.path.join(BASE_DIR, 'pln_data')
