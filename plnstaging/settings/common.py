# -*- encoding: utf-8 -*-

# PLN Staging: preservation network staging server
# Copyright (C) 2014 Antonin Delpeuch
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; either version 2
# of the License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.
#


"""
Django settings shared by every PLN staging server environment.

Secrets (database, Redis, email, Sentry, network credentials) live in
``secret.py``, see ``secret_template.py``. Environment specific values
live in ``dev.py`` and ``prod.py``.

For the full list of Django settings and their values, see
https://docs.djangoproject.com/en/3.2/ref/settings/
"""

from datetime import timedelta
import os

# dirname(__file__) → repo/plnstaging/settings/common.py
# .. → repo/plnstaging/settings
# .. → repo/plnstaging
# .. → repo/

BASE_DIR = os.path.abspath(os.path.join(
    os.path.dirname(__file__), '..', '..'))


### Deposit files ###
# All files of a deposit live below PLN_DATA_DIR. Each processing step
# has its own sub-directory, and inside it one directory per journal.
PLN_DATA_DIR = os.path.join(BASE_DIR, 'data')
PLN_HARVEST_DIR = 'harvest'
PLN_PROCESSING_DIR = 'processing'
PLN_STAGING_DIR = 'staged'

### Processing ###
# Number of deposits saved in one transaction by the pipeline.
PLN_BATCH_SIZE = 10
# Number of times we try to download a deposit before giving up.
PLN_MAX_HARVEST_ATTEMPTS = 5
# Number of times any other step may fail with a temporary error.
PLN_MAX_ATTEMPTS = 5
# Journals send the size of their deposits in kB, rounded. This is the
# relative difference we accept between that and what we download.
PLN_HARVEST_SIZE_TOLERANCE = 0.02
# Timeout of the requests to journals and to the network (in seconds)
PLN_HTTP_TIMEOUT = 60
PLN_USER_AGENT = 'PlnStaging/1.0 (+https://pkp.sfu.ca/pkp-lockss/)'
# Optional XML schema the export XML files are validated against.
PLN_XML_SCHEMA = None
# Files we refuse to forward to the network.
PLN_SCAN_DISALLOWED_EXTENSIONS = [
    '.bat', '.cmd', '.com', '.dll', '.exe', '.jar', '.js', '.msi',
    '.ps1', '.scr', '.sh', '.vbs',
]
# Maximum size of an archival unit, in bytes.
PLN_MAX_AU_SIZE = 100 * 1000 * 1000 * 1000
# Should the scheduled cleanup really delete files?
PLN_CLEANUP_FORCE = False

### Preservation network ###
# The SWORD service document of the network. Set it in secret.py.
PLN_SWORD_SERVICE_URI = None
# Identifier of this staging server in the network (On-Behalf-Of).
PLN_UUID = None
# Base URL the network downloads the staged packages from.
PLN_STAGING_URL = None

### Journals ###
# Path of the PLN plugin gateway, relative to a journal URL.
PLN_GATEWAY_PATH = '/gateway/plugin/PLNGatewayPlugin'
# Number of days after which a journal which did not contact us is
# considered silent.
PLN_DAYS_SILENT = 90
# Sender of the health check notifications.
PLN_NOTIFICATION_SENDER = 'noreplies@pkp-pln.lib.sfu.ca'

### Application definition ###
# You should not have to change anything in this section.

INSTALLED_APPS = (
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'backend',
    'journals',
    'deposit',
)

DEFAULT_AUTO_FIELD = 'django.db.models.AutoField'

# Journals post their deposit notifications to the SWORD endpoints.
# They do not hold sessions or CSRF tokens.
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'plnstaging.urls'

WSGI_APPLICATION = 'plnstaging.wsgi.application'

TEMPLATES = [
        {
            'BACKEND': 'django.template.backends.django.DjangoTemplates',
            'APP_DIRS' : True,
            'OPTIONS': {
                'debug': True
            }
        }
]

### Celery config ###
# Celery runs the processing pipeline, the pings and the health checks
# on a schedule.
# To communicate with it, we need a "broker".
# This is an example broker with Redis
# (with settings configured in your secret.py)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_IMPORTS = ['deposit.tasks', 'journals.tasks']

CELERY_BEAT_SCHEDULE = {
    'run_all_stages': {
        'task': 'run_all_stages',
        'schedule': timedelta(hours=1),
    },
    'clean_deposits': {
        'task': 'clean_deposits',
        'schedule': timedelta(days=1),
    },
    'ping_journals': {
          'task': 'ping_journals',
          'schedule': timedelta(days=1),
    },
    'health_check': {
        'task': 'health_check',
        'schedule': timedelta(days=1),
    },
}

# This is the time in seconds before an unacknowledged task is re-sent to
# another worker. It should exceed the length of the longest task, otherwise
# it will be executed twice ! 43200 is one day.
CELERY_BROKER_TRANSPORT_OPTIONS = {'visibility_timeout': 43200}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = False
USE_TZ = True

# Logging is very important thing. Here we define some standards. We use Django logging system, so there it is easy to custimze your logging preferences.
# To switch for 'console' to level 'DEBUG' please use prod.py resp. dev.py
# To get a logger use logger = logging.getLogger('plnstaging.' + __name__) to make sure that it is catched by the staging server logger.

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'console': {
            'format': '%(asctime)s %(levelname)s %(name)s:%(lineno)s  %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
        },
    },
    'loggers': {
    # root logger, includes also third party packages. To omit them them, put in 'django' to get just django related logging
        '': {
            'level': 'WARNING',
            'handlers': ['console'],
        },
    # Staging server logger
        'plnstaging' : {
            'level': 'INFO', # Change this value in prod.py resp dev.py
            'handlers': ['console'],
            'propagate': False,
        },
    },
}
