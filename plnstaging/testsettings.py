"""
Settings used by the test suite.
"""

from plnstaging.settings.common import *

SECRET_KEY = 'tests-only-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

REDIS_HOST = 'localhost'
REDIS_PORT = 6379
REDIS_DB = 0
REDIS_PASSWORD = ''

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True

PLN_SWORD_SERVICE_URI = 'http://lom.test/api/sword/2.0/sd-iri'
PLN_UUID = '7AD045C9-89E6-4ACA-8687-A2D5B4D2C7F3'
PLN_STAGING_URL = 'http://staging.test'

# We delete the logger 'plnstaging', so that it goes to root logger and gets catched by pytest caplog fixture
try:
    del LOGGING['loggers']['plnstaging']
except KeyError:
    pass
