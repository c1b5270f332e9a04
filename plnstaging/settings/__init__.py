"""
Settings of the PLN staging server.

The environment is chosen with the ``PLN_ENV`` environment variable
(``dev`` by default, or ``prod``). Secrets are read from ``secret.py``,
which you create from ``secret_template.py``.
"""

import os

if os.environ.get('PLN_ENV', 'dev') == 'prod':
    from .prod import *
else:
    from .dev import *

try:
    from .secret import DATABASES
    from .secret import EMAIL_HOST
    from .secret import EMAIL_HOST_PASSWORD
    from .secret import EMAIL_HOST_USER
    from .secret import EMAIL_USE_TLS
    from .secret import PLN_STAGING_URL
    from .secret import PLN_SWORD_SERVICE_URI
    from .secret import PLN_UUID
    from .secret import REDIS_DB
    from .secret import REDIS_HOST
    from .secret import REDIS_PASSWORD
    from .secret import REDIS_PORT
    from .secret import SECRET_KEY
    from .secret import SENTRY_DSN
except ImportError:
    raise RuntimeError(
        'A secret variable is missing, did you forget to add/update secret.py in your settings folder?')

if SENTRY_DSN:
    import sentry_sdk
    sentry_sdk.init(dsn=SENTRY_DSN)

    # If sentry is set, we send all important logs to sentry.
    LOGGING['handlers'].update({
        'sentry': {
            'level': 'ERROR',
            'class': 'sentry_sdk.integrations.logging.EventHandler',
            }
        })

    LOGGING['loggers']['']['handlers'] += ['sentry']
    LOGGING['loggers']['plnstaging']['handlers'] += ['sentry']

REDIS_URL = ':%s@%s:%s/%d' % (
        REDIS_PASSWORD,
        REDIS_HOST,
        REDIS_PORT,
        REDIS_DB)
CELERY_BROKER_URL = 'redis://'+REDIS_URL
# We also use Redis as result backend.
CELERY_RESULT_BACKEND = CELERY_BROKER_URL
