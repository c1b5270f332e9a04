# Copy this file to secret.py and fill in the values.

### Security key ###
# This is used by django to generate various things. Just pick a fairly
# random string and keep it secret.
SECRET_KEY = 'change me'

### Database ###
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': 'pln',
        'USER': 'pln',
        'PASSWORD': 'pln',
        'HOST': 'localhost',
        'DISABLE_SERVER_SIDE_CURSORS': False,
    }
}

### Redis ###
# Used as Celery broker and for the locks of the scheduled tasks.
REDIS_HOST = 'localhost'
REDIS_PORT = 6379
REDIS_DB = 0
REDIS_PASSWORD = ''

### Emailing settings ###
# Used to notify staff about silent journals.
EMAIL_HOST = ''
EMAIL_HOST_USER = ''
EMAIL_HOST_PASSWORD = ''
EMAIL_USE_TLS = True

### Sentry ###
# Set a DSN to report errors to Sentry.
SENTRY_DSN = None

### Preservation network ###
PLN_SWORD_SERVICE_URI = 'http://lom.example.com/api/sword/2.0/sd-iri'
PLN_UUID = '00000000-0000-0000-0000-000000000000'
PLN_STAGING_URL = 'http://pln.example.com'
