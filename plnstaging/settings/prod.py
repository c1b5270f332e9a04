"""
Production specific settings for the PLN staging server.
"""

from .common import *


DEBUG = False

ALLOWED_HOSTS = ['pkp-pln.lib.sfu.ca']

LOGGING['loggers']['plnstaging']['level'] = 'INFO'

PLN_DATA_DIR = '/var/lib/pln-staging/data'
