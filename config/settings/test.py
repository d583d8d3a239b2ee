"""
Test settings for the Legal Newsroom project.
"""

from .base import *

DEBUG = False

ALLOWED_HOSTS = ['testserver', 'localhost']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'newsroom-tests',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES['staticfiles'] = {
    'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

CRON_API_KEY = 'test-cron-key'

# High enough that no test trips a throttle
REST_FRAMEWORK['DEFAULT_THROTTLE_RATES'] = {
    'burst': '10000/minute',
    'state_change': '10000/minute',
    'cron_trigger': '10000/minute',
}

# Console only; app loggers propagate so caplog sees them
LOGGING['handlers'].pop('file')
LOGGING['loggers']['django']['handlers'] = ['console']
LOGGING['loggers']['apps'] = {
    'handlers': [],
    'level': 'DEBUG',
    'propagate': True,
}
