"""Test settings.

In-memory SQLite, local-memory email and eager Celery so the test suite
needs no external services.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

LOGGING['root']['level'] = 'CRITICAL'  # noqa: F405
LOGGING['loggers']['apps']['level'] = 'WARNING'  # noqa: F405
