"""
This file contains all the settings that defines the development server.

SECURITY WARNING: don't run with debug turned on in production!
"""

from server.settings.components.common import SECRET_KEY

# Setting the development status:

DEBUG = True

ALLOWED_HOSTS = [
    'localhost',
    '127.0.0.1',
    '[::1]',
    'testserver',
]

if not SECRET_KEY:
    SECRET_KEY = 'django-insecure-development-only'  # noqa: S105
