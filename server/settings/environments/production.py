"""
This file contains all the settings used in production.

This file is required and if development.py is present these
values are overridden.
"""

from decouple import Csv

from server.settings.components import config

# Production flags:
# https://docs.djangoproject.com/en/5.1/howto/deployment/

DEBUG = False

SECRET_KEY = config('DJANGO_SECRET_KEY')

ALLOWED_HOSTS = config('DJANGO_ALLOWED_HOSTS', cast=Csv(), default='')

# Security
# https://docs.djangoproject.com/en/5.1/topics/security/

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
