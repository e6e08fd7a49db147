"""
Django settings for server project.

For more information on this file, see
https://docs.djangoproject.com/en/5.1/topics/settings/

For the full list of settings and their config, see
https://docs.djangoproject.com/en/5.1/ref/settings/
"""

from typing import Final

from django.contrib.messages import constants as message_constants

from server.settings.components import BASE_DIR, config

SECRET_KEY = config('DJANGO_SECRET_KEY', default='')

# Application definition:

INSTALLED_APPS: tuple[str, ...] = (
    # Default django apps:
    'django.contrib.messages',

    # Your apps go here:
    'server.apps.drive',
)

MIDDLEWARE: tuple[str, ...] = (
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
)

ROOT_URLCONF = 'server.urls'

WSGI_APPLICATION = 'server.wsgi.application'

# No local database: every record lives in the remote Misskey drive.
DATABASES: dict[str, dict[str, str]] = {}

# Internationalization
# https://docs.djangoproject.com/en/5.1/topics/i18n/

LANGUAGE_CODE = 'en-us'

USE_I18N = True

TIME_ZONE = 'UTC'

USE_TZ = True

# Templates
# https://docs.djangoproject.com/en/5.1/ref/templates/api

TEMPLATES = [{
    'APP_DIRS': True,
    'BACKEND': 'django.template.backends.django.DjangoTemplates',
    'DIRS': [
        # Project-wide overrides, app templates live in `templates/`:
        BASE_DIR.joinpath('server', 'templates'),
    ],
    'OPTIONS': {
        'context_processors': [
            'django.template.context_processors.debug',
            'django.template.context_processors.request',
            'django.contrib.messages.context_processors.messages',
        ],
    },
}]

# Sessions and messages are kept in signed cookies, there is no DB:

SESSION_ENGINE = 'django.contrib.sessions.backends.signed_cookies'

SESSION_COOKIE_HTTPONLY = True

MESSAGE_STORAGE = 'django.contrib.messages.storage.cookie.CookieStorage'

MESSAGE_TAGS = {
    message_constants.ERROR: 'danger',
}

# Uploads are proxied to the drive, allow reasonably large bodies:

_MEGABYTE: Final = 1024 * 1024

DATA_UPLOAD_MAX_MEMORY_SIZE = config(
    'DATA_UPLOAD_MAX_MEMORY_SIZE',
    cast=int,
    default=50 * _MEGABYTE,
)

FILE_UPLOAD_MAX_MEMORY_SIZE = config(
    'FILE_UPLOAD_MAX_MEMORY_SIZE',
    cast=int,
    default=10 * _MEGABYTE,
)

# Security
# https://docs.djangoproject.com/en/5.1/topics/security/

X_FRAME_OPTIONS = 'DENY'

SECURE_CONTENT_TYPE_NOSNIFF = True

REFERRER_POLICY = 'same-origin'
