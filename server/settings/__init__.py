"""
Main settings file, your :file:`settings.py` from Django.

Settings are split into ``components`` and ``environments`` with
``django-split-settings``. ``DJANGO_ENV`` picks the environment,
values themselves come from ``config/.env`` via ``python-decouple``.
"""

from os import environ

from split_settings.tools import include, optional

# Managing environment via `DJANGO_ENV` variable:
environ.setdefault('DJANGO_ENV', 'development')
_ENV = environ['DJANGO_ENV']

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/misskey.py',
    'components/moderation.py',
    # Select the right env:
    'environments/{0}.py'.format(_ENV),
    # Optionally override some settings:
    optional('environments/local.py'),
)

# Include settings:
include(*_base_settings)
