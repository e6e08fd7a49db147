"""Misskey drive API settings."""

from server.settings.components import config

# Base URL of the Misskey instance (without the `/api` suffix)
MISSKEY_API_URL = config('MISSKEY_API_URL', default='')
MISSKEY_API_KEY = config('MISSKEY_API_KEY', default='')

# Outbound requests
MISSKEY_REQUEST_TIMEOUT = config('MISSKEY_REQUEST_TIMEOUT', cast=int, default=30)
MISSKEY_PAGE_LIMIT = config('MISSKEY_PAGE_LIMIT', cast=int, default=100)
MISSKEY_MOVE_WORKERS = config('MISSKEY_MOVE_WORKERS', cast=int, default=4)

# Direct browser uploads need the API key, keep them off unless trusted
MISSKEY_EXPOSE_UPLOAD_TOKEN = config(
    'MISSKEY_EXPOSE_UPLOAD_TOKEN',
    cast=bool,
    default=False,
)

# Drive layout: {DRIVE_ROOT_FOLDER}/{user_id}/{DRIVE_DATA_FOLDER}/...
DRIVE_ROOT_FOLDER = config('DRIVE_ROOT_FOLDER', default='drive')
DRIVE_DATA_FOLDER = config('DRIVE_DATA_FOLDER', default='data')
DRIVE_RECENT_FILES_LIMIT = config('DRIVE_RECENT_FILES_LIMIT', cast=int, default=10)

# cheroot server host and port
DRIVE_SERVER_HOST = config('DRIVE_SERVER_HOST', default='0.0.0.0')
DRIVE_SERVER_PORT = config('DRIVE_SERVER_PORT', cast=int, default=8000)
