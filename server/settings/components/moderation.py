"""NSFW classifier settings."""

from server.settings.components import config

# External classifier endpoint, empty string disables the check
NSFW_CLASSIFIER_URL = config('NSFW_CLASSIFIER_URL', default='')
NSFW_CLASSIFIER_TIMEOUT = config('NSFW_CLASSIFIER_TIMEOUT', cast=int, default=30)

# Porn + Sexy + Hentai probability above which an image is rejected
NSFW_THRESHOLD = config('NSFW_THRESHOLD', cast=float, default=0.5)
NSFW_CHECK_ON_UPLOAD = config('NSFW_CHECK_ON_UPLOAD', cast=bool, default=False)
