"""Django app configuration for drive app."""

from django.apps import AppConfig


class DriveConfig(AppConfig):
    """Configuration for drive app."""

    name = 'server.apps.drive'
    verbose_name = 'Drive'
