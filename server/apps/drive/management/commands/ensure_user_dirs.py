"""Management command to create drive folders for users up front."""

import logging
from typing import Any

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from server.apps.drive.exceptions import MisskeyAPIError, MisskeyConfigurationError
from server.apps.drive.logic.user_operations import ensure_user_directory

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Create ``drive/<user>/data`` for each given user ID."""

    help = 'Create drive folders for the given user IDs'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument('user_ids', nargs='+', help='User IDs to prepare')

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If any user could not be prepared.
        """
        failed = 0

        for user_id in options['user_ids']:
            try:
                folder_id = ensure_user_directory(user_id)
            except ValidationError as exc:
                self.stderr.write(f'Skipped {user_id}: {exc.messages[0]}')
                failed += 1
                continue
            except MisskeyConfigurationError as exc:
                raise CommandError(str(exc)) from exc
            except MisskeyAPIError as exc:
                self.stderr.write(f'Failed to prepare {user_id}: {exc}')
                logger.exception('Failed to create directories for %s', user_id)
                failed += 1
                continue
            self.stdout.write(f'Ready: {user_id} (data folder: {folder_id})')

        prepared = len(options['user_ids']) - failed
        self.stdout.write(
            self.style.SUCCESS(f'Prepared {prepared} users, {failed} failed'),
        )
        if failed:
            raise CommandError(f'{failed} users could not be prepared')
