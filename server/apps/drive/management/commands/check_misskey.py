"""Management command to check the connection to the Misskey instance."""

import json
from typing import Any, final, override

from django.core.management.base import BaseCommand, CommandError

from server.apps.drive.logic.health import check_environment, probe_connection


@final
class Command(BaseCommand):
    """Verify Misskey credentials and print what the server reports."""

    help = 'Check MISSKEY API configuration and connectivity'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--json',
            action='store_true',
            help='Print the raw check results as JSON',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If either check fails.
        """
        environment = check_environment()
        connection = probe_connection()

        if options['json']:
            self.stdout.write(json.dumps(
                {'environment': environment, 'connection': connection},
                indent=2,
            ))
        else:
            self.stdout.write(environment['message'])
            self.stdout.write(connection['message'])

        if not (environment['success'] and connection['success']):
            raise CommandError(connection.get('error') or connection['message'])

        server_info = connection['serverInfo']
        self.stdout.write(
            self.style.SUCCESS(
                f'Connected to {server_info["name"]} '
                f'({server_info["url"]}), version {connection["apiVersion"]}',
            ),
        )
