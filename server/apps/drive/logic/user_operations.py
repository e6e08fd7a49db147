"""Business logic for user directories."""

import logging

from server.apps.drive.infrastructure.metadata import validate_user_id
from server.apps.drive.infrastructure.misskey import MisskeyClient, get_client
from server.apps.drive.logic.path_resolver import DrivePathMapper, FolderResolver

logger = logging.getLogger(__name__)


def ensure_user_directory(
    user_id: str,
    client: MisskeyClient | None = None,
) -> str:
    """Create the user's directory structure if it does not exist.

    Creates ``drive/{user_id}/data`` segment by segment.

    Args:
        user_id: User ID, validated here.
        client: Misskey client, built from settings if omitted.

    Returns:
        ID of the user's data folder.

    Raises:
        ValidationError: If the user ID is invalid.
        MisskeyAPIError: If a folder cannot be found or created.
    """
    validate_user_id(user_id)
    mapper = DrivePathMapper(user_id)
    resolver = FolderResolver(client or get_client())

    logger.info('Creating directory structure for user: %s', user_id)
    data_folder_id = resolver.ensure(mapper.data_root)
    logger.info('Data directory for %s: %s', user_id, data_folder_id)
    return data_folder_id  # type: ignore[return-value]


def get_user_directory_id(
    user_id: str,
    client: MisskeyClient | None = None,
) -> str | None:
    """Get the ID of ``drive/{user_id}``.

    Args:
        user_id: User ID.
        client: Misskey client, built from settings if omitted.

    Returns:
        Folder ID, or None if the user has no directory yet.
    """
    mapper = DrivePathMapper(user_id)
    return FolderResolver(client or get_client()).resolve(mapper.user_root)


def get_data_directory_id(
    user_id: str,
    client: MisskeyClient | None = None,
) -> str | None:
    """Get the ID of ``drive/{user_id}/data``.

    Args:
        user_id: User ID.
        client: Misskey client, built from settings if omitted.

    Returns:
        Folder ID, or None if the data folder does not exist.
    """
    mapper = DrivePathMapper(user_id)
    return FolderResolver(client or get_client()).resolve(mapper.data_root)
