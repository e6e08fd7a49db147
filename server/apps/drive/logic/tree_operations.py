"""Recursive walks over a user's drive: search, recent files, media scan."""

import heapq
import logging
from collections.abc import Iterator
from typing import Any, Final, Literal

from django.conf import settings
from django.core.exceptions import ValidationError

from server.apps.drive.exceptions import MisskeyAPIError
from server.apps.drive.infrastructure.metadata import is_media
from server.apps.drive.infrastructure.misskey import MisskeyClient, get_client
from server.apps.drive.items import DriveFile, DriveFolder
from server.apps.drive.logic.user_operations import (
    get_data_directory_id,
    get_user_directory_id,
)

logger = logging.getLogger(__name__)

_MAX_RECENT_FILES: Final = 100
_DEFAULT_RECENT_FILES: Final = 10

TreeEntry = tuple[Literal['file', 'folder'], dict[str, Any]]


def walk_tree(client: MisskeyClient, folder_id: str | None) -> Iterator[TreeEntry]:
    """Walk every folder and file below a folder, depth first.

    A folder's files come first, then its subfolders, then the contents
    of each subfolder in turn. A folder that cannot be listed is logged
    and skipped, so one broken branch does not hide the rest of the tree.

    Args:
        client: Misskey client.
        folder_id: Folder to start from, None yields nothing.

    Yields:
        ``('file', record)`` and ``('folder', record)`` tuples.
    """
    if folder_id is None:
        return

    pending = [folder_id]
    while pending:
        current = pending.pop()
        try:
            files = list(client.iter_files(current))
            subfolders = list(client.iter_folders(current))
        except MisskeyAPIError:
            logger.warning('Skipping unreadable folder %s', current, exc_info=True)
            continue

        for file_record in files:
            yield 'file', file_record
        for folder_record in subfolders:
            yield 'folder', folder_record
        pending.extend(reversed([record['id'] for record in subfolders]))


def walk_files(
    client: MisskeyClient,
    folder_id: str | None,
) -> Iterator[dict[str, Any]]:
    """Walk every file below a folder."""
    for kind, record in walk_tree(client, folder_id):
        if kind == 'file':
            yield record


def scan_media(user_id: str) -> list[dict[str, Any]]:
    """Find every image and video in the user's directory.

    Args:
        user_id: Owner of the files.

    Returns:
        Media entries with URLs and image/video flags.
    """
    client = get_client()
    user_folder_id = get_user_directory_id(user_id, client)
    logger.info(
        'Scanning media files for user %s (directory: %s)',
        user_id,
        user_folder_id or 'not found',
    )

    media = [
        DriveFile.from_api(record).as_media()
        for record in walk_files(client, user_folder_id)
        if is_media(record.get('type'))
    ]
    logger.info('Found %d media files for user %s', len(media), user_id)
    return media


def recent_files(user_id: str, limit: int | None = None) -> list[dict[str, Any]]:
    """Get the newest files in the user's data folder.

    Args:
        user_id: Owner of the files.
        limit: Number of files, defaults to DRIVE_RECENT_FILES_LIMIT.

    Returns:
        File entries, newest first.

    Raises:
        ValidationError: If limit is not between 1 and 100.
    """
    if limit is None:
        limit = getattr(settings, 'DRIVE_RECENT_FILES_LIMIT', _DEFAULT_RECENT_FILES)
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError('Invalid limit')
    if not 1 <= limit <= _MAX_RECENT_FILES:
        raise ValidationError(f'Limit must be between 1 and {_MAX_RECENT_FILES}')

    client = get_client()
    data_folder_id = get_data_directory_id(user_id, client)
    newest = heapq.nlargest(
        limit,
        walk_files(client, data_folder_id),
        key=lambda record: record.get('createdAt') or '',
    )
    return [DriveFile.from_api(record).as_item(with_folder=True) for record in newest]


def search_items(user_id: str, query: str) -> list[dict[str, Any]]:
    """Search folder and file names in the user's data folder.

    Matching is a case-insensitive substring test on the name.

    Args:
        user_id: Owner of the items.
        query: Text to look for.

    Returns:
        Matching folders first, then matching files.

    Raises:
        ValidationError: If the query is blank.
    """
    needle = (query or '').strip().casefold()
    if not needle:
        raise ValidationError('Missing required parameters')

    client = get_client()
    data_folder_id = get_data_directory_id(user_id, client)

    folders: list[dict[str, Any]] = []
    files: list[dict[str, Any]] = []
    for kind, record in walk_tree(client, data_folder_id):
        if needle not in (record.get('name') or '').casefold():
            continue
        if kind == 'folder':
            folders.append(DriveFolder.from_api(record).as_item())
        else:
            files.append(DriveFile.from_api(record).as_item(with_folder=True))

    logger.info(
        'Search "%s" for user %s: %d folders, %d files',
        query,
        user_id,
        len(folders),
        len(files),
    )
    return folders + files
