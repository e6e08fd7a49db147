"""Business logic for drive item operations.

Listing, folder creation, rename, move, delete and details. Each
operation is a thin translation onto one or two Misskey endpoints;
path-based operations go through FolderResolver first.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Final

from django.conf import settings
from django.core.exceptions import ValidationError

from server.apps.drive.exceptions import FolderNotFoundError, MisskeyAPIError
from server.apps.drive.infrastructure.metadata import (
    ItemType,
    validate_item_name,
    validate_item_type,
)
from server.apps.drive.infrastructure.misskey import MisskeyClient, get_client
from server.apps.drive.items import DriveFile, DriveFolder
from server.apps.drive.logic.path_resolver import DrivePathMapper, FolderResolver
from server.apps.drive.logic.user_operations import get_data_directory_id

logger = logging.getLogger(__name__)

_DEFAULT_MOVE_WORKERS: Final = 4


def list_folder_contents(
    client: MisskeyClient,
    folder_id: str,
) -> list[dict[str, Any]]:
    """List every folder and file directly inside a folder.

    Args:
        client: Misskey client.
        folder_id: Folder to list.

    Returns:
        Folder entries first, then file entries.
    """
    logger.info('Listing items in folder: %s', folder_id)
    folders = [
        DriveFolder.from_api(record).as_item()
        for record in client.iter_folders(folder_id)
    ]
    files = [
        DriveFile.from_api(record).as_item()
        for record in client.iter_files(folder_id)
    ]
    logger.debug('Found %d folders and %d files', len(folders), len(files))
    return folders + files


def list_items(
    user_id: str,
    path: str,
) -> tuple[list[dict[str, Any]], str | None]:
    """List the contents of a folder given by path.

    Args:
        user_id: Owner of the path.
        path: Drive path (e.g., drive/alice/data/photos).

    Returns:
        Tuple of (items, folder ID). A missing folder is not an
        error: it yields an empty list and None.

    Raises:
        PathIsolationError: If path is outside the user's folder.
    """
    DrivePathMapper(user_id).check_path(path)
    client = get_client()

    folder_id = FolderResolver(client).resolve(path)
    if folder_id is None:
        logger.info('Directory not found: %s, returning empty list', path)
        return [], None

    return list_folder_contents(client, folder_id), folder_id


def list_collections(user_id: str) -> list[dict[str, Any]]:
    """List collections, the folders directly under the data folder.

    Args:
        user_id: Owner of the collections.

    Returns:
        Collection entries, empty if the data folder does not exist.
    """
    client = get_client()
    data_folder_id = get_data_directory_id(user_id, client)
    if data_folder_id is None:
        return []

    return [
        DriveFolder.from_api(record).as_collection()
        for record in client.iter_folders(data_folder_id)
    ]


def create_folder(user_id: str, path: str, folder_name: str) -> dict[str, Any]:
    """Create a folder inside an existing folder.

    Args:
        user_id: Owner of the path.
        path: Drive path of the parent folder.
        folder_name: Name of the new folder.

    Returns:
        Listing entry of the created folder.

    Raises:
        ValidationError: If the name or path is invalid.
        FolderNotFoundError: If the parent folder does not exist.
        MisskeyAPIError: If creation fails.
    """
    validate_item_name(folder_name)
    DrivePathMapper(user_id).check_path(path)
    client = get_client()

    parent_id = FolderResolver(client).resolve(path)
    if parent_id is None:
        raise FolderNotFoundError(path)

    logger.info('Creating folder "%s" in parent: %s', folder_name, parent_id)
    record = client.create_folder(folder_name, parent_id)
    return DriveFolder.from_api(record).as_item()


def rename_item(item_id: str, item_type: str, new_name: str) -> None:
    """Rename a file or folder.

    Args:
        item_id: Misskey ID of the item.
        item_type: ``file`` or ``folder``.
        new_name: New name.

    Raises:
        ValidationError: If type or name is invalid.
        MisskeyAPIError: If the drive rejects the rename.
    """
    kind = validate_item_type(item_type)
    validate_item_name(new_name)
    client = get_client()

    logger.info('Renaming %s %s to "%s"', kind, item_id, new_name)
    if kind == 'file':
        client.update_file(item_id, name=new_name)
    else:
        client.update_folder(item_id, name=new_name)


def move_item(
    client: MisskeyClient,
    item_id: str,
    item_type: ItemType,
    target_folder_id: str,
) -> None:
    """Move one file or folder into another folder.

    Folders are moved by changing ``parentId``, files by ``folderId``.

    Args:
        client: Misskey client.
        item_id: Misskey ID of the item.
        item_type: ``file`` or ``folder``.
        target_folder_id: Destination folder.
    """
    if item_type == 'folder':
        client.update_folder(item_id, parent_id=target_folder_id)
    else:
        client.update_file(item_id, folder_id=target_folder_id)


def move_items(
    items: list[dict[str, Any]],
    target_folder_id: str,
) -> dict[str, Any]:
    """Move several items into one folder.

    Items are moved independently and in parallel: one failure does
    not stop the others, and nothing is rolled back. Each move gets its
    own client, so no requests session is shared between threads.

    Args:
        items: Entries with ``id`` and ``type`` keys.
        target_folder_id: Destination folder.

    Returns:
        Summary with per-item results in input order.

    Raises:
        ValidationError: If items or target are missing.
    """
    if not isinstance(items, list) or not items or not target_folder_id:
        raise ValidationError('Missing required parameters')

    workers = getattr(settings, 'MISSKEY_MOVE_WORKERS', _DEFAULT_MOVE_WORKERS)

    def move_one(item: Any) -> dict[str, Any]:  # noqa: WPS430
        item_id = item.get('id') if isinstance(item, dict) else None
        try:
            if not item_id:
                raise ValidationError('Missing item ID')
            kind = validate_item_type(item.get('type'))
            move_item(get_client(), item_id, kind, target_folder_id)
        except ValidationError as error:
            return {'id': item_id, 'success': False, 'error': error.messages[0]}
        except MisskeyAPIError as error:
            logger.exception('Error moving item %s', item_id)
            return {'id': item_id, 'success': False, 'error': str(error)}
        return {'id': item_id, 'success': True}

    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(items)))) as pool:
        results = list(pool.map(move_one, items))

    success_count = sum(1 for result in results if result['success'])
    logger.info(
        'Moved %d of %d items to folder %s',
        success_count,
        len(items),
        target_folder_id,
    )
    return {
        'success': success_count > 0,
        'allSuccess': success_count == len(items),
        'successCount': success_count,
        'totalCount': len(items),
        'results': results,
    }


def delete_item(item_id: str, item_type: str) -> None:
    """Delete a file or folder.

    Misskey only deletes empty folders; the API error is propagated.

    Args:
        item_id: Misskey ID of the item.
        item_type: ``file`` or ``folder``.

    Raises:
        ValidationError: If the type is invalid.
        MisskeyAPIError: If the drive rejects the deletion.
    """
    kind = validate_item_type(item_type)
    client = get_client()
    if kind == 'file':
        client.delete_file(item_id)
    else:
        client.delete_folder(item_id)


def get_item_details(item_id: str, item_type: str) -> dict[str, Any]:
    """Get detailed information about a file or folder.

    Args:
        item_id: Misskey ID of the item.
        item_type: ``file`` or ``folder``.

    Returns:
        Details dictionary, keys depend on the item type.
    """
    kind = validate_item_type(item_type)
    client = get_client()

    if kind == 'file':
        record = client.show_file(item_id)
        return {
            'id': record['id'],
            'name': record.get('name'),
            'type': 'file',
            'createdAt': record.get('createdAt'),
            'updatedAt': record.get('updatedAt'),
            'size': record.get('size'),
            'mimeType': record.get('type'),
            'thumbnailUrl': record.get('thumbnailUrl'),
            'url': record.get('url'),
            'properties': record.get('properties') or {},
            'folderId': record.get('folderId'),
            'isSensitive': record.get('isSensitive'),
            'blurhash': record.get('blurhash'),
            'comment': record.get('comment') or '',
        }

    record = client.show_folder(item_id)
    return {
        'id': record['id'],
        'name': record.get('name'),
        'type': 'folder',
        'createdAt': record.get('createdAt'),
        'parentId': record.get('parentId'),
        'foldersCount': record.get('foldersCount'),
        'filesCount': record.get('filesCount'),
        'description': record.get('description') or '',
    }


def get_file_preview(file_id: str) -> dict[str, Any]:
    """Get the full Misskey record of a file for previewing."""
    return get_client().show_file(file_id)
