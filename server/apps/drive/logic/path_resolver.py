"""Translation of slash-delimited drive paths into Misskey folder IDs.

Misskey addresses folders only by ID, while the file manager works with
logical paths like ``drive/alice/data/photos/2024``. Every user keeps
their files under ``{DRIVE_ROOT_FOLDER}/{user_id}/{DRIVE_DATA_FOLDER}``.

Resolution walks the drive from the root one segment at a time. It is
strictly sequential and uncached: each segment costs one API call, and
a folder renamed between two calls is seen immediately.
"""

import logging
from typing import Final, final

from django.conf import settings

from server.apps.drive.exceptions import (
    FolderNotFoundError,
    MisskeyAPIError,
    PathIsolationError,
)
from server.apps.drive.infrastructure.misskey import MisskeyClient
from server.apps.drive.items import DriveFolder

logger = logging.getLogger(__name__)

# Character used to split drive paths
_PATH_SEPARATOR: Final = '/'

_PARENT_SEGMENT: Final = '..'


def split_path(path: str) -> list[str]:
    """Split a drive path into folder names, dropping empty segments.

    Args:
        path: Slash-delimited path (e.g., /drive/alice//data/).

    Returns:
        Folder names (e.g., ['drive', 'alice', 'data']).
    """
    return [segment for segment in path.split(_PATH_SEPARATOR) if segment]


@final
class DrivePathMapper:
    """Translates between user-relative paths and drive paths.

    Relative paths are what the user sees: /photos/2024
    Drive paths include the user prefix: drive/alice/data/photos/2024
    """

    def __init__(self, user_id: str) -> None:
        """Initialize path mapper with user ID.

        Args:
            user_id: ID of the user owning the paths.
        """
        self._user_id = user_id
        self._root_folder = getattr(settings, 'DRIVE_ROOT_FOLDER', 'drive')
        self._data_folder = getattr(settings, 'DRIVE_DATA_FOLDER', 'data')

    @property
    def user_root(self) -> str:
        """Get the user's own folder, e.g. drive/alice."""
        return f'{self._root_folder}/{self._user_id}'

    @property
    def data_root(self) -> str:
        """Get the user's data folder, e.g. drive/alice/data."""
        return f'{self.user_root}/{self._data_folder}'

    def to_drive_path(self, relative_path: str) -> str:
        """Convert user-relative path to drive path.

        Args:
            relative_path: Path inside the data folder (e.g., /photos).

        Returns:
            Drive path (e.g., drive/alice/data/photos).
        """
        normalized = _PATH_SEPARATOR.join(split_path(relative_path))
        if not normalized:
            return self.data_root
        return f'{self.data_root}/{normalized}'

    def join_paths(self, parent: str, name: str) -> str:
        """Join parent path and name.

        Args:
            parent: Parent path (e.g., photos).
            name: Name to append (e.g., 2024).

        Returns:
            Joined path without leading slash (e.g., photos/2024).
        """
        return _PATH_SEPARATOR.join(split_path(parent) + split_path(name))

    def get_parent_path(self, relative_path: str) -> str:
        """Get parent of a relative path, empty string for top level."""
        return _PATH_SEPARATOR.join(split_path(relative_path)[:-1])

    def validate_path(self, drive_path: str) -> bool:
        """Check a drive path for traversal tricks and user isolation.

        Args:
            drive_path: Drive path to validate.

        Returns:
            True if path is safe and inside the user's folder.
        """
        if '\x00' in drive_path:
            return False

        segments = split_path(drive_path)
        if _PARENT_SEGMENT in segments:
            return False

        return segments[:2] == split_path(self.user_root)

    def check_path(self, drive_path: str) -> str:
        """Validate a drive path, raising for unsafe ones.

        Args:
            drive_path: Drive path to validate.

        Returns:
            The same path.

        Raises:
            PathIsolationError: If path is unsafe or outside user's folder.
        """
        if not self.validate_path(drive_path):
            logger.warning(
                'Path rejected: %s (user: %s)',
                drive_path,
                self._user_id,
            )
            raise PathIsolationError('Invalid path')
        return drive_path


@final
class FolderResolver:
    """Resolves drive paths to folder IDs by walking the remote tree."""

    def __init__(self, client: MisskeyClient) -> None:
        """Initialize resolver.

        Args:
            client: Misskey API client.
        """
        self._client = client

    def find_child(self, name: str, parent_id: str | None) -> DriveFolder | None:
        """Find a folder by exact name directly under a parent.

        Args:
            name: Folder name.
            parent_id: Parent folder ID, None for the drive root.

        Returns:
            The folder, or None if no folder has exactly this name.
        """
        for record in self._client.find_folders(name, parent_id):
            if record.get('name') == name and record.get('id'):
                return DriveFolder.from_api(record)
        return None

    def resolve_chain(self, path: str) -> list[DriveFolder] | None:
        """Resolve every folder along a path.

        Args:
            path: Drive path (e.g., drive/alice/data/photos).

        Returns:
            Folders from the top-level one down to the last segment,
            empty list for the root, None if any segment is missing.
        """
        logger.debug('Resolving folder path: %s', path)
        chain: list[DriveFolder] = []
        parent_id: str | None = None

        for segment in split_path(path):
            folder = self.find_child(segment, parent_id)
            if folder is None:
                logger.info(
                    'Folder not found: %s (parent: %s)',
                    segment,
                    parent_id or 'root',
                )
                return None
            chain.append(folder)
            parent_id = folder.id

        return chain

    def resolve(self, path: str) -> str | None:
        """Resolve a path to the ID of its last folder.

        Args:
            path: Drive path.

        Returns:
            Folder ID, or None if the path does not exist or is the root.
        """
        chain = self.resolve_chain(path)
        if not chain:
            return None
        logger.info('Resolved %s to folder %s', path, chain[-1].id)
        return chain[-1].id

    def resolve_existing(self, path: str) -> str | None:
        """Resolve a path that must exist.

        Args:
            path: Drive path.

        Returns:
            Folder ID, None for the root.

        Raises:
            FolderNotFoundError: If any segment is missing.
        """
        chain = self.resolve_chain(path)
        if chain is None:
            raise FolderNotFoundError(path)
        return chain[-1].id if chain else None

    def ensure(self, path: str) -> str | None:
        """Resolve a path, creating every missing folder along it.

        Calling it twice with the same path creates nothing the second
        time. Segments created before a failure are left in place.

        Args:
            path: Drive path.

        Returns:
            ID of the last folder, None for the root.

        Raises:
            MisskeyAPIError: If a segment can be neither found nor created.
        """
        logger.info('Ensuring directory path exists: %s', path)
        parent_id: str | None = None

        for segment in split_path(path):
            try:
                folder = self.find_child(segment, parent_id)
                if folder is None:
                    folder = DriveFolder.from_api(
                        self._client.create_folder(segment, parent_id),
                    )
                    logger.info('Created directory %s: %s', segment, folder.id)
            except MisskeyAPIError as error:
                logger.exception('Error processing directory %s', segment)
                raise MisskeyAPIError(
                    f'Failed to process directory {segment}: {error}',
                    status_code=error.status_code,
                    code=error.code,
                ) from error
            parent_id = folder.id

        return parent_id
