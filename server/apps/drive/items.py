"""Drive item records as returned to the browser.

The Misskey API returns rich records; the front end needs a small,
stable subset with camelCase keys. These dataclasses are the single
place where that mapping happens.
"""

from dataclasses import dataclass
from typing import Any, final

from server.apps.drive.infrastructure.metadata import is_image, is_video


@final
@dataclass(frozen=True)
class DriveFolder:
    """Folder in the Misskey drive."""

    id: str
    name: str
    created_at: str | None = None
    parent_id: str | None = None

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> 'DriveFolder':
        """Build from a Misskey folder record."""
        return cls(
            id=record['id'],
            name=record.get('name', ''),
            created_at=record.get('createdAt'),
            parent_id=record.get('parentId'),
        )

    def as_item(self) -> dict[str, Any]:
        """Serialize as a listing entry."""
        return {
            'id': self.id,
            'name': self.name,
            'type': 'folder',
            'createdAt': self.created_at,
        }

    def as_collection(self) -> dict[str, Any]:
        """Serialize as a collection (top-level folder) entry."""
        return {'id': self.id, 'name': self.name}


@final
@dataclass(frozen=True)
class DriveFile:
    """File in the Misskey drive."""

    id: str
    name: str
    created_at: str | None = None
    size: int | None = None
    mime_type: str | None = None
    thumbnail_url: str | None = None
    url: str | None = None
    folder_id: str | None = None

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> 'DriveFile':
        """Build from a Misskey file record."""
        return cls(
            id=record['id'],
            name=record.get('name', ''),
            created_at=record.get('createdAt'),
            size=record.get('size'),
            mime_type=record.get('type'),
            thumbnail_url=record.get('thumbnailUrl'),
            url=record.get('url'),
            folder_id=record.get('folderId'),
        )

    @property
    def is_image(self) -> bool:
        """Whether the file is an image."""
        return is_image(self.mime_type)

    @property
    def is_video(self) -> bool:
        """Whether the file is a video."""
        return is_video(self.mime_type)

    def as_item(self, *, with_folder: bool = False) -> dict[str, Any]:
        """Serialize as a listing entry.

        Args:
            with_folder: Include ``folderId``, used where results come
                from many folders (search, recent files).

        Returns:
            JSON-ready dictionary.
        """
        item: dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'type': 'file',
            'createdAt': self.created_at,
            'size': self.size,
            'mimeType': self.mime_type,
            'thumbnailUrl': self.thumbnail_url,
        }
        if with_folder:
            item['folderId'] = self.folder_id
        return item

    def as_media(self) -> dict[str, Any]:
        """Serialize as a media scan entry."""
        return {
            **self.as_item(with_folder=True),
            'url': self.url,
            'isImage': self.is_image,
            'isVideo': self.is_video,
        }
