"""Name validation and MIME type utilities for drive items."""

import mimetypes
import re
from typing import Final, Literal

from django.core.exceptions import ValidationError

ItemType = Literal['file', 'folder']

_NAME_PATTERN: Final = re.compile(r'^[a-zA-Z0-9_\-. ]+$')
_RESERVED_NAMES: Final = frozenset(('.', '..'))
_MIN_USER_ID_LENGTH: Final = 3

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'

INVALID_NAME_MESSAGE: Final = (
    'Invalid name. Use only letters, numbers, spaces, '
    'and the following characters: _ - .'
)


def validate_item_name(name: str) -> None:
    """Validate a file or folder name.

    Args:
        name: Proposed name.

    Raises:
        ValidationError: If the name has forbidden characters.
    """
    if not isinstance(name, str) or not _NAME_PATTERN.match(name):
        raise ValidationError(INVALID_NAME_MESSAGE)
    if name.strip() in _RESERVED_NAMES:
        raise ValidationError(INVALID_NAME_MESSAGE)


def validate_user_id(user_id: object) -> str:
    """Validate a user ID.

    The user ID becomes a folder name under the drive root, so it
    follows the same character rules as item names.

    Args:
        user_id: Raw value from the request.

    Returns:
        The validated user ID.

    Raises:
        ValidationError: If the value is not a usable user ID.
    """
    if not isinstance(user_id, str) or not user_id:
        raise ValidationError('Invalid user ID')
    if len(user_id) < _MIN_USER_ID_LENGTH:
        raise ValidationError(
            f'Username must be at least {_MIN_USER_ID_LENGTH} characters long',
        )
    if not _NAME_PATTERN.match(user_id) or user_id in _RESERVED_NAMES:
        raise ValidationError(
            'Invalid user ID. Use only letters, numbers, spaces, '
            'and the following characters: _ - .',
        )
    return user_id


def validate_item_type(item_type: object) -> ItemType:
    """Validate an item type.

    Args:
        item_type: Raw value from the request.

    Returns:
        ``'file'`` or ``'folder'``.

    Raises:
        ValidationError: For any other value.
    """
    if item_type == 'file':
        return 'file'
    if item_type == 'folder':
        return 'folder'
    raise ValidationError('Invalid item type')


def detect_mime_type(filename: str, declared: str | None = None) -> str:
    """Detect MIME type of an uploaded file.

    Trusts the type declared by the browser and falls back to
    guessing from the filename extension.

    Args:
        filename: Filename with extension.
        declared: Content type sent with the upload, if any.

    Returns:
        MIME type string, ``application/octet-stream`` if unknown.
    """
    if declared and declared != _DEFAULT_MIME_TYPE:
        return declared
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def is_image(mime_type: str | None) -> bool:
    """Check whether MIME type is an image."""
    return bool(mime_type) and mime_type.startswith('image/')


def is_video(mime_type: str | None) -> bool:
    """Check whether MIME type is a video."""
    return bool(mime_type) and mime_type.startswith('video/')


def is_media(mime_type: str | None) -> bool:
    """Check whether MIME type is an image or a video."""
    return is_image(mime_type) or is_video(mime_type)
