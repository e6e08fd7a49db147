"""Business logic for uploads into the drive."""

import logging
from collections.abc import Sequence
from typing import Any

from django.conf import settings
from django.core.files.uploadedfile import UploadedFile

from server.apps.drive.exceptions import FeatureDisabledError, MisskeyAPIError
from server.apps.drive.infrastructure.metadata import detect_mime_type, is_image
from server.apps.drive.infrastructure.misskey import (
    UPLOAD_ENDPOINT,
    MisskeyClient,
    get_client,
)
from server.apps.drive.logic.moderation import check_nsfw, is_upload_check_enabled
from server.apps.drive.logic.path_resolver import DrivePathMapper, FolderResolver

logger = logging.getLogger(__name__)


def upload_files(
    user_id: str,
    path: str,
    files: Sequence[UploadedFile],
) -> dict[str, Any]:
    """Upload files into a folder, creating the folder path first.

    Files are uploaded one by one; a failed file does not stop the
    rest and files already uploaded are kept.

    Args:
        user_id: Owner of the path.
        path: Drive path of the target folder.
        files: Uploaded files from the request.

    Returns:
        Summary with one result per file.

    Raises:
        PathIsolationError: If path is outside the user's folder.
        MisskeyAPIError: If the target folder cannot be created.
    """
    DrivePathMapper(user_id).check_path(path)
    client = get_client()

    for index, uploaded in enumerate(files, start=1):
        logger.info(
            'File %d: %s, size: %s, type: %s',
            index,
            uploaded.name,
            uploaded.size,
            uploaded.content_type,
        )

    folder_id = FolderResolver(client).ensure(path)
    if folder_id is None:
        raise MisskeyAPIError('Failed to find or create directory')
    logger.info('Directory found/created with ID: %s', folder_id)

    results = [_upload_one(client, folder_id, uploaded) for uploaded in files]
    uploaded_count = sum(1 for result in results if result['success'])

    return {
        'success': uploaded_count > 0,
        'message': f'{uploaded_count} of {len(files)} files uploaded successfully',
        'results': results,
    }


def _upload_one(
    client: MisskeyClient,
    folder_id: str,
    uploaded: UploadedFile,
) -> dict[str, Any]:
    name = uploaded.name or 'upload'
    content_type = detect_mime_type(name, uploaded.content_type)

    if is_upload_check_enabled() and is_image(content_type):
        verdict = check_nsfw(uploaded, content_type, name)
        uploaded.seek(0)
        if verdict['isNSFW']:
            logger.warning('Rejected NSFW upload: %s', name)
            return {
                'success': False,
                'fileName': name,
                'error': 'Content detected as NSFW',
            }

    try:
        record = client.upload(uploaded, name, folder_id, content_type)
    except MisskeyAPIError as error:
        logger.exception('Error uploading file %s', name)
        return {'success': False, 'fileName': name, 'error': str(error)}

    logger.info('Upload successful for file: %s', name)
    return {
        'success': True,
        'fileName': name,
        'fileId': record.get('id') or 'unknown',
        'message': 'File uploaded successfully',
    }


def get_upload_token(
    file_name: str,
    file_type: str,
    folder_id: str | None = None,
) -> dict[str, Any]:
    """Hand out what a browser needs to upload straight to Misskey.

    This reveals the API key to the browser, so it only works when
    MISSKEY_EXPOSE_UPLOAD_TOKEN is enabled.

    Args:
        file_name: Name of the file to be uploaded.
        file_type: Its MIME type.
        folder_id: Target folder.

    Returns:
        Upload URL, key and echo of the request.

    Raises:
        FeatureDisabledError: If direct uploads are disabled.
    """
    if not getattr(settings, 'MISSKEY_EXPOSE_UPLOAD_TOKEN', False):
        raise FeatureDisabledError('Direct upload tokens are disabled')

    client = get_client()
    logger.info('Issuing direct upload token for %s (%s)', file_name, file_type)
    return {
        'success': True,
        'uploadUrl': client.endpoint_url(UPLOAD_ENDPOINT),
        'apiKey': client.api_key,
        'folderId': folder_id,
        'fileName': file_name,
    }
