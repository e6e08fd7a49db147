"""JSON endpoints of the file manager.

Every endpoint except the two health checks takes a POST with a JSON
body (or a multipart form for uploads) and replies with JSON. Errors
are always ``{"error": message}`` with a 4xx or 5xx status.
"""

import json
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, Final

from django.core.exceptions import ValidationError
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from server.apps.drive.exceptions import (
    FeatureDisabledError,
    FolderNotFoundError,
    MisskeyAPIError,
    MisskeyConfigurationError,
)
from server.apps.drive.infrastructure.misskey import get_client
from server.apps.drive.logic import (
    health,
    item_operations,
    tree_operations,
    upload_operations,
    user_operations,
)
from server.apps.drive.logic.moderation import check_nsfw
from server.apps.drive.logic.path_resolver import DrivePathMapper, FolderResolver

logger = logging.getLogger(__name__)

_MISSING_PARAMETERS: Final = 'Missing required parameters'

JsonView = Callable[..., JsonResponse]


def api_endpoint(action: str) -> Callable[[JsonView], JsonView]:
    """Turn drive exceptions raised by a view into JSON error replies.

    Args:
        action: What the view does, used in fallback messages
            (e.g. ``list items`` gives "Failed to list items").

    Returns:
        View decorator.
    """
    def decorator(view: JsonView) -> JsonView:
        @csrf_exempt
        @wraps(view)
        def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> JsonResponse:
            try:
                return view(request, *args, **kwargs)
            except ValidationError as error:
                logger.warning('Rejected request to %s: %s', action, error.messages)
                return _error_response(error.messages[0], status=400)
            except FolderNotFoundError as error:
                return _error_response(str(error), status=404)
            except FeatureDisabledError as error:
                return _error_response(str(error), status=403)
            except (MisskeyAPIError, MisskeyConfigurationError) as error:
                logger.exception('Failed to %s', action)
                return _error_response(str(error) or f'Failed to {action}', status=500)
            except Exception:
                logger.exception('Failed to %s', action)
                return _error_response('Internal server error', status=500)
        return wrapper
    return decorator


@require_GET
@api_endpoint('check environment')
def check_env(request: HttpRequest) -> JsonResponse:
    """Report whether Misskey credentials are configured and valid."""
    return JsonResponse(health.check_environment())


@require_GET
@api_endpoint('test connection')
def connection_status(request: HttpRequest) -> JsonResponse:
    """Report Misskey instance name and version."""
    return JsonResponse(health.probe_connection())


@require_POST
@api_endpoint('check image')
def check_image(request: HttpRequest) -> JsonResponse:
    """Run the NSFW classifier on an uploaded image."""
    uploaded = request.FILES.get('file')
    if uploaded is None:
        return _error_response('No file provided', status=400)
    return JsonResponse(check_nsfw(uploaded, uploaded.content_type, uploaded.name))


@require_POST
@api_endpoint('create folder')
def create_folder(request: HttpRequest) -> JsonResponse:
    """Create a folder inside an existing folder."""
    user_id, path, folder_name = _require(
        _read_json(request), 'userId', 'path', 'folderName',
    )
    folder = item_operations.create_folder(user_id, path, folder_name)
    return JsonResponse({'success': True, 'folder': folder})


@require_POST
@api_endpoint('delete item')
def delete_item(request: HttpRequest) -> JsonResponse:
    """Delete a file or an empty folder."""
    item_id, item_type = _require(_read_json(request), 'itemId', 'itemType')
    item_operations.delete_item(item_id, item_type)
    return JsonResponse({'success': True})


@require_POST
@api_endpoint('ensure directory exists')
def ensure_directory(request: HttpRequest) -> JsonResponse:
    """Create every missing folder along a path."""
    payload = _read_json(request)
    path = payload.get('path')
    if not path or not isinstance(path, str):
        raise ValidationError('Missing path parameter')

    user_id = payload.get('userId')
    if user_id:
        DrivePathMapper(user_id).check_path(path)

    directory_id = FolderResolver(get_client()).ensure(path)
    return JsonResponse({'success': True, 'directoryId': directory_id})


@require_POST
@api_endpoint('generate upload token')
def get_upload_token(request: HttpRequest) -> JsonResponse:
    """Hand out direct upload credentials, when enabled."""
    payload = _read_json(request)
    file_name, file_type = _require(payload, 'fileName', 'fileType')
    return JsonResponse(
        upload_operations.get_upload_token(
            file_name,
            file_type,
            payload.get('folderId'),
        ),
    )


@require_POST
@api_endpoint('get item details')
def item_details(request: HttpRequest) -> JsonResponse:
    """Get details of a file or folder."""
    item_id, item_type = _require(_read_json(request), 'itemId', 'itemType')
    details = item_operations.get_item_details(item_id, item_type)
    return JsonResponse({'success': True, 'details': details})


@require_POST
@api_endpoint('list collections')
def list_collections(request: HttpRequest) -> JsonResponse:
    """List the user's top-level folders."""
    payload = _read_json(request)
    if not payload.get('userId'):
        raise ValidationError('Missing user ID')
    collections = item_operations.list_collections(payload['userId'])
    return JsonResponse({'collections': collections})


@require_POST
@api_endpoint('list items')
def list_items(request: HttpRequest) -> JsonResponse:
    """List folders and files at a path."""
    user_id, path = _require(_read_json(request), 'userId', 'path')
    items, folder_id = item_operations.list_items(user_id, path)
    if folder_id is None:
        return JsonResponse({'items': items})
    return JsonResponse({'items': items, 'folderId': folder_id})


@require_POST
@api_endpoint('move items')
def move_items(request: HttpRequest) -> JsonResponse:
    """Move several items into one folder."""
    payload = _read_json(request)
    summary = item_operations.move_items(
        payload.get('items'),
        payload.get('targetFolderId'),
    )
    return JsonResponse(summary)


@require_POST
@api_endpoint('get file preview')
def preview(request: HttpRequest) -> JsonResponse:
    """Get the full drive record of a file."""
    payload = _read_json(request)
    if not payload.get('fileId'):
        raise ValidationError('Missing file ID')
    drive_file = item_operations.get_file_preview(payload['fileId'])
    return JsonResponse({'success': True, 'file': drive_file})


@require_POST
@api_endpoint('get recent files')
def recent_files(request: HttpRequest) -> JsonResponse:
    """List the newest files of the user."""
    payload = _read_json(request)
    if not payload.get('userId'):
        raise ValidationError('Missing user ID')
    files = tree_operations.recent_files(payload['userId'], payload.get('limit'))
    return JsonResponse({'files': files})


@require_POST
@api_endpoint('rename item')
def rename_item(request: HttpRequest) -> JsonResponse:
    """Rename a file or folder."""
    item_id, item_type, new_name = _require(
        _read_json(request), 'itemId', 'itemType', 'newName',
    )
    item_operations.rename_item(item_id, item_type, new_name)
    return JsonResponse({'success': True})


@require_POST
@api_endpoint('scan media files')
def scan_media(request: HttpRequest) -> JsonResponse:
    """List every image and video of the user."""
    payload = _read_json(request)
    if not payload.get('userId'):
        raise ValidationError('Missing user ID')
    media_files = tree_operations.scan_media(payload['userId'])
    return JsonResponse({'success': True, 'mediaFiles': media_files})


@require_POST
@api_endpoint('search items')
def search_items(request: HttpRequest) -> JsonResponse:
    """Search the user's folders and files by name."""
    user_id, query = _require(_read_json(request), 'userId', 'query')
    results = tree_operations.search_items(user_id, query)
    return JsonResponse({'success': True, 'results': results})


@require_POST
@api_endpoint('upload files')
def upload_files(request: HttpRequest) -> JsonResponse:
    """Upload multipart files into a folder, creating it if needed."""
    user_id = request.POST.get('userId')
    path = request.POST.get('path')
    files = request.FILES.getlist('files')
    if not user_id or not path or not files:
        raise ValidationError(_MISSING_PARAMETERS)

    logger.info(
        'Upload request received - userId: %s, path: %s, files count: %d',
        user_id,
        path,
        len(files),
    )
    return JsonResponse(upload_operations.upload_files(user_id, path, files))


@require_POST
@api_endpoint('create user directory')
def validate_user(request: HttpRequest) -> JsonResponse:
    """Validate a user ID and make sure its directories exist."""
    payload = _read_json(request)
    directory_id = user_operations.ensure_user_directory(payload.get('userId'))
    return JsonResponse({'success': True, 'directoryId': directory_id})


def _read_json(request: HttpRequest) -> dict[str, Any]:
    try:
        payload = json.loads(request.body or b'{}')
    except ValueError as error:
        raise ValidationError('Invalid JSON body') from error
    if not isinstance(payload, dict):
        raise ValidationError('Invalid JSON body')
    return payload


def _require(payload: dict[str, Any], *keys: str) -> tuple[Any, ...]:
    values = tuple(payload.get(key) for key in keys)
    if not all(isinstance(value, str) and value.strip() for value in values):
        raise ValidationError(_MISSING_PARAMETERS)
    return values


def _error_response(message: str, status: int) -> JsonResponse:
    return JsonResponse({'error': message}, status=status)
