"""Server-rendered file manager pages.

The signed-in user ID lives in the session. Browsing works with paths
relative to the user's data folder; every form posts back here and
redirects to the folder it came from with a flash message.
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, Final

from django.contrib import messages
from django.core.exceptions import ValidationError
from django.http import HttpRequest, HttpResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from server.apps.drive.exceptions import (
    FolderNotFoundError,
    MisskeyAPIError,
    MisskeyConfigurationError,
)
from server.apps.drive.infrastructure.metadata import is_image, is_video
from server.apps.drive.infrastructure.misskey import get_client
from server.apps.drive.items import DriveFolder
from server.apps.drive.logic import (
    item_operations,
    tree_operations,
    upload_operations,
    user_operations,
)
from server.apps.drive.logic.path_resolver import DrivePathMapper, FolderResolver, split_path

logger = logging.getLogger(__name__)

SESSION_USER_KEY: Final = 'drive_user_id'

VIEW_MODES: Final = ('list', 'grid')

_DRIVE_ERRORS: Final = (MisskeyAPIError, MisskeyConfigurationError, FolderNotFoundError)


def user_required(view: Callable[..., HttpResponse]) -> Callable[..., HttpResponse]:
    """Redirect to the sign-in page unless a user ID is in the session.

    The user ID is passed to the view as its second argument.
    """
    @wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        user_id = request.session.get(SESSION_USER_KEY)
        if not user_id:
            return redirect('drive:index')
        return view(request, user_id, *args, **kwargs)
    return wrapper


@require_http_methods(['GET', 'POST'])
def index(request: HttpRequest) -> HttpResponse:
    """Sign in with a user ID, creating the user's folders on first use."""
    if request.method == 'POST':
        user_id = request.POST.get('user_id', '').strip()
        if _run(request, lambda: user_operations.ensure_user_directory(user_id)):
            request.session[SESSION_USER_KEY] = user_id
            logger.info('User signed in: %s', user_id)
            return redirect('drive:browse_root')

    return render(request, 'drive/index.html', {
        'user_id': request.session.get(SESSION_USER_KEY),
    })


@require_POST
def sign_out(request: HttpRequest) -> HttpResponse:
    """Forget the user ID."""
    request.session.flush()
    return redirect('drive:index')


@require_GET
@user_required
def browse(request: HttpRequest, user_id: str, path: str = '') -> HttpResponse:
    """Show one folder of the user's drive.

    ``?view=grid`` switches to thumbnails, ``?q=`` searches instead.
    """
    query = request.GET.get('q', '').strip()
    if query:
        return _search(request, user_id, query)

    mapper = DrivePathMapper(user_id)
    relative_path = mapper.join_paths('', path)
    items: list[dict[str, Any]] = []
    collections: list[dict[str, Any]] = []
    chain: list[DriveFolder] | None = None

    try:
        drive_path = mapper.check_path(mapper.to_drive_path(relative_path))
        client = get_client()
        chain = FolderResolver(client).resolve_chain(drive_path)
        if chain:
            items = item_operations.list_folder_contents(client, chain[-1].id)
        collections = item_operations.list_collections(user_id)
    except ValidationError as error:
        messages.error(request, error.messages[0])
        return redirect('drive:browse_root')
    except _DRIVE_ERRORS as error:
        logger.exception('Failed to list %s for %s', relative_path, user_id)
        messages.error(request, str(error))

    if relative_path and chain is None:
        messages.warning(request, 'Folder does not exist yet')

    return render(request, 'drive/browse.html', {
        'user_id': user_id,
        'path': relative_path,
        'parent_path': mapper.get_parent_path(relative_path),
        'breadcrumbs': _breadcrumbs(mapper, relative_path, chain),
        'folders': [
            {**item, 'path': mapper.join_paths(relative_path, item['name'])}
            for item in items
            if item['type'] == 'folder'
        ],
        'files': [_with_media_flags(item) for item in items if item['type'] == 'file'],
        'collections': collections,
        'view_mode': _view_mode(request),
        'view_modes': VIEW_MODES,
    })


@require_GET
@user_required
def recent(request: HttpRequest, user_id: str) -> HttpResponse:
    """Show the user's newest files."""
    files: list[dict[str, Any]] = []
    try:
        files = tree_operations.recent_files(user_id)
    except _DRIVE_ERRORS as error:
        logger.exception('Failed to load recent files for %s', user_id)
        messages.error(request, str(error))

    return render(request, 'drive/results.html', {
        'user_id': user_id,
        'title': 'Recent files',
        'results': [_with_media_flags(item) for item in files],
        'view_mode': _view_mode(request),
    })


@require_GET
@user_required
def preview(request: HttpRequest, user_id: str, file_id: str) -> HttpResponse:
    """Show a single file with an inline player for images and videos."""
    try:
        drive_file = item_operations.get_file_preview(file_id)
    except _DRIVE_ERRORS as error:
        logger.exception('Failed to load preview of %s', file_id)
        messages.error(request, str(error))
        return redirect('drive:browse_root')

    return render(request, 'drive/preview.html', {
        'user_id': user_id,
        'file': drive_file,
        'is_image': is_image(drive_file.get('type')),
        'is_video': is_video(drive_file.get('type')),
    })


@require_GET
@user_required
def details(
    request: HttpRequest,
    user_id: str,
    item_type: str,
    item_id: str,
) -> HttpResponse:
    """Show all known properties of a file or folder."""
    try:
        item = item_operations.get_item_details(item_id, item_type)
    except ValidationError as error:
        messages.error(request, error.messages[0])
        return redirect('drive:browse_root')
    except _DRIVE_ERRORS as error:
        logger.exception('Failed to load details of %s %s', item_type, item_id)
        messages.error(request, str(error))
        return redirect('drive:browse_root')

    return render(request, 'drive/details.html', {'user_id': user_id, 'item': item})


@require_POST
@user_required
def upload(request: HttpRequest, user_id: str) -> HttpResponse:
    """Upload files into the current folder."""
    mapper = DrivePathMapper(user_id)
    relative_path = request.POST.get('path', '')
    files = request.FILES.getlist('files')
    if not files:
        messages.error(request, 'No files selected')
        return _back_to(relative_path)

    try:
        summary = upload_operations.upload_files(
            user_id,
            mapper.to_drive_path(relative_path),
            files,
        )
    except ValidationError as error:
        messages.error(request, error.messages[0])
        return redirect('drive:browse_root')
    except _DRIVE_ERRORS as error:
        logger.exception('Upload into %s failed', relative_path)
        messages.error(request, str(error))
        return _back_to(relative_path)

    level = messages.SUCCESS if summary['success'] else messages.ERROR
    messages.add_message(request, level, summary['message'])
    for result in summary['results']:
        if not result['success']:
            messages.warning(request, f'{result["fileName"]}: {result["error"]}')
    return _back_to(relative_path)


@require_POST
@user_required
def create_folder(request: HttpRequest, user_id: str) -> HttpResponse:
    """Create a folder in the current folder."""
    relative_path = request.POST.get('path', '')
    folder_name = request.POST.get('folder_name', '').strip()
    drive_path = DrivePathMapper(user_id).to_drive_path(relative_path)

    if _run(
        request,
        lambda: item_operations.create_folder(user_id, drive_path, folder_name),
    ):
        messages.success(request, f'Folder "{folder_name}" created')
    return _back_to(relative_path)


@require_POST
@user_required
def rename(request: HttpRequest, user_id: str) -> HttpResponse:
    """Rename a file or folder."""
    relative_path = request.POST.get('path', '')
    new_name = request.POST.get('new_name', '').strip()

    if _run(request, lambda: item_operations.rename_item(
        request.POST.get('item_id', ''),
        request.POST.get('item_type', ''),
        new_name,
    )):
        messages.success(request, f'Renamed to "{new_name}"')
    return _back_to(relative_path)


@require_POST
@user_required
def delete(request: HttpRequest, user_id: str) -> HttpResponse:
    """Delete a file or an empty folder."""
    relative_path = request.POST.get('path', '')

    if _run(request, lambda: item_operations.delete_item(
        request.POST.get('item_id', ''),
        request.POST.get('item_type', ''),
    )):
        messages.success(request, 'Item deleted')
    return _back_to(relative_path)


@require_POST
@user_required
def move(request: HttpRequest, user_id: str) -> HttpResponse:
    """Move checked items into a folder given by relative path."""
    mapper = DrivePathMapper(user_id)
    relative_path = request.POST.get('path', '')
    target_path = request.POST.get('target_path', '')
    items = [
        {'id': item_id, 'type': item_type}
        for item_id, item_type in (
            selected.split(':', 1)
            for selected in request.POST.getlist('items')
            if ':' in selected
        )
    ]

    def move_selected() -> dict[str, Any]:  # noqa: WPS430
        drive_path = mapper.check_path(mapper.to_drive_path(target_path))
        target_id = FolderResolver(get_client()).resolve_existing(drive_path)
        return item_operations.move_items(items, target_id)

    summary = _run(request, move_selected)
    if summary:
        level = messages.SUCCESS if summary['allSuccess'] else messages.WARNING
        messages.add_message(
            request,
            level,
            f'Moved {summary["successCount"]} of {summary["totalCount"]} items',
        )
    return _back_to(relative_path)


def _search(request: HttpRequest, user_id: str, query: str) -> HttpResponse:
    results: list[dict[str, Any]] = []
    try:
        results = tree_operations.search_items(user_id, query)
    except _DRIVE_ERRORS as error:
        logger.exception('Search for "%s" failed', query)
        messages.error(request, str(error))

    return render(request, 'drive/results.html', {
        'user_id': user_id,
        'title': f'Search results for "{query}"',
        'query': query,
        'results': [
            _with_media_flags(item) if item['type'] == 'file' else item
            for item in results
        ],
        'view_mode': _view_mode(request),
    })


def _run(request: HttpRequest, operation: Callable[[], Any]) -> Any:
    """Run a drive operation, turning known errors into flash messages.

    Returns:
        Operation result, or None if it failed. Operations returning
        nothing yield True on success.
    """
    try:
        result = operation()
    except ValidationError as error:
        messages.error(request, error.messages[0])
        return None
    except _DRIVE_ERRORS as error:
        logger.exception('Drive operation failed')
        messages.error(request, str(error))
        return None
    return True if result is None else result


def _back_to(relative_path: str) -> HttpResponse:
    normalized = '/'.join(split_path(relative_path))
    if not normalized:
        return redirect('drive:browse_root')
    return redirect('drive:browse', path=normalized)


def _breadcrumbs(
    mapper: DrivePathMapper,
    relative_path: str,
    chain: list[DriveFolder] | None,
) -> list[dict[str, str]]:
    """Build breadcrumbs below the data folder.

    Resolved folders give names and IDs; a path that does not exist
    yet falls back to its own segments.
    """
    if chain:
        below_data = chain[len(split_path(mapper.data_root)):]
        entries = [(folder.name, folder.id) for folder in below_data]
    else:
        entries = [(name, '') for name in split_path(relative_path)]

    crumbs = []
    names: list[str] = []
    for name, folder_id in entries:
        names.append(name)
        crumbs.append({'name': name, 'path': '/'.join(names), 'id': folder_id})
    return crumbs


def _view_mode(request: HttpRequest) -> str:
    mode = request.GET.get('view', VIEW_MODES[0])
    return mode if mode in VIEW_MODES else VIEW_MODES[0]


def _with_media_flags(item: dict[str, Any]) -> dict[str, Any]:
    return {
        **item,
        'isImage': is_image(item.get('mimeType')),
        'isVideo': is_video(item.get('mimeType')),
    }
