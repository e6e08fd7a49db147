"""Routes of the JSON API, mounted under ``/api/``.

Trailing slashes are optional so both ``/api/list-items`` and
``/api/list-items/`` reach the same view.
"""

from collections.abc import Callable

from django.http import HttpResponse
from django.urls import URLPattern, re_path

from server.apps.drive.views import api

app_name = 'api'


def _endpoint(
    route: str,
    view: Callable[..., HttpResponse],
    name: str,
) -> URLPattern:
    return re_path(rf'^{route}/?$', view, name=name)


urlpatterns = [
    _endpoint('check-env', api.check_env, 'check_env'),
    _endpoint('test-connection', api.connection_status, 'test_connection'),
    _endpoint('check-nsfw', api.check_image, 'check_nsfw'),
    _endpoint('create-folder', api.create_folder, 'create_folder'),
    _endpoint('delete-item', api.delete_item, 'delete_item'),
    _endpoint('ensure-directory', api.ensure_directory, 'ensure_directory'),
    _endpoint('get-upload-token', api.get_upload_token, 'get_upload_token'),
    _endpoint('item-details', api.item_details, 'item_details'),
    _endpoint('list-collections', api.list_collections, 'list_collections'),
    _endpoint('list-items', api.list_items, 'list_items'),
    _endpoint('move-items', api.move_items, 'move_items'),
    _endpoint('preview', api.preview, 'preview'),
    _endpoint('recent-files', api.recent_files, 'recent_files'),
    _endpoint('rename-item', api.rename_item, 'rename_item'),
    _endpoint('scan-media', api.scan_media, 'scan_media'),
    _endpoint('search-items', api.search_items, 'search_items'),
    _endpoint('upload-files', api.upload_files, 'upload_files'),
    _endpoint('validate-user', api.validate_user, 'validate_user'),
]
