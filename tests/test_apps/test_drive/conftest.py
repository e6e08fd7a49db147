"""Shared fixtures for drive app tests."""

import email.policy
import hashlib
import itertools
import json
from datetime import UTC, datetime, timedelta
from email.parser import BytesParser

import pytest
import responses
from django.conf import settings
from django.contrib.sessions.backends.signed_cookies import SessionStore
from django.core.files.uploadedfile import SimpleUploadedFile

from server.apps.drive.views.pages import SESSION_USER_KEY

API_URL = 'https://misskey.test'
API_TOKEN = 'test-token'
FILES_URL = 'https://files.misskey.test'

_EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


class FakeMisskeyDrive:
    """In-memory Misskey drive answering the client through `responses`.

    Keeps folders and files in dictionaries and mimics the endpoint
    behaviour the app relies on: exact ``find``, ``untilId`` paging
    over descending IDs, error envelopes and token checks.
    """

    def __init__(self, mock, api_url=API_URL, token=API_TOKEN):
        """Register a callback for every drive endpoint.

        Args:
            mock: Active responses.RequestsMock.
            api_url: Base URL the client is configured with.
            token: Accepted access token.
        """
        self.mock = mock
        self.token = token
        self.folders = {}
        self.files = {}
        self.calls = []
        self.meta = {'name': 'Test Misskey', 'version': '2024.11.0'}
        self._failures = {}
        self._ids = itertools.count(1)

        handlers = {
            'meta': self._meta,
            'drive/folders/find': self._find_folders,
            'drive/folders/create': self._create_folder,
            'drive/folders': self._list_folders,
            'drive/folders/show': self._show_folder,
            'drive/folders/update': self._update_folder,
            'drive/folders/delete': self._delete_folder,
            'drive/files': self._list_files,
            'drive/files/show': self._show_file,
            'drive/files/update': self._update_file,
            'drive/files/delete': self._delete_file,
            'drive/files/create': self._create_file,
        }
        for endpoint, handler in handlers.items():
            mock.add_callback(
                responses.POST,
                f'{api_url}/api/{endpoint}',
                callback=self._dispatcher(endpoint, handler),
            )

    # Seeding

    def add_folder(self, name, parent_id=None):
        """Create a folder record directly."""
        folder_id = self._next_id()
        self.folders[folder_id] = {
            'id': folder_id,
            'createdAt': self._timestamp(folder_id),
            'name': name,
            'parentId': parent_id,
        }
        return self.folders[folder_id]

    def add_path(self, path):
        """Create every folder along a slash-delimited path."""
        parent_id = None
        folder = None
        for segment in filter(None, path.split('/')):
            folder = self.child(segment, parent_id) or self.add_folder(segment, parent_id)
            parent_id = folder['id']
        return folder

    def add_file(self, name, folder_id=None, mime_type='image/png', content=b'data'):
        """Create a file record directly."""
        file_id = self._next_id()
        self.files[file_id] = {
            'id': file_id,
            'createdAt': self._timestamp(file_id),
            'name': name,
            'type': mime_type,
            'md5': hashlib.md5(content).hexdigest(),  # noqa: S324
            'size': len(content),
            'isSensitive': False,
            'blurhash': None,
            'properties': {'width': 10, 'height': 10} if mime_type.startswith('image/') else {},
            'url': f'{FILES_URL}/{file_id}',
            'thumbnailUrl': f'{FILES_URL}/thumbnail-{file_id}' if mime_type.startswith('image/') else None,
            'comment': None,
            'folderId': folder_id,
            'content': content,
        }
        return self.files[file_id]

    def fail(self, endpoint, status=500, message='Internal error', when=None):
        """Make an endpoint fail for requests matching ``when``.

        Args:
            endpoint: Endpoint name, e.g. ``drive/folders/find``.
            status: HTTP status to reply with.
            message: Misskey error message.
            when: Predicate on the request body, None fails every call.
        """
        self._failures[endpoint] = (status, message, when)

    # Queries

    def child(self, name, parent_id):
        """Get a folder by name under a parent, or None."""
        for folder in self.folders.values():
            if folder['name'] == name and folder['parentId'] == parent_id:
                return folder
        return None

    def folder_at(self, path):
        """Get the folder at a slash-delimited path, or None."""
        folder = None
        parent_id = None
        for segment in filter(None, path.split('/')):
            folder = self.child(segment, parent_id)
            if folder is None:
                return None
            parent_id = folder['id']
        return folder

    def count_calls(self, endpoint):
        """Count requests made to an endpoint."""
        return self.calls.count(endpoint)

    # Plumbing

    def _dispatcher(self, endpoint, handler):
        def callback(request):
            self.calls.append(endpoint)
            if endpoint == 'drive/files/create':
                body, uploads = _parse_multipart(request)
            else:
                body, uploads = json.loads(request.body or b'{}'), {}

            if body.get('i') != self.token:
                return _error(401, 'Credential required.', 'CREDENTIAL_REQUIRED')

            failure = self._failures.get(endpoint)
            if failure and (failure[2] is None or failure[2](body)):
                return _error(failure[0], failure[1], 'INTERNAL_ERROR')

            if uploads:
                return handler(body, uploads)
            return handler(body)
        return callback

    def _next_id(self):
        return f'{next(self._ids):010d}'

    def _timestamp(self, item_id):
        moment = _EPOCH + timedelta(minutes=int(item_id))
        return moment.isoformat().replace('+00:00', 'Z')

    # Endpoints

    def _meta(self, body):
        return _ok(self.meta)

    def _find_folders(self, body):
        return _ok([
            folder for folder in self.folders.values()
            if folder['name'] == body.get('name')
            and folder['parentId'] == body.get('parentId')
        ])

    def _create_folder(self, body):
        parent_id = body.get('parentId')
        if parent_id is not None and parent_id not in self.folders:
            return _error(400, 'No such folder.', 'NO_SUCH_FOLDER')
        return _ok(self.add_folder(body.get('name') or 'Untitled', parent_id))

    def _list_folders(self, body):
        children = [
            folder for folder in self.folders.values()
            if folder['parentId'] == body.get('folderId')
        ]
        return _ok(_page(children, body))

    def _show_folder(self, body):
        folder = self.folders.get(body.get('folderId'))
        if folder is None:
            return _error(400, 'No such folder.', 'NO_SUCH_FOLDER')
        return _ok({
            **folder,
            'foldersCount': sum(
                1 for child in self.folders.values()
                if child['parentId'] == folder['id']
            ),
            'filesCount': sum(
                1 for drive_file in self.files.values()
                if drive_file['folderId'] == folder['id']
            ),
        })

    def _update_folder(self, body):
        folder = self.folders.get(body.get('folderId'))
        if folder is None:
            return _error(400, 'No such folder.', 'NO_SUCH_FOLDER')
        if 'parentId' in body:
            if body['parentId'] is not None and body['parentId'] not in self.folders:
                return _error(400, 'No such parent folder.', 'NO_SUCH_PARENT_FOLDER')
            if body['parentId'] == folder['id']:
                return _error(400, 'Circular reference detected.', 'RECURSIVE_NESTING')
            folder['parentId'] = body['parentId']
        if 'name' in body:
            folder['name'] = body['name']
        return _ok(folder)

    def _delete_folder(self, body):
        folder_id = body.get('folderId')
        if folder_id not in self.folders:
            return _error(400, 'No such folder.', 'NO_SUCH_FOLDER')
        has_children = any(
            item.get('parentId', item.get('folderId')) == folder_id
            for item in itertools.chain(self.folders.values(), self.files.values())
        )
        if has_children:
            return _error(400, 'This folder has child files or folders.', 'HAS_CHILD_FILES_OR_FOLDERS')
        del self.folders[folder_id]
        return (204, {}, '')

    def _list_files(self, body):
        contents = [
            _public(drive_file) for drive_file in self.files.values()
            if drive_file['folderId'] == body.get('folderId')
        ]
        return _ok(_page(contents, body))

    def _show_file(self, body):
        drive_file = self.files.get(body.get('fileId'))
        if drive_file is None:
            return _error(400, 'No such file.', 'NO_SUCH_FILE')
        return _ok(_public(drive_file))

    def _update_file(self, body):
        drive_file = self.files.get(body.get('fileId'))
        if drive_file is None:
            return _error(400, 'No such file.', 'NO_SUCH_FILE')
        if 'folderId' in body:
            if body['folderId'] is not None and body['folderId'] not in self.folders:
                return _error(400, 'No such folder.', 'NO_SUCH_FOLDER')
            drive_file['folderId'] = body['folderId']
        if 'name' in body:
            drive_file['name'] = body['name']
        return _ok(_public(drive_file))

    def _delete_file(self, body):
        if self.files.pop(body.get('fileId'), None) is None:
            return _error(400, 'No such file.', 'NO_SUCH_FILE')
        return (204, {}, '')

    def _create_file(self, body, uploads):
        filename, mime_type, content = uploads['file']
        folder_id = body.get('folderId')
        if folder_id is not None and folder_id not in self.folders:
            return _error(400, 'No such folder.', 'NO_SUCH_FOLDER')
        drive_file = self.add_file(
            body.get('name') or filename,
            folder_id,
            mime_type=mime_type,
            content=content,
        )
        return _ok(_public(drive_file))


def _ok(payload):
    return (200, {'Content-Type': 'application/json'}, json.dumps(payload))


def _error(status, message, code):
    payload = {'error': {'message': message, 'code': code, 'id': code.lower()}}
    return (status, {'Content-Type': 'application/json'}, json.dumps(payload))


def _page(records, body):
    newest_first = sorted(records, key=lambda record: record['id'], reverse=True)
    until_id = body.get('untilId')
    if until_id:
        newest_first = [record for record in newest_first if record['id'] < until_id]
    return newest_first[:body.get('limit', 10)]


def _public(drive_file):
    return {key: value for key, value in drive_file.items() if key != 'content'}


def _parse_multipart(request):
    header = f'Content-Type: {request.headers["Content-Type"]}\r\n\r\n'.encode()
    message = BytesParser(policy=email.policy.HTTP).parsebytes(header + request.body)
    fields = {}
    uploads = {}
    for part in message.iter_parts():
        name = part.get_param('name', header='content-disposition')
        payload = part.get_payload(decode=True)
        if part.get_filename() is None:
            fields[name] = payload.decode()
        else:
            uploads[name] = (part.get_filename(), part.get_content_type(), payload)
    return fields, uploads


@pytest.fixture
def misskey_settings(settings):
    """Point the app at the fake instance with every optional feature off.

    Returns:
        pytest-django settings fixture.
    """
    settings.MISSKEY_API_URL = API_URL
    settings.MISSKEY_API_KEY = API_TOKEN
    settings.MISSKEY_PAGE_LIMIT = 100
    settings.MISSKEY_EXPOSE_UPLOAD_TOKEN = False
    settings.DRIVE_ROOT_FOLDER = 'drive'
    settings.DRIVE_DATA_FOLDER = 'data'
    settings.NSFW_CLASSIFIER_URL = ''
    settings.NSFW_CHECK_ON_UPLOAD = False
    settings.NSFW_THRESHOLD = 0.5
    return settings


@pytest.fixture
def fake_drive(misskey_settings):
    """Run the test against an in-memory Misskey drive.

    Yields:
        FakeMisskeyDrive with no folders or files.
    """
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield FakeMisskeyDrive(mock)


@pytest.fixture
def user_id():
    """User ID used across drive tests."""
    return 'alice'


@pytest.fixture
def data_folder(fake_drive, user_id):
    """Create ``drive/<user>/data``.

    Returns:
        Folder record of the data folder.
    """
    return fake_drive.add_path(f'drive/{user_id}/data')


@pytest.fixture
def signed_in_client(client, user_id):
    """Test client with the user ID stored in the session cookie.

    Returns:
        Django test client.
    """
    session = SessionStore()
    session[SESSION_USER_KEY] = user_id
    session.save()
    client.cookies[settings.SESSION_COOKIE_NAME] = session.session_key
    return client


@pytest.fixture
def png_upload():
    """Small PNG upload."""
    return SimpleUploadedFile(
        'photo.png',
        b'\x89PNG\r\n\x1a\nfake-image',
        content_type='image/png',
    )


@pytest.fixture
def text_upload():
    """Plain text upload."""
    return SimpleUploadedFile('notes.txt', b'hello drive', content_type='text/plain')
