"""HTTP client for the Misskey drive API.

Every Misskey endpoint is a ``POST {api_url}/api/{endpoint}`` with a JSON
body carrying the access token as ``i``. The only exception is file
upload, which is a multipart form to ``drive/files/create``.
"""

import logging
from collections.abc import Iterator
from typing import IO, Any, Final, final

import requests
from django.conf import settings

from server.apps.drive.exceptions import (
    MisskeyAPIError,
    MisskeyConfigurationError,
)

logger = logging.getLogger(__name__)

_ERROR_SNIPPET_LENGTH: Final = 100
_DEFAULT_TIMEOUT: Final = 30
_DEFAULT_PAGE_LIMIT: Final = 100

# Misskey rejects list requests with `limit` above this value
_MAX_PAGE_LIMIT: Final = 100

UPLOAD_ENDPOINT: Final = 'drive/files/create'


@final
class MisskeyClient:
    """Thin wrapper around the Misskey drive endpoints.

    Raises MisskeyAPIError for every failed call, so callers never
    see raw ``requests`` exceptions.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: int = _DEFAULT_TIMEOUT,
        page_limit: int = _DEFAULT_PAGE_LIMIT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Base URL of the instance, e.g. https://misskey.io.
            api_key: Access token with drive permissions.
            timeout: Per-request timeout in seconds.
            page_limit: Page size for listings.
            session: Optional pre-configured requests session.

        Raises:
            MisskeyConfigurationError: If URL or key is empty.
        """
        if not api_url or not api_key:
            raise MisskeyConfigurationError()
        self._api_url = api_url.rstrip('/')
        self._api_key = api_key
        self._timeout = timeout
        self._page_limit = max(1, min(page_limit, _MAX_PAGE_LIMIT))
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> 'MisskeyClient':
        """Create a client from Django settings.

        Returns:
            Configured MisskeyClient.

        Raises:
            MisskeyConfigurationError: If URL or key is not configured.
        """
        return cls(
            api_url=getattr(settings, 'MISSKEY_API_URL', ''),
            api_key=getattr(settings, 'MISSKEY_API_KEY', ''),
            timeout=getattr(settings, 'MISSKEY_REQUEST_TIMEOUT', _DEFAULT_TIMEOUT),
            page_limit=getattr(settings, 'MISSKEY_PAGE_LIMIT', _DEFAULT_PAGE_LIMIT),
        )

    @property
    def api_url(self) -> str:
        """Get the instance base URL."""
        return self._api_url

    @property
    def api_key(self) -> str:
        """Get the access token."""
        return self._api_key

    @property
    def page_limit(self) -> int:
        """Get the page size used for listings."""
        return self._page_limit

    def endpoint_url(self, endpoint: str) -> str:
        """Build the full URL of an API endpoint.

        Args:
            endpoint: Endpoint name, e.g. ``drive/folders/find``.

        Returns:
            Absolute endpoint URL.
        """
        return f'{self._api_url}/api/{endpoint}'

    def probe(self, endpoint: str, **params: Any) -> requests.Response:
        """Call an endpoint and return the raw response.

        Unlike ``call``, non-2xx replies are returned, not raised.

        Args:
            endpoint: Endpoint name.
            params: JSON body fields besides the token.

        Returns:
            The raw response.

        Raises:
            MisskeyAPIError: If the request could not be sent.
        """
        return self._post(endpoint, json={'i': self._api_key, **params})

    def call(self, endpoint: str, **params: Any) -> Any:
        """Call an endpoint and decode its JSON reply.

        Args:
            endpoint: Endpoint name.
            params: JSON body fields besides the token.

        Returns:
            Decoded JSON, or None for empty (204) replies.

        Raises:
            MisskeyAPIError: On network errors, non-2xx or non-JSON replies.
        """
        logger.debug('Calling %s with %s', endpoint, params)
        response = self.probe(endpoint, **params)
        return _decode_response(endpoint, response)

    def upload(
        self,
        file_obj: IO[bytes],
        name: str,
        folder_id: str | None,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        """Upload a file into a drive folder.

        Args:
            file_obj: Readable binary file object.
            name: Name the file gets in the drive.
            folder_id: Target folder, None for the drive root.
            content_type: MIME type sent with the file part.

        Returns:
            Created file record. If the instance replies with something
            that is not JSON, a minimal record without ``id``.

        Raises:
            MisskeyAPIError: If the upload is rejected.
        """
        form: dict[str, str] = {'i': self._api_key, 'name': name}
        if folder_id:
            form['folderId'] = folder_id
        parts = {
            'file': (name, file_obj, content_type or 'application/octet-stream'),
        }

        logger.info('Uploading %s to folder %s', name, folder_id or 'root')
        response = self._post(UPLOAD_ENDPOINT, data=form, files=parts)
        if not response.ok:
            raise _error_from_response(UPLOAD_ENDPOINT, response)

        try:
            record = response.json()
        except ValueError:
            logger.warning(
                'Upload of %s succeeded but reply is not JSON: %s',
                name,
                response.text[:_ERROR_SNIPPET_LENGTH],
            )
            return {'name': name}

        if not isinstance(record, dict) or not record.get('id'):
            logger.warning('Upload reply for %s has no ID: %s', name, record)
            return record if isinstance(record, dict) else {'name': name}
        return record

    # Folders

    def find_folders(
        self,
        name: str,
        parent_id: str | None,
    ) -> list[dict[str, Any]]:
        """Find folders with the given name directly under a parent.

        Args:
            name: Folder name.
            parent_id: Parent folder ID, None for the drive root.

        Returns:
            Matching folder records, empty list for unexpected replies.
        """
        folders = self.call('drive/folders/find', name=name, parentId=parent_id)
        return _as_list(folders)

    def create_folder(
        self,
        name: str,
        parent_id: str | None,
    ) -> dict[str, Any]:
        """Create a folder.

        Args:
            name: Folder name.
            parent_id: Parent folder ID, None for the drive root.

        Returns:
            Created folder record.

        Raises:
            MisskeyAPIError: If creation fails or the reply has no ID.
        """
        logger.info('Creating folder %s (parent: %s)', name, parent_id or 'root')
        folder = self.call('drive/folders/create', name=name, parentId=parent_id)
        return _require_record('drive/folders/create', folder)

    def list_folders(
        self,
        folder_id: str | None,
        limit: int | None = None,
        until_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """List one page of folders under a parent."""
        params: dict[str, Any] = {
            'folderId': folder_id,
            'limit': limit or self._page_limit,
        }
        if until_id:
            params['untilId'] = until_id
        return _as_list(self.call('drive/folders', **params))

    def iter_folders(self, folder_id: str | None) -> Iterator[dict[str, Any]]:
        """Iterate over every folder under a parent, page by page."""
        yield from self._paginate(self.list_folders, folder_id)

    def show_folder(self, folder_id: str) -> dict[str, Any]:
        """Get a folder record."""
        folder = self.call('drive/folders/show', folderId=folder_id)
        return _require_record('drive/folders/show', folder)

    def update_folder(
        self,
        folder_id: str,
        name: str | None = None,
        parent_id: str | None = None,
    ) -> dict[str, Any]:
        """Rename and/or move a folder.

        Args:
            folder_id: Folder to update.
            name: New name, unchanged if None.
            parent_id: New parent folder, unchanged if None.

        Returns:
            Updated folder record.
        """
        params: dict[str, Any] = {'folderId': folder_id}
        if name is not None:
            params['name'] = name
        if parent_id is not None:
            params['parentId'] = parent_id
        logger.info('Updating folder %s: %s', folder_id, params)
        return self.call('drive/folders/update', **params) or {}

    def delete_folder(self, folder_id: str) -> None:
        """Delete an empty folder."""
        logger.info('Deleting folder %s', folder_id)
        self.call('drive/folders/delete', folderId=folder_id)

    # Files

    def list_files(
        self,
        folder_id: str | None,
        limit: int | None = None,
        until_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """List one page of files in a folder."""
        params: dict[str, Any] = {
            'folderId': folder_id,
            'limit': limit or self._page_limit,
        }
        if until_id:
            params['untilId'] = until_id
        return _as_list(self.call('drive/files', **params))

    def iter_files(self, folder_id: str | None) -> Iterator[dict[str, Any]]:
        """Iterate over every file in a folder, page by page."""
        yield from self._paginate(self.list_files, folder_id)

    def show_file(self, file_id: str) -> dict[str, Any]:
        """Get a file record."""
        drive_file = self.call('drive/files/show', fileId=file_id)
        return _require_record('drive/files/show', drive_file)

    def update_file(
        self,
        file_id: str,
        name: str | None = None,
        folder_id: str | None = None,
    ) -> dict[str, Any]:
        """Rename and/or move a file.

        Args:
            file_id: File to update.
            name: New name, unchanged if None.
            folder_id: New folder, unchanged if None.

        Returns:
            Updated file record.
        """
        params: dict[str, Any] = {'fileId': file_id}
        if name is not None:
            params['name'] = name
        if folder_id is not None:
            params['folderId'] = folder_id
        logger.info('Updating file %s: %s', file_id, params)
        return self.call('drive/files/update', **params) or {}

    def delete_file(self, file_id: str) -> None:
        """Delete a file."""
        logger.info('Deleting file %s', file_id)
        self.call('drive/files/delete', fileId=file_id)

    def _post(self, endpoint: str, **kwargs: Any) -> requests.Response:
        try:
            return self._session.post(
                self.endpoint_url(endpoint),
                timeout=self._timeout,
                **kwargs,
            )
        except requests.RequestException as error:
            logger.exception('Request to %s failed', endpoint)
            raise MisskeyAPIError(
                f'Failed to reach {endpoint}: {error}',
            ) from error

    def _paginate(
        self,
        fetch_page: Any,
        folder_id: str | None,
    ) -> Iterator[dict[str, Any]]:
        until_id: str | None = None
        while True:
            page = fetch_page(folder_id, limit=self._page_limit, until_id=until_id)
            yield from page
            if len(page) < self._page_limit:
                return
            until_id = page[-1]['id']


def get_client() -> MisskeyClient:
    """Get a client configured from settings.

    Returns:
        MisskeyClient instance.
    """
    return MisskeyClient.from_settings()


def _decode_response(endpoint: str, response: requests.Response) -> Any:
    if not response.ok:
        raise _error_from_response(endpoint, response)
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as error:
        raise MisskeyAPIError(
            f'Invalid response from {endpoint}: '
            f'{response.text[:_ERROR_SNIPPET_LENGTH]}',
            status_code=response.status_code,
        ) from error


def _error_from_response(
    endpoint: str,
    response: requests.Response,
) -> MisskeyAPIError:
    fallback = f'{endpoint} failed with status {response.status_code}'
    try:
        body = response.json()
    except ValueError:
        text = response.text
        if text:
            fallback = f'{fallback}: {text[:_ERROR_SNIPPET_LENGTH]}'
        return MisskeyAPIError(fallback, status_code=response.status_code)

    error = body.get('error') if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get('message'):
        return MisskeyAPIError(
            error['message'],
            status_code=response.status_code,
            code=error.get('code'),
        )
    return MisskeyAPIError(fallback, status_code=response.status_code)


def _as_list(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        return []
    return [entry for entry in payload if isinstance(entry, dict)]


def _require_record(endpoint: str, payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict) or not payload.get('id'):
        raise MisskeyAPIError(f'Invalid response from {endpoint}: {payload!r}')
    return payload
