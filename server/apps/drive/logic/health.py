"""Configuration and connectivity checks against the Misskey instance."""

import logging
from typing import Any, Final

from server.apps.drive.exceptions import (
    MISSING_CONFIGURATION_MESSAGE,
    MisskeyAPIError,
    MisskeyConfigurationError,
)
from server.apps.drive.infrastructure.misskey import get_client

logger = logging.getLogger(__name__)

_RAW_RESPONSE_LENGTH: Final = 500

_CONNECT_FAILED_MESSAGE: Final = 'Failed to connect to MISSKEY API'


def check_environment() -> dict[str, Any]:
    """Check that credentials are configured and accepted.

    Returns:
        Dictionary with ``success`` and ``message``.
    """
    try:
        client = get_client()
    except MisskeyConfigurationError:
        return {'success': False, 'message': MISSING_CONFIGURATION_MESSAGE}

    try:
        response = client.probe('meta')
    except MisskeyAPIError as error:
        return {
            'success': False,
            'message': _CONNECT_FAILED_MESSAGE,
            'error': str(error),
        }

    if not response.ok:
        logger.warning('Misskey credentials check failed: %d', response.status_code)
        return {
            'success': False,
            'message': (
                'MISSKEY API credentials are invalid or the API is not accessible'
            ),
        }

    return {'success': True, 'message': 'MISSKEY API configuration is valid'}


def probe_connection() -> dict[str, Any]:
    """Call the instance and report what it says about itself.

    Returns:
        Dictionary with ``success``, ``message`` and, on success,
        ``apiVersion`` and ``serverInfo``.
    """
    try:
        client = get_client()
    except MisskeyConfigurationError:
        return {'success': False, 'message': MISSING_CONFIGURATION_MESSAGE}

    try:
        response = client.probe('meta')
    except MisskeyAPIError as error:
        return {
            'success': False,
            'message': _CONNECT_FAILED_MESSAGE,
            'error': str(error),
        }

    try:
        payload = response.json()
    except ValueError:
        return {
            'success': False,
            'message': 'Server returned non-JSON response',
            'rawResponse': response.text[:_RAW_RESPONSE_LENGTH],
        }

    if not response.ok:
        return {
            'success': False,
            'message': 'API request failed',
            'status': response.status_code,
            'response': payload,
        }

    if not isinstance(payload, dict):
        payload = {}
    return {
        'success': True,
        'message': 'Connection successful',
        'apiVersion': payload.get('version') or 'unknown',
        'serverInfo': {
            'name': payload.get('name') or 'unknown',
            'url': client.api_url,
        },
    }
