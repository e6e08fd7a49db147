"""Client for an external NSFW image classifier.

The classifier is a separate HTTP service that accepts an image as the
multipart ``file`` field and replies with nsfwjs-style predictions:
``[{"className": "Porn", "probability": 0.93}, ...]``, either as a bare
list or wrapped in ``{"predictions": [...]}``.
"""

import logging
from dataclasses import dataclass
from typing import IO, Any, Final, final

import requests
from django.conf import settings

from server.apps.drive.exceptions import ClassifierError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT: Final = 30


@final
@dataclass(frozen=True)
class Prediction:
    """Probability of one classifier category."""

    class_name: str
    probability: float

    def as_dict(self) -> dict[str, Any]:
        """Serialize in the classifier's own key format."""
        return {'className': self.class_name, 'probability': self.probability}


@final
class NSFWClassifier:
    """Sends images to the classifier service and parses predictions."""

    def __init__(
        self,
        url: str,
        timeout: int = _DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the classifier client.

        Args:
            url: Classifier endpoint URL.
            timeout: Request timeout in seconds.
            session: Optional pre-configured requests session.
        """
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> 'NSFWClassifier | None':
        """Create a classifier from Django settings.

        Returns:
            NSFWClassifier, or None when no classifier is configured.
        """
        url = getattr(settings, 'NSFW_CLASSIFIER_URL', '')
        if not url:
            return None
        return cls(
            url,
            timeout=getattr(settings, 'NSFW_CLASSIFIER_TIMEOUT', _DEFAULT_TIMEOUT),
        )

    def classify(
        self,
        file_obj: IO[bytes],
        filename: str,
        content_type: str,
    ) -> list[Prediction]:
        """Classify an image.

        Args:
            file_obj: Readable binary image.
            filename: Name sent with the multipart part.
            content_type: Image MIME type.

        Returns:
            Predictions for every category the service reports.

        Raises:
            ClassifierError: If the service fails or replies with garbage.
        """
        try:
            response = self._session.post(
                self._url,
                files={'file': (filename, file_obj, content_type)},
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except ValueError as error:
            # `requests.JSONDecodeError` is both a ValueError and a RequestException
            raise ClassifierError('Classifier returned non-JSON response') from error
        except requests.RequestException as error:
            raise ClassifierError(f'Classifier request failed: {error}') from error

        predictions = _parse_predictions(payload)
        logger.debug('NSFW predictions for %s: %s', filename, predictions)
        return predictions


def _parse_predictions(payload: Any) -> list[Prediction]:
    if isinstance(payload, dict):
        payload = payload.get('predictions')
    if not isinstance(payload, list):
        raise ClassifierError('Classifier response has no predictions')

    predictions = []
    for entry in payload:
        try:
            predictions.append(
                Prediction(
                    class_name=str(entry['className']),
                    probability=float(entry['probability']),
                ),
            )
        except (KeyError, TypeError, ValueError) as error:
            raise ClassifierError(
                f'Malformed prediction: {entry!r}',
            ) from error
    return predictions
