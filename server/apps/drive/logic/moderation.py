"""NSFW screening of images through the external classifier."""

import logging
from typing import IO, Any, Final

from django.conf import settings

from server.apps.drive.exceptions import ClassifierError
from server.apps.drive.infrastructure.classifier import NSFWClassifier
from server.apps.drive.infrastructure.metadata import is_image

logger = logging.getLogger(__name__)

# Categories whose probabilities add up to the NSFW score
NSFW_CLASSES: Final = frozenset(('Porn', 'Sexy', 'Hentai'))

_DEFAULT_THRESHOLD: Final = 0.5


def get_nsfw_threshold() -> float:
    """Get the NSFW score threshold.

    Returns:
        Threshold from settings or default of 0.5.
    """
    return getattr(settings, 'NSFW_THRESHOLD', _DEFAULT_THRESHOLD)


def is_upload_check_enabled() -> bool:
    """Whether uploads are screened before reaching the drive."""
    return bool(getattr(settings, 'NSFW_CHECK_ON_UPLOAD', False))


def check_nsfw(
    file_obj: IO[bytes],
    content_type: str | None,
    filename: str = 'upload',
) -> dict[str, Any]:
    """Classify an image and decide whether it is NSFW.

    Never raises for classifier trouble: a failed check reports
    ``success: False`` with ``isNSFW: False`` so uploads can go on.

    Args:
        file_obj: Readable binary file.
        content_type: MIME type of the file.
        filename: Name passed on to the classifier.

    Returns:
        Verdict dictionary with ``success``, ``isNSFW`` and ``message``.
    """
    if not is_image(content_type):
        return {
            'success': True,
            'isNSFW': False,
            'message': 'Not an image, skipping NSFW check',
        }

    classifier = NSFWClassifier.from_settings()
    if classifier is None:
        return {
            'success': True,
            'isNSFW': False,
            'message': 'NSFW detection is not configured',
        }

    try:
        predictions = classifier.classify(file_obj, filename, content_type)
    except ClassifierError as error:
        logger.exception('Error during NSFW detection for %s', filename)
        return {
            'success': False,
            'error': str(error),
            'isNSFW': False,
            'message': 'NSFW detection failed, allowing upload',
        }

    score = sum(
        prediction.probability
        for prediction in predictions
        if prediction.class_name in NSFW_CLASSES
    )
    is_nsfw = score > get_nsfw_threshold()
    logger.info('NSFW score for %s: %.3f (nsfw: %s)', filename, score, is_nsfw)

    return {
        'success': True,
        'isNSFW': is_nsfw,
        'score': score,
        'predictions': [prediction.as_dict() for prediction in predictions],
        'message': 'Content detected as NSFW' if is_nsfw else 'Content is safe',
    }
