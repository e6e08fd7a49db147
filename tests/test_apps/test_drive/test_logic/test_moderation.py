"""Tests for NSFW screening."""

import io

import pytest
import responses

from server.apps.drive.logic.moderation import check_nsfw

CLASSIFIER_URL = 'https://classifier.test/classify'


@pytest.fixture
def classifier_service(misskey_settings):
    """Configure and mock the classifier service.

    Yields:
        Active RequestsMock.
    """
    misskey_settings.NSFW_CLASSIFIER_URL = CLASSIFIER_URL
    with responses.RequestsMock() as mock:
        yield mock


def _predictions(**probabilities):
    return [
        {'className': class_name, 'probability': probability}
        for class_name, probability in probabilities.items()
    ]


class TestCheckNSFW:
    """Tests for check_nsfw."""

    def test_skips_non_images(self, misskey_settings):
        """Test that non-images are never sent to the classifier."""
        verdict = check_nsfw(io.BytesIO(b'text'), 'text/plain', 'a.txt')

        assert verdict == {
            'success': True,
            'isNSFW': False,
            'message': 'Not an image, skipping NSFW check',
        }

    def test_not_configured(self, misskey_settings):
        """Test that a missing classifier allows everything."""
        verdict = check_nsfw(io.BytesIO(b'img'), 'image/png', 'a.png')

        assert verdict['success'] is True
        assert verdict['isNSFW'] is False
        assert verdict['message'] == 'NSFW detection is not configured'

    def test_safe(self, classifier_service):
        """Test a safe verdict."""
        classifier_service.post(
            CLASSIFIER_URL,
            json=_predictions(Neutral=0.8, Porn=0.1, Sexy=0.05),
        )

        verdict = check_nsfw(io.BytesIO(b'img'), 'image/png', 'a.png')

        assert verdict['isNSFW'] is False
        assert verdict['score'] == pytest.approx(0.15)
        assert verdict['message'] == 'Content is safe'
        assert len(verdict['predictions']) == 3

    def test_score_sums_nsfw_classes(self, classifier_service):
        """Test that Porn, Sexy and Hentai add up."""
        classifier_service.post(
            CLASSIFIER_URL,
            json=_predictions(Porn=0.2, Sexy=0.2, Hentai=0.2, Drawing=0.4),
        )

        verdict = check_nsfw(io.BytesIO(b'img'), 'image/jpeg', 'a.jpg')

        assert verdict['score'] == pytest.approx(0.6)
        assert verdict['isNSFW'] is True
        assert verdict['message'] == 'Content detected as NSFW'

    def test_threshold_is_exclusive(self, classifier_service, misskey_settings):
        """Test that a score equal to the threshold is safe."""
        misskey_settings.NSFW_THRESHOLD = 0.25
        classifier_service.post(CLASSIFIER_URL, json=_predictions(Porn=0.25))

        verdict = check_nsfw(io.BytesIO(b'img'), 'image/png', 'a.png')

        assert verdict['isNSFW'] is False

    def test_classifier_failure_allows(self, classifier_service):
        """Test that a broken classifier fails open."""
        classifier_service.post(CLASSIFIER_URL, status=500)

        verdict = check_nsfw(io.BytesIO(b'img'), 'image/png', 'a.png')

        assert verdict['success'] is False
        assert verdict['isNSFW'] is False
        assert verdict['message'] == 'NSFW detection failed, allowing upload'
        assert 'error' in verdict
