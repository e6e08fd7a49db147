"""Tests for the NSFW classifier client."""

import io

import pytest
import requests
import responses

from server.apps.drive.exceptions import ClassifierError
from server.apps.drive.infrastructure.classifier import NSFWClassifier, Prediction

CLASSIFIER_URL = 'https://classifier.test/classify'


@pytest.fixture
def classifier():
    """Classifier pointed at the mocked service."""
    return NSFWClassifier(CLASSIFIER_URL)


class TestFromSettings:
    """Tests for building the classifier from settings."""

    def test_not_configured(self, settings):
        """Test that no URL means no classifier."""
        settings.NSFW_CLASSIFIER_URL = ''

        assert NSFWClassifier.from_settings() is None

    def test_configured(self, settings):
        """Test that a URL gives a classifier."""
        settings.NSFW_CLASSIFIER_URL = CLASSIFIER_URL

        assert isinstance(NSFWClassifier.from_settings(), NSFWClassifier)


class TestClassify:
    """Tests for classify."""

    @responses.activate
    def test_bare_list(self, classifier):
        """Test parsing a bare prediction list."""
        responses.post(
            CLASSIFIER_URL,
            json=[
                {'className': 'Neutral', 'probability': 0.9},
                {'className': 'Porn', 'probability': 0.1},
            ],
        )

        predictions = classifier.classify(io.BytesIO(b'img'), 'a.png', 'image/png')

        assert predictions == [Prediction('Neutral', 0.9), Prediction('Porn', 0.1)]
        assert b'filename="a.png"' in responses.calls[0].request.body

    @responses.activate
    def test_wrapped_list(self, classifier):
        """Test parsing predictions wrapped in an object."""
        responses.post(
            CLASSIFIER_URL,
            json={'predictions': [{'className': 'Sexy', 'probability': '0.7'}]},
        )

        predictions = classifier.classify(io.BytesIO(b'img'), 'a.png', 'image/png')

        assert predictions[0].as_dict() == {'className': 'Sexy', 'probability': 0.7}

    @responses.activate
    def test_http_error(self, classifier):
        """Test that a failing service raises ClassifierError."""
        responses.post(CLASSIFIER_URL, status=503)

        with pytest.raises(ClassifierError, match='Classifier request failed'):
            classifier.classify(io.BytesIO(b'img'), 'a.png', 'image/png')

    @responses.activate
    def test_network_error(self, classifier):
        """Test that connection errors raise ClassifierError."""
        responses.post(CLASSIFIER_URL, body=requests.ConnectionError('down'))

        with pytest.raises(ClassifierError):
            classifier.classify(io.BytesIO(b'img'), 'a.png', 'image/png')

    @responses.activate
    def test_non_json(self, classifier):
        """Test that a non-JSON reply raises ClassifierError."""
        responses.post(CLASSIFIER_URL, body='not json')

        with pytest.raises(ClassifierError, match='non-JSON'):
            classifier.classify(io.BytesIO(b'img'), 'a.png', 'image/png')

    @responses.activate
    def test_malformed_predictions(self, classifier):
        """Test that entries without fields raise ClassifierError."""
        responses.post(CLASSIFIER_URL, json=[{'label': 'Porn'}])

        with pytest.raises(ClassifierError, match='Malformed prediction'):
            classifier.classify(io.BytesIO(b'img'), 'a.png', 'image/png')

    @responses.activate
    def test_missing_predictions(self, classifier):
        """Test that an object without predictions raises ClassifierError."""
        responses.post(CLASSIFIER_URL, json={'status': 'ok'})

        with pytest.raises(ClassifierError, match='no predictions'):
            classifier.classify(io.BytesIO(b'img'), 'a.png', 'image/png')
