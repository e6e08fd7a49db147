"""Tests for drive item metadata helpers."""

import pytest
from django.core.exceptions import ValidationError

from server.apps.drive.infrastructure.metadata import (
    detect_mime_type,
    is_image,
    is_media,
    is_video,
    validate_item_name,
    validate_item_type,
    validate_user_id,
)


class TestValidateItemName:
    """Tests for item name validation."""

    @pytest.mark.parametrize('name', ['photos', 'Summer 2024', 'a_b-c.d', 'x'])
    def test_valid_names(self, name):
        """Test that allowed characters pass."""
        validate_item_name(name)

    @pytest.mark.parametrize('name', ['', 'a/b', 'zażółć', 'semi;colon', '..', '.', None])
    def test_invalid_names(self, name):
        """Test that forbidden names are rejected."""
        with pytest.raises(ValidationError, match='Invalid name'):
            validate_item_name(name)


class TestValidateUserId:
    """Tests for user ID validation."""

    def test_valid(self):
        """Test that a valid ID is returned."""
        assert validate_user_id('alice') == 'alice'

    @pytest.mark.parametrize('user_id', [None, '', 42])
    def test_missing(self, user_id):
        """Test that missing or non-string IDs are rejected."""
        with pytest.raises(ValidationError, match='Invalid user ID'):
            validate_user_id(user_id)

    def test_too_short(self):
        """Test minimum length."""
        with pytest.raises(ValidationError, match='at least 3 characters'):
            validate_user_id('ab')

    def test_bad_characters(self):
        """Test that slashes cannot smuggle in paths."""
        with pytest.raises(ValidationError, match='Invalid user ID'):
            validate_user_id('bob/../alice')


class TestValidateItemType:
    """Tests for item type validation."""

    def test_known_types(self):
        """Test file and folder."""
        assert validate_item_type('file') == 'file'
        assert validate_item_type('folder') == 'folder'

    def test_unknown_type(self):
        """Test that other values are rejected."""
        with pytest.raises(ValidationError, match='Invalid item type'):
            validate_item_type('symlink')


class TestMimeTypes:
    """Tests for MIME type helpers."""

    def test_declared_type_wins(self):
        """Test that a specific declared type is trusted."""
        assert detect_mime_type('photo.jpg', 'image/webp') == 'image/webp'

    def test_guess_from_extension(self):
        """Test guessing when the browser sent nothing useful."""
        assert detect_mime_type('photo.png', None) == 'image/png'
        assert detect_mime_type('clip.mp4', 'application/octet-stream') == 'video/mp4'

    def test_unknown_extension(self):
        """Test fallback for unknown files."""
        assert detect_mime_type('blob.unknownext') == 'application/octet-stream'

    def test_media_checks(self):
        """Test image and video detection."""
        assert is_image('image/png')
        assert not is_image('video/mp4')
        assert is_video('video/mp4')
        assert is_media('video/webm')
        assert not is_media('text/plain')
        assert not is_media(None)
