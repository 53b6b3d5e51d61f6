"""Pytest configuration and shared fixtures."""

import pytest

from jpeg_factory import (
    ASCII,
    IMAGE_DESCRIPTION,
    MAKE,
    ORIENTATION,
    SHORT,
    ascii_value,
    build_jpeg,
    caption_payload,
    jpeg_with_payload,
    tiff_payload,
)


@pytest.fixture
def plain_jpeg():
    """JPEG without any EXIF segment."""
    return build_jpeg()


@pytest.fixture
def captioned_jpeg():
    """JPEG whose inline ImageDescription is 'old'."""
    return jpeg_with_payload(caption_payload('old'))


@pytest.fixture
def camera_jpeg():
    """JPEG with Make and Orientation but no ImageDescription."""
    make = ascii_value('Canon')
    return jpeg_with_payload(tiff_payload([
        (MAKE, ASCII, len(make), make),
        (ORIENTATION, SHORT, 1, b'\x06\x00'),
    ]))


@pytest.fixture
def duplicate_caption_jpeg():
    """JPEG whose IFD0 holds ImageDescription twice."""
    first = ascii_value('alpha-one')
    second = ascii_value('beta-two-x')
    return jpeg_with_payload(tiff_payload([
        (IMAGE_DESCRIPTION, ASCII, len(first), first),
        (IMAGE_DESCRIPTION, ASCII, len(second), second),
    ]))
