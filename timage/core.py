# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Core TImage API

This module provides the main API for reading and writing the caption
(EXIF ImageDescription) of a JPEG image. The byte-level functions are
synchronous and pure; the URL-aware functions are coroutines because
fetching a URL is the only blocking step.

Copyright 2025 DNAi inc.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from timage.blob import ImageBlob
from timage.exif_directory import IMAGE_DESCRIPTION, ExifDirectory
from timage.exif_writer import ExifWriter
from timage.fetcher import DEFAULT_TIMEOUT, ImageSource, load_image, url_to_blob
from timage.jpeg_modifier import JPEGModifier
from timage.jpeg_segments import APP1, locate

logger = logging.getLogger(__name__)


def read_caption(file_data: bytes) -> str:
    """
    Read the caption of a JPEG image.

    Args:
        file_data: JPEG file data

    Returns:
        The caption, or '' if the image has no EXIF segment or no caption

    Raises:
        MetadataReadError: If the JPEG or its EXIF segment cannot be parsed
    """
    segment = locate(file_data)
    if segment is None:
        return ''
    directory = ExifDirectory(segment.payload(file_data))
    return directory.read_string(IMAGE_DESCRIPTION)


def write_caption(file_data: bytes, title: str, byte_order: str = '<') -> bytes:
    """
    Return a copy of a JPEG image with its caption set.

    Args:
        file_data: JPEG file data (not modified)
        title: New caption
        byte_order: Byte order used when a new EXIF segment has to be created

    Returns:
        New JPEG file data

    Raises:
        MetadataReadError: If the JPEG or its EXIF segment cannot be parsed
        MetadataWriteError: If the rebuilt EXIF segment is too large
        ValueError: If the title contains a NUL character
    """
    file_data = bytes(file_data)
    modifier = JPEGModifier(file_data)
    segment = locate(file_data)

    if segment is None:
        logger.debug("Creating EXIF segment for caption")
        payload = ExifWriter(endian=byte_order).build_caption_payload(title)
        return modifier.insert_segment(APP1, payload)

    directory = ExifDirectory(segment.payload(file_data))
    payload = directory.write_string(IMAGE_DESCRIPTION, title)
    return modifier.replace_segment(segment, payload)


class TImage:
    """
    Caption reader/writer for JPEG images given by URL, ImageBlob or bytes.

    Instances hold only options, so one instance can serve concurrent calls.

    Example:
        >>> timage = TImage()
        >>> blob = await timage.set('Harbour at dusk', 'https://example.com/a.jpg')
        >>> await timage.get(blob)
        'Harbour at dusk'
    """

    def __init__(self, **options: Any):
        """
        Initialize TImage.

        Args:
            **options: Initial option values (see available_options())
        """
        self.options: Dict[str, Any] = {}
        self._initialize_default_options()
        for option_name, value in options.items():
            self.set_option(option_name, value)

    @staticmethod
    def available_options() -> Dict[str, Dict[str, Any]]:
        """
        Get the supported API options.

        Returns:
            Dictionary mapping option names to their type, default and description
        """
        return {
            'FetchTimeout': {
                'type': 'float',
                'default': DEFAULT_TIMEOUT,
                'description': 'Timeout in seconds for fetching image URLs',
            },
            'ByteOrder': {
                'type': 'str',
                'default': '<',
                'choices': ('<', '>'),
                'description': "Byte order of newly created EXIF segments ('<' little-endian, '>' big-endian)",
            },
        }

    def _initialize_default_options(self) -> None:
        for option_name, option_info in self.available_options().items():
            self.options[option_name] = option_info['default']

    def set_option(self, option_name: str, value: Any) -> None:
        """
        Set an API option value.

        Raises:
            ValueError: If the option is unknown or the value is invalid
        """
        available = self.available_options()
        if option_name not in available:
            raise ValueError(f"Unknown option: {option_name}. Use available_options() to see valid options.")

        option_info = available[option_name]
        if option_info['type'] == 'float' and not isinstance(value, float):
            try:
                value = float(value)
            except (ValueError, TypeError):
                raise ValueError(f"Option {option_name} requires float value, got {type(value).__name__}")
        if 'choices' in option_info and value not in option_info['choices']:
            raise ValueError(f"Option {option_name} must be one of {option_info['choices']}, got {value!r}")

        self.options[option_name] = value

    def get_option(self, option_name: str, default: Any = None) -> Any:
        """Get an API option value, or default if it is not set."""
        return self.options.get(option_name, default)

    async def url_to_blob(self, url: str, client: Optional[httpx.AsyncClient] = None) -> ImageBlob:
        """Fetch an image URL into an ImageBlob."""
        return await url_to_blob(url, timeout=self.get_option('FetchTimeout'), client=client)

    async def get(self, url_or_blob: ImageSource, client: Optional[httpx.AsyncClient] = None) -> str:
        """
        Read the caption of an image.

        Args:
            url_or_blob: Image URL, ImageBlob or raw bytes
            client: Optional httpx client used when a URL is given

        Returns:
            The caption, or '' if there is none

        Raises:
            FetchFailedError: If the URL cannot be fetched
            MetadataReadError: If the image cannot be parsed
        """
        blob = await load_image(url_or_blob, timeout=self.get_option('FetchTimeout'), client=client)
        return read_caption(blob.data)

    async def set(
        self,
        title: str,
        url_or_blob: ImageSource,
        client: Optional[httpx.AsyncClient] = None
    ) -> ImageBlob:
        """
        Set the caption of an image.

        Args:
            title: New caption
            url_or_blob: Image URL, ImageBlob or raw bytes
            client: Optional httpx client used when a URL is given

        Returns:
            New ImageBlob with the same media type as the input

        Raises:
            FetchFailedError: If the URL cannot be fetched
            MetadataReadError: If the image cannot be parsed
            MetadataWriteError: If the rebuilt EXIF segment is too large
        """
        blob = await load_image(url_or_blob, timeout=self.get_option('FetchTimeout'), client=client)
        return blob.with_data(write_caption(blob.data, title, byte_order=self.get_option('ByteOrder')))


async def get_caption(url_or_blob: ImageSource, client: Optional[httpx.AsyncClient] = None) -> str:
    """Read the caption of an image with default options."""
    return await TImage().get(url_or_blob, client=client)


async def set_caption(
    title: str,
    url_or_blob: ImageSource,
    client: Optional[httpx.AsyncClient] = None
) -> ImageBlob:
    """Set the caption of an image with default options."""
    return await TImage().set(title, url_or_blob, client=client)
