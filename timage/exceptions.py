# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Exception classes for TImage

This module defines the error taxonomy shared by the JPEG/EXIF codec
and the image fetcher.

Copyright 2025 DNAi inc.
"""

from typing import Optional


class TImageError(Exception):
    """
    Base exception for all TImage errors.

    All TImage exceptions inherit from this class, allowing
    catch-all error handling for any caption read/write failure.
    """
    def __init__(self, message: str = ""):
        """
        Initialize the exception with an optional error message.

        Args:
            message: Descriptive error message explaining what went wrong
        """
        self.message = message
        super().__init__(message)


class MetadataReadError(TImageError):
    """
    Raised when the image structure cannot be parsed.

    Parent of the specific parse failures below.
    """
    pass


class MalformedImageError(MetadataReadError):
    """
    Raised when the input is not a usable JPEG.

    This exception is raised when:
    - The stream does not start with the SOI marker
    - A marker is expected but another byte is found
    - A segment length field is invalid or runs past the buffer
    - The EXIF segment has a bad TIFF header
    """
    pass


class TruncatedSegmentError(MetadataReadError):
    """
    Raised when an IFD count or value offset points beyond the EXIF segment.
    """
    pass


class UnsupportedFieldTypeError(MetadataReadError):
    """
    Raised when an IFD entry declares a field type outside ExifTagType.
    """
    def __init__(self, message: str = "", field_type: Optional[int] = None):
        self.field_type = field_type
        super().__init__(message)


class MetadataWriteError(TImageError):
    """
    Raised when a rebuilt segment cannot be written back into the JPEG.

    This exception is raised when:
    - The new APP1 payload exceeds the 16-bit JPEG segment length
    """
    pass


class FetchFailedError(TImageError):
    """
    Raised when an image URL cannot be fetched.

    The underlying httpx error is chained as __cause__.
    """
    def __init__(self, message: str = "", url: Optional[str] = None):
        self.url = url
        super().__init__(message)
