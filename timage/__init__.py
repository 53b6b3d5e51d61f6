# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
TImage - JPEG caption reader and writer

Reads and writes the EXIF ImageDescription of JPEG images given by URL,
in-memory blob or raw bytes. The EXIF codec is pure Python and works
directly on the JPEG byte stream.

Copyright 2025 DNAi inc.
"""

__version__ = "0.1.0"
__author__ = "DNAi inc."

from timage.blob import ImageBlob
from timage.core import (
    TImage,
    get_caption,
    read_caption,
    set_caption,
    write_caption,
)
from timage.exceptions import (
    FetchFailedError,
    MalformedImageError,
    MetadataReadError,
    MetadataWriteError,
    TImageError,
    TruncatedSegmentError,
    UnsupportedFieldTypeError,
)
from timage.fetcher import url_to_blob

__all__ = [
    "TImage",
    "ImageBlob",
    "get_caption",
    "set_caption",
    "read_caption",
    "write_caption",
    "url_to_blob",
    "TImageError",
    "MetadataReadError",
    "MetadataWriteError",
    "MalformedImageError",
    "TruncatedSegmentError",
    "UnsupportedFieldTypeError",
    "FetchFailedError",
]
