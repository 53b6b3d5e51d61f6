# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
JPEG segment locator

This module walks the marker structure of a JPEG byte stream and finds
the EXIF APP1 segment. Scanning stops at the start of scan (SOS) marker
since no metadata segment can follow the entropy-coded image data.

Copyright 2025 DNAi inc.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Iterator, Optional

from timage.exceptions import MalformedImageError

logger = logging.getLogger(__name__)

# JPEG markers
SOI = 0xFFD8  # Start of Image
EOI = 0xFFD9  # End of Image
SOS = 0xFFDA  # Start of Scan
APP1 = 0xFFE1  # APP1 (EXIF)

EXIF_HEADER = b'Exif\x00\x00'

# Markers that carry no length field
STANDALONE_MARKERS = frozenset([0x01, 0xD8] + list(range(0xD0, 0xD8)))


@dataclass(frozen=True)
class JPEGSegment:
    """
    A length-bearing JPEG segment.

    offset points at the 0xFF byte of the marker; length is the declared
    big-endian length, which covers the length field and the payload.
    """
    marker: int
    offset: int
    length: int

    @property
    def payload_start(self) -> int:
        return self.offset + 4

    @property
    def payload_length(self) -> int:
        return self.length - 2

    @property
    def end(self) -> int:
        return self.offset + 2 + self.length

    def payload(self, file_data: bytes) -> bytes:
        return bytes(file_data[self.payload_start:self.end])

    def is_exif(self, file_data: bytes) -> bool:
        if self.marker != APP1:
            return False
        return file_data[self.payload_start:self.payload_start + len(EXIF_HEADER)] == EXIF_HEADER


def iter_segments(file_data: bytes) -> Iterator[JPEGSegment]:
    """
    Yield every length-bearing segment that precedes the image data.

    Args:
        file_data: JPEG file data

    Raises:
        MalformedImageError: If SOI is missing or the marker structure is corrupt
    """
    if len(file_data) < 2 or struct.unpack('>H', file_data[0:2])[0] != SOI:
        raise MalformedImageError("Invalid JPEG file: missing SOI marker")

    i = 2
    size = len(file_data)

    while i < size:
        if file_data[i] != 0xFF:
            raise MalformedImageError(
                f"Invalid JPEG file: expected marker at offset {i}, found 0x{file_data[i]:02X}"
            )

        if i + 1 >= size:
            break

        marker_byte = file_data[i + 1]

        # Fill bytes may precede a marker
        if marker_byte == 0xFF:
            i += 1
            continue

        if marker_byte in STANDALONE_MARKERS:
            i += 2
            continue

        marker = 0xFF00 | marker_byte
        if marker in (SOS, EOI):
            break

        if i + 4 > size:
            raise MalformedImageError(f"Invalid JPEG file: truncated length field at offset {i}")

        length = struct.unpack('>H', file_data[i + 2:i + 4])[0]
        if length < 2:
            raise MalformedImageError(
                f"Invalid JPEG file: segment 0x{marker:04X} at offset {i} has length {length}"
            )
        if i + 2 + length > size:
            raise MalformedImageError(
                f"Invalid JPEG file: segment 0x{marker:04X} at offset {i} runs past end of data"
            )

        yield JPEGSegment(marker, i, length)

        i += 2 + length


def locate(file_data: bytes) -> Optional[JPEGSegment]:
    """
    Find the first EXIF APP1 segment.

    Args:
        file_data: JPEG file data

    Returns:
        The EXIF segment, or None if the image carries no EXIF data
    """
    for segment in iter_segments(file_data):
        if segment.is_exif(file_data):
            logger.debug("EXIF APP1 segment at offset %d, length %d", segment.offset, segment.length)
            return segment
    logger.debug("No EXIF APP1 segment found")
    return None
