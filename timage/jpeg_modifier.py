# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
JPEG file modifier

This module splices a rebuilt metadata segment back into a JPEG byte
stream. Every other segment and the image data are copied byte for byte.

Copyright 2025 DNAi inc.
"""

import logging
import struct

from timage.exceptions import MalformedImageError, MetadataWriteError
from timage.jpeg_segments import JPEGSegment

logger = logging.getLogger(__name__)

# Largest value of the 16-bit segment length field
MAX_SEGMENT_LENGTH = 0xFFFF


def frame_segment(marker: int, payload: bytes) -> bytes:
    """
    Prefix a payload with its marker and length field.

    Raises:
        MetadataWriteError: If the payload does not fit a JPEG segment
    """
    length = len(payload) + 2
    if length > MAX_SEGMENT_LENGTH:
        raise MetadataWriteError(
            f"Segment 0x{marker:04X} payload of {len(payload)} bytes exceeds JPEG segment limit"
        )
    return struct.pack('>HH', marker, length) + payload


class JPEGModifier:
    """
    Produces modified copies of a JPEG file.

    The original data is never changed; every method returns new bytes.
    """

    def __init__(self, file_data: bytes):
        """
        Initialize JPEG modifier.

        Args:
            file_data: Original JPEG file data
        """
        self.file_data = bytes(file_data)

    def replace_segment(self, segment: JPEGSegment, new_payload: bytes) -> bytes:
        """
        Replace a segment's payload and rewrite its length field.

        Args:
            segment: Segment located in this file
            new_payload: Payload without marker and length

        Returns:
            Modified JPEG file data
        """
        if segment.end > len(self.file_data):
            raise MalformedImageError(
                f"Segment at offset {segment.offset} runs past end of data"
            )

        framed = frame_segment(segment.marker, new_payload)

        new_data = bytearray(self.file_data[:segment.offset])
        new_data.extend(framed)
        new_data.extend(self.file_data[segment.end:])

        logger.debug(
            "Replaced segment 0x%04X at offset %d: length %d -> %d",
            segment.marker, segment.offset, segment.length, len(framed) - 2,
        )
        return bytes(new_data)

    def insert_segment(self, marker: int, payload: bytes) -> bytes:
        """
        Insert a new segment directly after SOI.

        Args:
            marker: Segment marker (e.g. 0xFFE1)
            payload: Payload without marker and length

        Returns:
            Modified JPEG file data
        """
        framed = frame_segment(marker, payload)

        new_data = bytearray(self.file_data[0:2])  # SOI
        new_data.extend(framed)
        new_data.extend(self.file_data[2:])

        logger.debug("Inserted segment 0x%04X of length %d after SOI", marker, len(framed) - 2)
        return bytes(new_data)


def rebuild(original: bytes, segment: JPEGSegment, new_payload: bytes) -> bytes:
    """Return a copy of original with segment's payload replaced."""
    return JPEGModifier(original).replace_segment(segment, new_payload)
