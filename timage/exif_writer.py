# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
EXIF segment builder

This module builds a fresh EXIF APP1 payload for JPEG files that carry
no EXIF data yet.

Copyright 2025 DNAi inc.
"""

import struct
from typing import List, Tuple

from timage.exif_directory import (
    IMAGE_DESCRIPTION,
    MAX_INLINE_SIZE,
    TAG_SIZES,
    ExifTagType,
    encode_text,
)
from timage.jpeg_segments import EXIF_HEADER


class ExifWriter:
    """
    Builds EXIF payloads containing a single IFD0.

    Values of up to 4 bytes are stored inline in their entry; longer
    values follow the directory.
    """

    def __init__(self, endian: str = '<'):
        """
        Initialize EXIF writer.

        Args:
            endian: Byte order ('<' for little-endian, '>' for big-endian)
        """
        if endian not in ('<', '>'):
            raise ValueError(f"Invalid byte order: {endian!r}")
        self.endian = endian

    def build_caption_payload(self, text: str) -> bytes:
        """Build a payload whose IFD0 holds only ImageDescription."""
        return self.build_exif_payload([(IMAGE_DESCRIPTION, ExifTagType.ASCII, encode_text(text))])

    def build_exif_payload(self, tags: List[Tuple[int, ExifTagType, bytes]]) -> bytes:
        """
        Build a complete EXIF APP1 payload.

        Args:
            tags: (tag_id, field_type, encoded value) tuples

        Returns:
            Payload bytes starting with the Exif identifier
        """
        tags = sorted(tags, key=lambda tag: tag[0])
        tiff_header = self._build_tiff_header()
        data_offset = len(tiff_header) + 2 + len(tags) * 12 + 4

        entries = []
        data = bytearray()
        for tag_id, field_type, value in tags:
            count = len(value) // TAG_SIZES[field_type]
            if len(value) <= MAX_INLINE_SIZE:
                value_field = value.ljust(MAX_INLINE_SIZE, b'\x00')
            else:
                if (data_offset + len(data)) % 2:
                    data.append(0)
                value_field = struct.pack(f'{self.endian}I', data_offset + len(data))
                data.extend(value)
            entries.append((tag_id, field_type, count, value_field))

        return EXIF_HEADER + tiff_header + self._write_ifd(entries) + bytes(data)

    def _build_tiff_header(self) -> bytes:
        """
        Build TIFF header (required for EXIF).

        IFD0 immediately follows the 8-byte header.
        """
        header = b'II' if self.endian == '<' else b'MM'
        header += struct.pack(f'{self.endian}H', 42)
        header += struct.pack(f'{self.endian}I', 8)
        return header

    def _write_ifd(self, entries: List[Tuple[int, int, int, bytes]]) -> bytes:
        ifd = bytearray()
        ifd.extend(struct.pack(f'{self.endian}H', len(entries)))
        for tag_id, field_type, count, value_field in entries:
            ifd.extend(struct.pack(f'{self.endian}HHI', tag_id, field_type, count))
            ifd.extend(value_field)
        # Offset to next IFD (0 = no more IFDs)
        ifd.extend(struct.pack(f'{self.endian}I', 0))
        return bytes(ifd)
