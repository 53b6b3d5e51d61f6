# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
EXIF directory parser

This module decodes the TIFF structure carried by an EXIF APP1 payload
and reads or rewrites a single tag of the primary Image File Directory
(IFD0).

Writes never move existing bytes: values that no longer fit are appended
at the end of the TIFF data, and when a new entry is needed IFD0 itself is
re-emitted at the end. Every offset already stored in the segment (sub-IFDs,
MakerNotes, thumbnails) therefore stays valid.

Copyright 2025 DNAi inc.
"""

import logging
import struct
from bisect import bisect_right
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Tuple

from timage.exceptions import (
    MalformedImageError,
    TruncatedSegmentError,
    UnsupportedFieldTypeError,
)
from timage.jpeg_segments import EXIF_HEADER

logger = logging.getLogger(__name__)


class ExifTagType(IntEnum):
    """EXIF tag data types"""
    BYTE = 1
    ASCII = 2
    SHORT = 3
    LONG = 4
    RATIONAL = 5
    SBYTE = 6
    UNDEFINED = 7
    SSHORT = 8
    SLONG = 9
    SRATIONAL = 10
    FLOAT = 11
    DOUBLE = 12
    IFD = 13
    LONG8 = 16  # BigTIFF format code 16 (64-bit unsigned integer)
    SLONG8 = 17  # BigTIFF format code 17 (64-bit signed integer)
    IFD8 = 18  # BigTIFF format code 18 (64-bit IFD offset)


# EXIF tag sizes in bytes
TAG_SIZES = {
    ExifTagType.BYTE: 1,
    ExifTagType.ASCII: 1,
    ExifTagType.SHORT: 2,
    ExifTagType.LONG: 4,
    ExifTagType.RATIONAL: 8,
    ExifTagType.SBYTE: 1,
    ExifTagType.UNDEFINED: 1,
    ExifTagType.SSHORT: 2,
    ExifTagType.SLONG: 4,
    ExifTagType.SRATIONAL: 8,
    ExifTagType.FLOAT: 4,
    ExifTagType.DOUBLE: 8,
    ExifTagType.IFD: 4,
    ExifTagType.LONG8: 8,
    ExifTagType.SLONG8: 8,
    ExifTagType.IFD8: 8,
}

IMAGE_DESCRIPTION = 0x010E

TIFF_MAGIC = 42
TIFF_HEADER_SIZE = 8
ENTRY_SIZE = 12
MAX_INLINE_SIZE = 4


def encode_text(text: str) -> bytes:
    """
    Encode a string as a null-terminated EXIF text value.

    Pure ASCII is stored as ASCII; anything else is stored as UTF-8
    (EXIF 3.0).

    Raises:
        ValueError: If the text contains a NUL character
    """
    if '\x00' in text:
        raise ValueError("EXIF text values cannot contain NUL characters")
    try:
        encoded = text.encode('ascii')
    except UnicodeEncodeError:
        encoded = text.encode('utf-8')
    return encoded + b'\x00'


def decode_text(raw: bytes) -> str:
    """Decode a null-terminated EXIF text value."""
    return raw.split(b'\x00', 1)[0].decode('utf-8', errors='replace')


@dataclass(frozen=True)
class IFDEntry:
    """
    One 12-byte IFD record.

    offset is the position of the record within the TIFF data.
    raw_value keeps the 4 inline bytes exactly as stored.
    """
    tag_id: int
    field_type: ExifTagType
    count: int
    value_or_offset: int
    raw_value: bytes
    offset: int

    @property
    def value_size(self) -> int:
        return self.count * TAG_SIZES[self.field_type]

    @property
    def is_inline(self) -> bool:
        return self.value_size <= MAX_INLINE_SIZE


class ExifDirectory:
    """
    Decoded view over the IFD0 of an EXIF APP1 payload.

    The payload is copied on construction; write_tag returns a new
    payload and leaves this object unchanged.

    Example:
        >>> directory = ExifDirectory(segment.payload(file_data))
        >>> directory.read_string(IMAGE_DESCRIPTION)
        'Sunset over the bay'
    """

    def __init__(self, payload: bytes):
        """
        Initialize and parse the directory.

        Args:
            payload: APP1 payload starting with the Exif identifier

        Raises:
            MalformedImageError: If the identifier or TIFF header is invalid
            TruncatedSegmentError: If IFD0 or a value lies outside the payload
            UnsupportedFieldTypeError: If an entry has an unknown field type
        """
        if payload[:len(EXIF_HEADER)] != EXIF_HEADER:
            raise MalformedImageError("Invalid EXIF segment: missing Exif identifier")

        self.tiff_data = bytes(payload[len(EXIF_HEADER):])
        self.endian: str = '<'
        self.ifd0_offset: int = 0
        self.entries: List[IFDEntry] = []
        self.next_ifd: int = 0
        self._parse()

    def _parse(self) -> None:
        data = self.tiff_data
        if len(data) < TIFF_HEADER_SIZE:
            raise TruncatedSegmentError("EXIF segment too short for TIFF header")

        # Determine endianness
        if data[:2] == b'II':
            self.endian = '<'
        elif data[:2] == b'MM':
            self.endian = '>'
        else:
            raise MalformedImageError("Invalid EXIF segment: bad byte order")

        magic = struct.unpack(f'{self.endian}H', data[2:4])[0]
        if magic != TIFF_MAGIC:
            raise MalformedImageError("Invalid EXIF segment: bad TIFF magic number")

        self.ifd0_offset = struct.unpack(f'{self.endian}I', data[4:8])[0]
        self.entries, self.next_ifd = self._parse_ifd(self.ifd0_offset)

        logger.debug(
            "IFD0 at offset %d with %d entries (%s)",
            self.ifd0_offset,
            len(self.entries),
            'little-endian' if self.endian == '<' else 'big-endian',
        )

    def _parse_ifd(self, offset: int) -> Tuple[List[IFDEntry], int]:
        """
        Parse an IFD (Image File Directory).

        Args:
            offset: Offset to IFD within the TIFF data

        Returns:
            Tuple of (entries, next IFD offset)
        """
        data = self.tiff_data
        if offset + 2 > len(data):
            raise TruncatedSegmentError(f"IFD offset {offset} beyond end of EXIF segment")

        num_entries = struct.unpack(f'{self.endian}H', data[offset:offset + 2])[0]
        entries_end = offset + 2 + num_entries * ENTRY_SIZE
        if entries_end > len(data):
            raise TruncatedSegmentError(
                f"IFD at offset {offset} declares {num_entries} entries, exceeding EXIF segment"
            )

        entries = []
        for entry_offset in range(offset + 2, entries_end, ENTRY_SIZE):
            tag_id, tag_type, tag_count = struct.unpack(
                f'{self.endian}HHI', data[entry_offset:entry_offset + 8]
            )
            raw_value = data[entry_offset + 8:entry_offset + 12]
            tag_value = struct.unpack(f'{self.endian}I', raw_value)[0]

            try:
                field_type = ExifTagType(tag_type)
            except ValueError:
                raise UnsupportedFieldTypeError(
                    f"Unsupported field type {tag_type} for tag 0x{tag_id:04X}",
                    field_type=tag_type,
                ) from None

            entry = IFDEntry(tag_id, field_type, tag_count, tag_value, raw_value, entry_offset)
            if not entry.is_inline and tag_value + entry.value_size > len(data):
                raise TruncatedSegmentError(
                    f"Value of tag 0x{tag_id:04X} ({entry.value_size} bytes at offset {tag_value}) "
                    f"exceeds EXIF segment"
                )
            entries.append(entry)

        # Some writers omit the next IFD pointer
        next_ifd = 0
        if entries_end + 4 <= len(data):
            next_ifd = struct.unpack(f'{self.endian}I', data[entries_end:entries_end + 4])[0]

        return entries, next_ifd

    def find_entry(self, tag_id: int) -> Optional[IFDEntry]:
        """Return the first entry for tag_id; later duplicates are ignored."""
        for entry in self.entries:
            if entry.tag_id == tag_id:
                return entry
        return None

    def read_tag(self, tag_id: int) -> Optional[bytes]:
        """
        Read the raw value bytes of a tag.

        Args:
            tag_id: Tag ID to read

        Returns:
            Value bytes in the directory's byte order, or None if the tag is absent
        """
        entry = self.find_entry(tag_id)
        if entry is None:
            return None
        if entry.is_inline:
            return entry.raw_value[:entry.value_size]
        start = entry.value_or_offset
        return self.tiff_data[start:start + entry.value_size]

    def read_string(self, tag_id: int) -> str:
        """Read a text tag; an absent tag reads as an empty string."""
        raw = self.read_tag(tag_id)
        if raw is None:
            return ''
        return decode_text(raw)

    def write_string(self, tag_id: int, text: str) -> bytes:
        """Write a text tag as ASCII and return the new APP1 payload."""
        return self.write_tag(tag_id, encode_text(text), ExifTagType.ASCII)

    def write_tag(
        self,
        tag_id: int,
        value: bytes,
        field_type: ExifTagType = ExifTagType.ASCII
    ) -> bytes:
        """
        Set a tag value and return the new APP1 payload.

        Only the first entry for tag_id is updated. A value that fits in the
        existing storage is overwritten in place and zero padded; a longer
        value is appended at the end of the TIFF data. Value bytes that another
        entry also points at are never reused; the new value is appended
        instead. A missing tag gets a new entry in a copy of IFD0 appended at
        the end.

        Args:
            tag_id: Tag ID to write
            value: Encoded value bytes, already in the directory's byte order
            field_type: Field type of the value

        Returns:
            Complete APP1 payload including the Exif identifier
        """
        type_size = TAG_SIZES[field_type]
        if len(value) % type_size:
            raise ValueError(
                f"Value length {len(value)} is not a multiple of {field_type.name} size {type_size}"
            )

        count = len(value) // type_size
        data = bytearray(self.tiff_data)
        entry = self.find_entry(tag_id)
        stored_out_of_line = entry is not None and not entry.is_inline
        # Value bytes shared with another entry must stay as they are
        reusable = stored_out_of_line and not self._is_shared(entry)

        if len(value) <= MAX_INLINE_SIZE:
            value_field = value.ljust(MAX_INLINE_SIZE, b'\x00')
            if reusable:
                start = entry.value_or_offset
                data[start:start + entry.value_size] = bytes(entry.value_size)
        elif reusable and len(value) <= entry.value_size:
            start = entry.value_or_offset
            data[start:start + entry.value_size] = value.ljust(entry.value_size, b'\x00')
            value_field = struct.pack(f'{self.endian}I', start)
            logger.debug("Overwrote tag 0x%04X in place at offset %d", tag_id, start)
        elif reusable and entry.value_or_offset + entry.value_size == len(data):
            start = entry.value_or_offset
            del data[start:]
            data.extend(value)
            value_field = struct.pack(f'{self.endian}I', start)
            logger.debug("Extended trailing value of tag 0x%04X at offset %d", tag_id, start)
        else:
            start = self._append(data, value)
            value_field = struct.pack(f'{self.endian}I', start)
            logger.debug("Appended %d value bytes for tag 0x%04X at offset %d", len(value), tag_id, start)

        if entry is not None:
            data[entry.offset:entry.offset + ENTRY_SIZE] = self._pack_entry(
                tag_id, field_type, count, value_field
            )
        else:
            self._append_ifd0(data, (tag_id, field_type, count, value_field))

        return EXIF_HEADER + bytes(data)

    def _is_shared(self, entry: IFDEntry) -> bool:
        """Whether another out-of-line entry points at the same value bytes."""
        return any(
            other is not entry and not other.is_inline and other.value_or_offset == entry.value_or_offset
            for other in self.entries
        )

    def _pack_entry(self, tag_id: int, field_type: int, count: int, value_field: bytes) -> bytes:
        return struct.pack(f'{self.endian}HHI', tag_id, field_type, count) + value_field

    @staticmethod
    def _append(data: bytearray, value: bytes) -> int:
        # TIFF value offsets are word aligned
        if len(data) % 2:
            data.append(0)
        start = len(data)
        data.extend(value)
        return start

    def _append_ifd0(self, data: bytearray, new_entry: Tuple[int, int, int, bytes]) -> None:
        """
        Re-emit IFD0 at the end of the data with one more entry.

        The new entry is placed after any entry with a lower or equal tag ID.
        The old IFD0 bytes are left in place, unreferenced.
        """
        records = [
            (entry.tag_id, entry.field_type, entry.count, entry.raw_value)
            for entry in self.entries
        ]
        position = bisect_right([record[0] for record in records], new_entry[0])
        records.insert(position, new_entry)
        if len(records) > 0xFFFF:
            raise ValueError("IFD0 cannot hold more than 65535 entries")

        ifd = bytearray(struct.pack(f'{self.endian}H', len(records)))
        for record in records:
            ifd.extend(self._pack_entry(*record))
        ifd.extend(struct.pack(f'{self.endian}I', self.next_ifd))

        new_offset = self._append(data, bytes(ifd))
        data[4:8] = struct.pack(f'{self.endian}I', new_offset)
        logger.debug("Relocated IFD0 to offset %d with %d entries", new_offset, len(records))
