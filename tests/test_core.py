"""Tests for the public caption API."""

import struct

import httpx
import pytest

from timage import (
    ImageBlob,
    MalformedImageError,
    MetadataWriteError,
    TImage,
    TruncatedSegmentError,
    UnsupportedFieldTypeError,
    get_caption,
    read_caption,
    set_caption,
    write_caption,
)
from timage.exif_directory import ExifDirectory
from timage.jpeg_segments import locate

from jpeg_factory import (
    IMAGE_TAIL,
    MAKE,
    ORIENTATION,
    caption_payload,
    jpeg_with_payload,
    tiff_payload,
)


def app1_length(data):
    segment = locate(data)
    return struct.unpack('>H', data[segment.offset + 2:segment.offset + 4])[0]


class TestReadCaption:
    """Test cases for reading captions from bytes."""

    def test_no_exif(self, plain_jpeg):
        assert read_caption(plain_jpeg) == ''

    def test_no_caption_tag(self, camera_jpeg):
        assert read_caption(camera_jpeg) == ''

    def test_caption(self, captioned_jpeg):
        assert read_caption(captioned_jpeg) == 'old'

    def test_duplicate_first_wins(self, duplicate_caption_jpeg):
        assert read_caption(duplicate_caption_jpeg) == 'alpha-one'

    def test_not_a_jpeg(self):
        """Test non-JPEG input is an error, not an empty caption."""
        with pytest.raises(MalformedImageError):
            read_caption(b'GIF89a' + bytes(20))

    def test_truncated_exif(self):
        payload = bytearray(caption_payload('x'))
        payload[14:16] = struct.pack('<H', 9)
        with pytest.raises(TruncatedSegmentError):
            read_caption(jpeg_with_payload(bytes(payload)))

    def test_unsupported_field_type(self):
        with pytest.raises(UnsupportedFieldTypeError):
            read_caption(jpeg_with_payload(tiff_payload([(MAKE, 0, 1, b'\x00')])))


class TestWriteCaption:
    """Test cases for writing captions to bytes."""

    @pytest.mark.parametrize('title', ['', 'a', 'abc', 'Sunset over the bay', 'x' * 500])
    def test_round_trip(self, plain_jpeg, captioned_jpeg, camera_jpeg, title):
        for source in (plain_jpeg, captioned_jpeg, camera_jpeg):
            assert read_caption(write_caption(source, title)) == title

    def test_creates_exif_segment(self, plain_jpeg):
        """Test an image without EXIF gets a new APP1 after SOI."""
        result = write_caption(plain_jpeg, 'brand new')
        segment = locate(result)
        assert segment.offset == 2
        assert result[segment.end:] == plain_jpeg[2:]
        assert read_caption(result) == 'brand new'

    def test_creates_big_endian_segment(self, plain_jpeg):
        result = write_caption(plain_jpeg, 'motorola', byte_order='>')
        segment = locate(result)
        assert result[segment.payload_start + 6:segment.payload_start + 8] == b'MM'
        assert read_caption(result) == 'motorola'

    def test_adds_tag_to_existing_exif(self, camera_jpeg):
        """Test other tags survive when the caption tag is created."""
        result = write_caption(camera_jpeg, 'added later')
        segment = locate(result)
        directory = ExifDirectory(segment.payload(result))
        assert len(directory.entries) == 3
        assert directory.read_string(MAKE) == 'Canon'
        assert directory.read_tag(ORIENTATION) == b'\x06\x00'
        assert read_caption(result) == 'added later'

    def test_scenario_inline_old_caption(self, captioned_jpeg):
        """Test replacing an inline 'old' caption with a longer one."""
        result = write_caption(captioned_jpeg, 'new-caption-text')
        assert read_caption(result) == 'new-caption-text'
        assert app1_length(result) - app1_length(captioned_jpeg) == len('new-caption-text') + 1

    def test_scenario_length_delta(self):
        """Test growing a trailing caption grows the APP1 length by the text delta."""
        source = jpeg_with_payload(caption_payload('old caption'))
        result = write_caption(source, 'new-caption-text')
        assert read_caption(result) == 'new-caption-text'
        assert app1_length(result) - app1_length(source) == len('new-caption-text') - len('old caption')

    def test_image_data_preserved(self, captioned_jpeg):
        """Test the bytes after the EXIF segment are only shifted."""
        old_segment = locate(captioned_jpeg)
        result = write_caption(captioned_jpeg, 'a caption long enough to change the layout')
        new_segment = locate(result)

        assert result[new_segment.end:] == captioned_jpeg[old_segment.end:]
        assert result.endswith(IMAGE_TAIL)
        assert len(result) - len(captioned_jpeg) == new_segment.length - old_segment.length

    def test_idempotent(self, captioned_jpeg, plain_jpeg):
        for source in (captioned_jpeg, plain_jpeg):
            once = write_caption(source, 'twice applied caption')
            twice = write_caption(once, 'twice applied caption')
            assert read_caption(twice) == 'twice applied caption'
            assert twice == once

    def test_duplicate_only_first_updated(self, duplicate_caption_jpeg):
        result = write_caption(duplicate_caption_jpeg, 'z')
        directory = ExifDirectory(locate(result).payload(result))
        second = directory.entries[1]
        start = second.value_or_offset
        assert read_caption(result) == 'z'
        assert directory.tiff_data[start:start + second.count] == b'beta-two-x\x00'

    def test_input_not_mutated(self, captioned_jpeg):
        source = bytearray(captioned_jpeg)
        write_caption(source, 'changed')
        assert bytes(source) == captioned_jpeg

    def test_caption_too_large(self, captioned_jpeg):
        with pytest.raises(MetadataWriteError):
            write_caption(captioned_jpeg, 'x' * 70000)

    def test_nul_in_caption(self, captioned_jpeg):
        with pytest.raises(ValueError):
            write_caption(captioned_jpeg, 'bad\x00caption')

    def test_not_a_jpeg(self):
        with pytest.raises(MalformedImageError):
            write_caption(b'\x00\x01\x02\x03', 'title')

    def test_utf8_caption(self, plain_jpeg):
        assert read_caption(write_caption(plain_jpeg, 'Café au lait')) == 'Café au lait'


class TestTImage:
    """Test cases for the async facade."""

    def test_default_options(self):
        timage = TImage()
        assert timage.get_option('FetchTimeout') == 30.0
        assert timage.get_option('ByteOrder') == '<'

    def test_options_from_constructor(self):
        timage = TImage(FetchTimeout='5', ByteOrder='>')
        assert timage.get_option('FetchTimeout') == 5.0
        assert timage.get_option('ByteOrder') == '>'

    def test_unknown_option(self):
        with pytest.raises(ValueError):
            TImage().set_option('Verbose', True)

    def test_invalid_option_value(self):
        timage = TImage()
        with pytest.raises(ValueError):
            timage.set_option('ByteOrder', 'big')
        with pytest.raises(ValueError):
            timage.set_option('FetchTimeout', 'soon')

    @pytest.mark.asyncio
    async def test_get_from_blob(self, captioned_jpeg):
        assert await TImage().get(ImageBlob(captioned_jpeg)) == 'old'

    @pytest.mark.asyncio
    async def test_get_from_bytes(self, plain_jpeg):
        assert await get_caption(plain_jpeg) == ''

    @pytest.mark.asyncio
    async def test_set_keeps_media_type(self, captioned_jpeg):
        source = ImageBlob(captioned_jpeg, content_type='image/pjpeg', name='holiday.jpg')
        result = await set_caption('On the pier', source)

        assert isinstance(result, ImageBlob)
        assert result.content_type == 'image/pjpeg'
        assert result.name == 'holiday.jpg'
        assert source.data == captioned_jpeg
        assert await get_caption(result) == 'On the pier'

    @pytest.mark.asyncio
    async def test_set_uses_byte_order_option(self, plain_jpeg):
        result = await TImage(ByteOrder='>').set('big', plain_jpeg)
        segment = locate(result.data)
        assert result.data[segment.payload_start + 6:segment.payload_start + 8] == b'MM'

    @pytest.mark.asyncio
    async def test_round_trip_from_url(self, camera_jpeg):
        """Test set then get through a URL fetch."""
        def handler(request):
            return httpx.Response(200, content=camera_jpeg, headers={'content-type': 'image/jpeg'})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await set_caption('from the web', 'https://images.example.com/a.jpg', client=client)

        assert result.content_type == 'image/jpeg'
        assert await get_caption(result) == 'from the web'

    @pytest.mark.asyncio
    async def test_malformed_blob(self):
        with pytest.raises(MalformedImageError):
            await get_caption(ImageBlob(b'not an image'))

    @pytest.mark.asyncio
    async def test_unsupported_input(self):
        with pytest.raises(TypeError):
            await get_caption(12345)
