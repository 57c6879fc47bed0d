"""
Tests for image loading (imperative shell)

Uses real files written with Pillow into pytest's tmp_path.
"""

import struct
import zlib

import numpy as np
import pytest
from PIL import Image

from image_quality.errors import DecodeError
from image_quality.image_shell import (
    load_source_image,
    resolve_image_path,
    source_image_from_array,
)


def png_chunk(kind: bytes, data: bytes) -> bytes:
    body = kind + data
    return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body))


def oversized_png(width: int, height: int) -> bytes:
    """PNG header claiming a huge grayscale image, with almost no pixel data"""
    header = struct.pack(">IIBBBBB", width, height, 8, 0, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + png_chunk(b"IHDR", header)
        + png_chunk(b"IDAT", zlib.compress(b"\x00" * 16))
        + png_chunk(b"IEND", b"")
    )


@pytest.fixture
def rgb_png(tmp_path):
    """3x2 RGB PNG with a distinct top-left pixel"""
    pixels = np.zeros((2, 3, 3), dtype=np.uint8)
    pixels[0, 0] = (255, 0, 0)
    pixels[1, 2] = (0, 0, 255)
    path = tmp_path / "photo.png"
    Image.fromarray(pixels, 'RGB').save(path)
    return path


class TestResolveImagePath:

    def test_plain_path(self, rgb_png):
        assert resolve_image_path(str(rgb_png)) == rgb_png

    def test_path_object(self, rgb_png):
        assert resolve_image_path(rgb_png) == rgb_png

    def test_file_uri(self, rgb_png):
        assert resolve_image_path(rgb_png.as_uri()) == rgb_png

    def test_file_uri_with_percent_in_name(self, tmp_path):
        path = tmp_path / "a%41.png"
        Image.new('RGB', (2, 2)).save(path)

        # as_uri() escapes the % as %25; decoding must happen exactly once
        assert resolve_image_path(path.as_uri()) == path

    def test_missing_file(self, tmp_path):
        with pytest.raises(DecodeError, match="not found"):
            resolve_image_path(tmp_path / "nope.jpg")

    def test_remote_uri_rejected(self):
        with pytest.raises(DecodeError, match="scheme"):
            resolve_image_path("https://example.com/photo.jpg")


class TestLoadSourceImage:

    def test_decodes_to_rgba(self, rgb_png):
        image = load_source_image(rgb_png)

        assert image.size == (3, 2)
        assert image.name == "photo.png"
        assert len(image.pixels) == 3 * 2 * 4

        rgba = np.frombuffer(image.pixels, dtype=np.uint8).reshape(2, 3, 4)
        np.testing.assert_array_equal(rgba[0, 0], [255, 0, 0, 255])
        np.testing.assert_array_equal(rgba[1, 2], [0, 0, 255, 255])

    def test_grayscale_is_expanded(self, tmp_path):
        path = tmp_path / "gray.png"
        Image.new('L', (4, 4), 77).save(path)

        image = load_source_image(path)
        rgba = np.frombuffer(image.pixels, dtype=np.uint8).reshape(4, 4, 4)
        assert np.all(rgba[..., :3] == 77)
        assert np.all(rgba[..., 3] == 255)

    def test_jpeg(self, tmp_path):
        path = tmp_path / "shot.jpg"
        Image.new('RGB', (16, 8), (120, 130, 140)).save(path, quality=95)

        image = load_source_image(str(path))
        assert image.size == (16, 8)

    def test_exif_orientation_applied(self, tmp_path):
        path = tmp_path / "rotated.jpg"
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 CW on display
        Image.new('RGB', (20, 10), (50, 50, 50)).save(path, exif=exif)

        image = load_source_image(path)
        assert image.size == (10, 20)

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"definitely not an image")

        with pytest.raises(DecodeError, match="broken.png"):
            load_source_image(path)

    def test_decompression_bomb_is_a_decode_error(self, tmp_path):
        path = tmp_path / "bomb.png"
        path.write_bytes(oversized_png(20000, 20000))

        with pytest.raises(DecodeError, match="bomb.png"):
            load_source_image(path)


class TestSourceImageFromArray:

    def test_rgb_gets_opaque_alpha(self):
        array = np.full((2, 5, 3), 9, dtype=np.uint8)
        image = source_image_from_array(array, name="mem")

        assert image.size == (5, 2)
        assert image.name == "mem"
        rgba = np.frombuffer(image.pixels, dtype=np.uint8).reshape(2, 5, 4)
        assert np.all(rgba[..., 3] == 255)
        assert np.all(rgba[..., :3] == 9)

    def test_rgba_kept(self):
        array = np.zeros((3, 3, 4), dtype=np.uint8)
        array[..., 3] = 17
        image = source_image_from_array(array)
        assert image.pixels == array.tobytes()

    @pytest.mark.parametrize("array", [
        np.zeros((4, 4), dtype=np.uint8),
        np.zeros((4, 4, 2), dtype=np.uint8),
        np.zeros((4, 4, 3), dtype=np.float32),
        np.zeros((0, 4, 4), dtype=np.uint8),
    ])
    def test_unsupported_arrays(self, array):
        with pytest.raises(DecodeError):
            source_image_from_array(array)
