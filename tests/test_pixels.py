"""Tests for sprite_png.core.pixels — row codecs and bit depth normalization."""

import numpy as np
import pytest
from sprite_png.core.errors import UnsupportedColorModel
from sprite_png.core.pixels import ROW_CODECS, normalize_samples, row_codec, select_color_model
from sprite_png.core.types import (
    ColorModel,
    PixelFormat,
    graya,
    graya_geta,
    graya_getv,
    rgba,
    rgba_geta,
    rgba_getb,
    rgba_getg,
    rgba_getr,
)


def _u8(values) -> np.ndarray:
    return np.array(values, dtype=np.uint8)


class TestPixelWords:
    def test_rgba_channels(self):
        c = rgba(1, 2, 3, 4)
        assert c == 0x04030201
        assert (rgba_getr(c), rgba_getg(c), rgba_getb(c), rgba_geta(c)) == (1, 2, 3, 4)

    def test_graya_channels(self):
        c = graya(200, 7)
        assert c == 0x07C8
        assert (graya_getv(c), graya_geta(c)) == (200, 7)

    def test_channels_are_masked(self):
        assert rgba_getr(rgba(256 + 9, 0, 0, 0)) == 9


class TestUnpack:
    def test_rgba_words(self):
        codec = row_codec(ColorModel.RGBA)
        row = codec.unpack(_u8([255, 0, 0, 255, 0, 255, 0, 128]))
        assert list(row) == [rgba(255, 0, 0, 255), rgba(0, 255, 0, 128)]

    def test_rgb_gets_opaque_alpha(self):
        codec = row_codec(ColorModel.RGB)
        row = codec.unpack(_u8([1, 2, 3, 250, 251, 252]))
        assert list(row) == [rgba(1, 2, 3, 255), rgba(250, 251, 252, 255)]

    def test_gray_alpha_words(self):
        codec = row_codec(ColorModel.GRAY_ALPHA)
        row = codec.unpack(_u8([10, 20, 200, 0]))
        assert list(row) == [graya(10, 20), graya(200, 0)]

    def test_gray_gets_opaque_alpha(self):
        codec = row_codec(ColorModel.GRAY)
        row = codec.unpack(_u8([0, 127, 255]))
        assert list(row) == [graya(0, 255), graya(127, 255), graya(255, 255)]

    def test_indexed_without_remap_is_identity(self):
        codec = row_codec(ColorModel.PALETTE)
        row = codec.unpack(_u8([0, 5, 255]))
        assert list(row) == [0, 5, 255]

    def test_indexed_remap(self):
        remap = np.arange(256, dtype=np.uint8)
        remap[7] = 2
        codec = row_codec(ColorModel.PALETTE)
        row = codec.unpack(_u8([7, 2, 3]), remap=remap)
        assert list(row) == [2, 2, 3]

    def test_output_dtypes_match_pixel_format(self):
        for model, codec in ROW_CODECS.items():
            samples = np.zeros(codec.channels * 3, dtype=np.uint8)
            row = codec.unpack(samples)
            assert row.dtype.itemsize == codec.pixel_format.bytes_per_pixel, model


class TestPack:
    def test_scenario_rgba_bytes(self):
        # 2x2 image, one row at a time: every one of the 16 bytes must survive
        raw = _u8([255, 0, 0, 255, 0, 255, 0, 128, 0, 0, 255, 0, 255, 255, 0, 64])
        codec = row_codec(ColorModel.RGBA)
        for y in range(2):
            line = raw[y * 8 : (y + 1) * 8]
            assert codec.pack(codec.unpack(line)).tobytes() == line.tobytes()

    def test_rgb_drops_alpha(self):
        codec = row_codec(ColorModel.RGB)
        row = np.array([rgba(9, 8, 7, 6)], dtype='<u4')
        assert list(codec.pack(row)) == [9, 8, 7]

    def test_gray_alpha(self):
        codec = row_codec(ColorModel.GRAY_ALPHA)
        row = np.array([graya(33, 44)], dtype='<u2')
        assert list(codec.pack(row)) == [33, 44]

    def test_gray_drops_alpha(self):
        codec = row_codec(ColorModel.GRAY)
        row = np.array([graya(33, 44)], dtype='<u2')
        assert list(codec.pack(row)) == [33]

    def test_indexed_is_byte_identical(self):
        codec = row_codec(ColorModel.PALETTE)
        row = _u8([0, 1, 254, 255])
        assert codec.pack(row).tobytes() == row.tobytes()

    def test_canonical_buffer_bytes_are_channel_order(self):
        row = row_codec(ColorModel.RGBA).unpack(_u8([1, 2, 3, 4]))
        assert row.astype('<u4').tobytes() == bytes([1, 2, 3, 4])


class TestNormalizeSamples:
    def test_8bit_passthrough(self):
        line = _u8([1, 2, 3])
        assert list(normalize_samples(line, 8, 3)) == [1, 2, 3]

    def test_16bit_keeps_high_byte(self):
        line = _u8([0x12, 0x34, 0xAB, 0xCD])
        assert list(normalize_samples(line, 16, 2)) == [0x12, 0xAB]

    def test_1bit_gray_scaled(self):
        line = _u8([0b10100000])
        assert list(normalize_samples(line, 1, 3, scale_gray=True)) == [255, 0, 255]

    def test_2bit_gray_scaled(self):
        line = _u8([0b00011011])
        assert list(normalize_samples(line, 2, 4, scale_gray=True)) == [0, 85, 170, 255]

    def test_4bit_gray_scaled(self):
        line = _u8([0xF0, 0x80])
        assert list(normalize_samples(line, 4, 3, scale_gray=True)) == [255, 0, 136]

    def test_4bit_palette_unscaled(self):
        line = _u8([0x3C])
        assert list(normalize_samples(line, 4, 2)) == [3, 12]

    def test_padding_bits_ignored(self):
        line = _u8([0b11111111])
        assert list(normalize_samples(line, 1, 3)) == [1, 1, 1]


class TestSelection:
    def test_unknown_color_model(self):
        with pytest.raises(UnsupportedColorModel):
            row_codec(5)

    @pytest.mark.parametrize(
        ('pixel_format', 'alpha', 'expected'),
        [
            (PixelFormat.TRUE_COLOR, True, ColorModel.RGBA),
            (PixelFormat.TRUE_COLOR, False, ColorModel.RGB),
            (PixelFormat.GRAYSCALE, True, ColorModel.GRAY_ALPHA),
            (PixelFormat.GRAYSCALE, False, ColorModel.GRAY),
            (PixelFormat.INDEXED, True, ColorModel.PALETTE),
            (PixelFormat.INDEXED, False, ColorModel.PALETTE),
        ],
    )
    def test_select_color_model(self, pixel_format, alpha, expected):
        assert select_color_model(pixel_format, alpha) is expected

    def test_every_model_maps_to_canonical_format(self):
        assert row_codec(ColorModel.RGBA).pixel_format is PixelFormat.TRUE_COLOR
        assert row_codec(ColorModel.GRAY).pixel_format is PixelFormat.GRAYSCALE
        assert row_codec(ColorModel.PALETTE).pixel_format is PixelFormat.INDEXED
        assert row_codec(ColorModel.RGBA).has_alpha
        assert not row_codec(ColorModel.RGB).has_alpha
