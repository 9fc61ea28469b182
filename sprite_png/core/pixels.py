"""Per-row packing between on-disk samples and canonical pixel words.

Each colour model has one RowCodec. The decoder and encoder look the codec
up once, before their row loops, and call its functions per row:

    unpack(samples, remap=None) -> canonical row
    pack(row) -> raw 8-bit samples

`samples` are 8 bits per sample, already normalised by normalize_samples().
"""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

import numpy as np

from sprite_png.core.errors import UnsupportedColorModel
from sprite_png.core.types import ColorModel, PixelFormat

_GRAY_SCALE = {1: 0xFF, 2: 0x55, 4: 0x11, 8: 1}


def normalize_samples(line: np.ndarray, bit_depth: int, count: int, scale_gray: bool = False) -> np.ndarray:
    """Expand one unfiltered scanline to exactly `count` 8-bit samples.

    16-bit samples keep their high byte. 1/2/4-bit samples are unpacked to a
    byte each, and scaled to the full 0..255 range when they are grayscale
    levels rather than palette indices.
    """
    if bit_depth == 8:
        return line[:count]
    if bit_depth == 16:
        return line[0 : 2 * count : 2]
    bits = np.unpackbits(line)[: count * bit_depth].reshape(count, bit_depth)
    weights = (1 << np.arange(bit_depth - 1, -1, -1)).astype(np.uint8)
    samples = (bits * weights).sum(axis=1, dtype=np.uint8)
    if scale_gray:
        samples = samples * np.uint8(_GRAY_SCALE[bit_depth])
    return samples


def _unpack_rgba(samples: np.ndarray, remap: np.ndarray | None = None) -> np.ndarray:
    px = samples.reshape(-1, 4).astype(np.uint32)
    return px[:, 0] | (px[:, 1] << 8) | (px[:, 2] << 16) | (px[:, 3] << 24)


def _unpack_rgb(samples: np.ndarray, remap: np.ndarray | None = None) -> np.ndarray:
    px = samples.reshape(-1, 3).astype(np.uint32)
    return px[:, 0] | (px[:, 1] << 8) | (px[:, 2] << 16) | np.uint32(0xFF000000)


def _unpack_graya(samples: np.ndarray, remap: np.ndarray | None = None) -> np.ndarray:
    px = samples.reshape(-1, 2).astype(np.uint16)
    return px[:, 0] | (px[:, 1] << 8)


def _unpack_gray(samples: np.ndarray, remap: np.ndarray | None = None) -> np.ndarray:
    return samples.astype(np.uint16) | np.uint16(0xFF00)


def _unpack_indexed(samples: np.ndarray, remap: np.ndarray | None = None) -> np.ndarray:
    if remap is None:
        return samples.astype(np.uint8)
    return remap[samples]


def _pack_rgba(row: np.ndarray) -> np.ndarray:
    c = row.astype(np.uint32)
    channels = [c & 0xFF, (c >> 8) & 0xFF, (c >> 16) & 0xFF, (c >> 24) & 0xFF]
    return np.stack(channels, axis=-1).astype(np.uint8).reshape(-1)


def _pack_rgb(row: np.ndarray) -> np.ndarray:
    c = row.astype(np.uint32)
    return np.stack([c & 0xFF, (c >> 8) & 0xFF, (c >> 16) & 0xFF], axis=-1).astype(np.uint8).reshape(-1)


def _pack_graya(row: np.ndarray) -> np.ndarray:
    c = row.astype(np.uint16)
    return np.stack([c & 0xFF, (c >> 8) & 0xFF], axis=-1).astype(np.uint8).reshape(-1)


def _pack_gray(row: np.ndarray) -> np.ndarray:
    return (row.astype(np.uint16) & 0xFF).astype(np.uint8)


def _pack_indexed(row: np.ndarray) -> np.ndarray:
    return row.astype(np.uint8)


class RowCodec(NamedTuple):
    color_model: ColorModel
    pixel_format: PixelFormat
    channels: int
    has_alpha: bool
    unpack: Callable[..., np.ndarray]
    pack: Callable[[np.ndarray], np.ndarray]


ROW_CODECS: dict[ColorModel, RowCodec] = {
    ColorModel.RGBA: RowCodec(ColorModel.RGBA, PixelFormat.TRUE_COLOR, 4, True, _unpack_rgba, _pack_rgba),
    ColorModel.RGB: RowCodec(ColorModel.RGB, PixelFormat.TRUE_COLOR, 3, False, _unpack_rgb, _pack_rgb),
    ColorModel.GRAY_ALPHA: RowCodec(ColorModel.GRAY_ALPHA, PixelFormat.GRAYSCALE, 2, True, _unpack_graya, _pack_graya),
    ColorModel.GRAY: RowCodec(ColorModel.GRAY, PixelFormat.GRAYSCALE, 1, False, _unpack_gray, _pack_gray),
    ColorModel.PALETTE: RowCodec(ColorModel.PALETTE, PixelFormat.INDEXED, 1, False, _unpack_indexed, _pack_indexed),
}


def row_codec(color_model: ColorModel | int) -> RowCodec:
    """Look up the codec for a colour model."""
    try:
        return ROW_CODECS[ColorModel(color_model)]
    except (KeyError, ValueError) as exc:
        raise UnsupportedColorModel(f'Color type {color_model} not supported') from exc


def select_color_model(pixel_format: PixelFormat, alpha_needed: bool) -> ColorModel:
    """Colour model the encoder emits for a canonical format."""
    if pixel_format is PixelFormat.TRUE_COLOR:
        return ColorModel.RGBA if alpha_needed else ColorModel.RGB
    if pixel_format is PixelFormat.GRAYSCALE:
        return ColorModel.GRAY_ALPHA if alpha_needed else ColorModel.GRAY
    return ColorModel.PALETTE
