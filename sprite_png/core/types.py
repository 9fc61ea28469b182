"""Shared types for sprite-png: Image, Palette, TransparencyInfo, FileFormat, DecodeResult."""

from __future__ import annotations

import enum
import itertools
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import numpy as np

PALETTE_SIZE = 256


class PixelFormat(enum.Enum):
    """Canonical in-memory pixel layouts."""

    TRUE_COLOR = 'rgb'
    GRAYSCALE = 'grayscale'
    INDEXED = 'indexed'

    @property
    def dtype(self) -> np.dtype:
        return _DTYPES[self]

    @property
    def bytes_per_pixel(self) -> int:
        return _DTYPES[self].itemsize


_DTYPES = {
    PixelFormat.TRUE_COLOR: np.dtype('<u4'),
    PixelFormat.GRAYSCALE: np.dtype('<u2'),
    PixelFormat.INDEXED: np.dtype('u1'),
}


class ColorModel(enum.IntEnum):
    """On-disk channel layouts, valued by their PNG colour type code."""

    GRAY = 0
    RGB = 2
    PALETTE = 3
    GRAY_ALPHA = 4
    RGBA = 6


class FormatFlag(enum.Flag):
    """Capabilities a FileFormat declares to the registry."""

    LOAD = enum.auto()
    SAVE = enum.auto()
    RGB = enum.auto()
    RGBA = enum.auto()
    GRAY = enum.auto()
    GRAYA = enum.auto()
    INDEXED = enum.auto()
    SEQUENCES = enum.auto()


# Packed pixel words. TRUE_COLOR stores r | g<<8 | b<<16 | a<<24, so the
# little-endian buffer bytes read R, G, B, A.


def rgba(r: int, g: int, b: int, a: int) -> int:
    return (r & 0xFF) | ((g & 0xFF) << 8) | ((b & 0xFF) << 16) | ((a & 0xFF) << 24)


def rgba_getr(c: int) -> int:
    return c & 0xFF


def rgba_getg(c: int) -> int:
    return (c >> 8) & 0xFF


def rgba_getb(c: int) -> int:
    return (c >> 16) & 0xFF


def rgba_geta(c: int) -> int:
    return (c >> 24) & 0xFF


def graya(v: int, a: int) -> int:
    return (v & 0xFF) | ((a & 0xFF) << 8)


def graya_getv(c: int) -> int:
    return c & 0xFF


def graya_geta(c: int) -> int:
    return (c >> 8) & 0xFF


_image_ids = itertools.count(1)


def _next_image_id() -> int:
    return next(_image_ids)


@dataclass(eq=False)
class Image:
    """A fully materialized pixel buffer of shape (height, width).

    Every instance gets a stable integer id at creation. Copies get a fresh
    id; callers that need to restore an identity assign `id` explicitly.
    """

    pixel_format: PixelFormat
    width: int
    height: int
    pixels: np.ndarray
    id: int = field(default_factory=_next_image_id)

    @classmethod
    def create(cls, pixel_format: PixelFormat, width: int, height: int) -> Image:
        """Allocate a zero-filled image."""
        if width <= 0 or height <= 0:
            raise ValueError(f'Image size must be positive, got {width}x{height}')
        pixels = np.zeros((height, width), dtype=pixel_format.dtype)
        return cls(pixel_format=pixel_format, width=width, height=height, pixels=pixels)

    @classmethod
    def from_bytes(cls, pixel_format: PixelFormat, width: int, height: int, data: bytes) -> Image:
        """Build an image from a raw buffer of exactly height * stride bytes."""
        image = cls.create(pixel_format, width, height)
        if len(data) != image.size_in_bytes:
            raise ValueError(
                f'Expected {image.size_in_bytes} bytes for {width}x{height} {pixel_format.value}, got {len(data)}'
            )
        image.pixels[:] = np.frombuffer(data, dtype=pixel_format.dtype).reshape(height, width)
        return image

    @property
    def bytes_per_pixel(self) -> int:
        return self.pixel_format.bytes_per_pixel

    @property
    def stride(self) -> int:
        return self.width * self.bytes_per_pixel

    @property
    def size_in_bytes(self) -> int:
        return self.height * self.stride

    def get_pixel(self, x: int, y: int) -> int:
        return int(self.pixels[y, x])

    def put_pixel(self, x: int, y: int, value: int) -> None:
        self.pixels[y, x] = value

    def tobytes(self) -> bytes:
        return self.pixels.astype(self.pixel_format.dtype, copy=False).tobytes()

    def copy(self) -> Image:
        return Image(
            pixel_format=self.pixel_format,
            width=self.width,
            height=self.height,
            pixels=self.pixels.copy(),
        )

    def same_pixels(self, other: Image) -> bool:
        return (
            self.pixel_format is other.pixel_format
            and self.width == other.width
            and self.height == other.height
            and bool(np.array_equal(self.pixels, other.pixels))
        )


class Palette:
    """Fixed 256-entry RGB palette. Unused entries are black."""

    def __init__(self, entries: list[tuple[int, int, int]] | None = None):
        self.colors = np.zeros((PALETTE_SIZE, 3), dtype=np.uint8)
        for i, (r, g, b) in enumerate(entries or []):
            self.set(i, r, g, b)

    def __len__(self) -> int:
        return PALETTE_SIZE

    def _check(self, index: int) -> None:
        if not 0 <= index < PALETTE_SIZE:
            raise IndexError(f'Palette index {index} out of range 0..{PALETTE_SIZE - 1}')

    def get(self, index: int) -> tuple[int, int, int]:
        self._check(index)
        r, g, b = self.colors[index]
        return int(r), int(g), int(b)

    def set(self, index: int, r: int, g: int, b: int) -> None:
        self._check(index)
        self.colors[index] = (r, g, b)

    def tobytes(self) -> bytes:
        """Packed RGB triples for all 256 entries."""
        return self.colors.tobytes()

    def copy(self) -> Palette:
        other = Palette()
        other.colors[:] = self.colors
        return other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Palette):
            return NotImplemented
        return bool(np.array_equal(self.colors, other.colors))


@dataclass
class TransparencyInfo:
    """Alpha flag plus the single palette index that stands for full transparency."""

    has_alpha: bool = False
    mask_index: int | None = None


@dataclass
class DecodeResult:
    """What a decode call hands back.

    `complete` is False when the caller requested a stop; the image is then
    only partially written.
    """

    image: Image
    complete: bool
    color_model: ColorModel
    transparency: TransparencyInfo = field(default_factory=TransparencyInfo)
    passes: int = 1


class FileFormat:
    """A self-registering file format.

    Usage in a format module:

        file_format = FileFormat(name='png', extensions='png', flags=FormatFlag.LOAD | ...)

        @file_format.loader
        def load(fop):
            ...
    """

    def __init__(self, name: str, extensions: str, flags: FormatFlag):
        self.name = name
        self.extensions = extensions
        self.flags = flags
        self._load_fn: Callable | None = None
        self._save_fn: Callable | None = None

    def __repr__(self) -> str:
        return f'FileFormat({self.name!r}, extensions={self.extensions!r})'

    @property
    def extension_list(self) -> list[str]:
        return [ext.strip().lower() for ext in self.extensions.split(',') if ext.strip()]

    def supports(self, flag: FormatFlag) -> bool:
        return (self.flags & flag) == flag

    def matches(self, filename: str) -> bool:
        ext = os.path.splitext(filename)[1].lstrip('.').lower()
        return ext in self.extension_list

    def loader(self, fn: Callable) -> Callable:
        """Decorator to register the load function."""
        self._load_fn = fn
        return fn

    def saver(self, fn: Callable) -> Callable:
        """Decorator to register the save function."""
        self._save_fn = fn
        return fn

    def load(self, fop: Any) -> DecodeResult:
        if self._load_fn is None or not self.supports(FormatFlag.LOAD):
            raise RuntimeError(f'Format {self.name} cannot load files')
        return self._load_fn(fop)

    def save(self, fop: Any) -> None:
        if self._save_fn is None or not self.supports(FormatFlag.SAVE):
            raise RuntimeError(f'Format {self.name} cannot save files')
        self._save_fn(fop)
