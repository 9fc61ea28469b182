"""Conversion between canonical images and Pillow images.

TRUE_COLOR maps to RGBA and GRAYSCALE to LA: the little-endian pixel words
already hold their channels in Pillow's byte order. INDEXED maps to P with
the palette attached and the mask index as the `transparency` entry.
"""

from __future__ import annotations

import numpy as np
from PIL import Image as PILImage

from sprite_png.core.transparency import apply_mask, palette_alphas
from sprite_png.core.types import Image, Palette, PixelFormat, TransparencyInfo

_MODES = {
    PixelFormat.TRUE_COLOR: 'RGBA',
    PixelFormat.GRAYSCALE: 'LA',
    PixelFormat.INDEXED: 'P',
}


def to_pil(
    image: Image,
    palette: Palette | None = None,
    transparency: TransparencyInfo | None = None,
) -> PILImage.Image:
    """Build a Pillow image holding a copy of `image`'s pixels."""
    pil = PILImage.frombytes(_MODES[image.pixel_format], (image.width, image.height), image.tobytes())
    if image.pixel_format is PixelFormat.INDEXED:
        pil.putpalette((palette or Palette()).tobytes())
        if transparency is not None and transparency.mask_index is not None:
            pil.info['transparency'] = transparency.mask_index
    return pil


def _mask_from_info(pil: PILImage.Image) -> int | None:
    value = pil.info.get('transparency')
    if value is None:
        return None
    if isinstance(value, int):
        return value
    # Per-entry alphas (bytes): the first entry below half opacity wins.
    for index, alpha in enumerate(value):
        if alpha < 128:
            return index
    return None


def from_pil(pil: PILImage.Image) -> tuple[Image, Palette, TransparencyInfo]:
    """Build a canonical image from a Pillow image.

    Modes other than RGBA, RGB, LA, L and P are converted to RGBA first.
    """
    mode = pil.mode
    if mode not in ('RGBA', 'RGB', 'LA', 'L', 'P'):
        pil = pil.convert('RGBA')
        mode = 'RGBA'
    width, height = pil.size
    palette = Palette()

    if mode in ('RGBA', 'RGB'):
        rgba = np.asarray(pil.convert('RGBA'), dtype=np.uint8)
        image = Image.from_bytes(PixelFormat.TRUE_COLOR, width, height, rgba.tobytes())
        return image, palette, TransparencyInfo(has_alpha=mode == 'RGBA')

    if mode in ('LA', 'L'):
        la = np.asarray(pil.convert('LA'), dtype=np.uint8)
        image = Image.from_bytes(PixelFormat.GRAYSCALE, width, height, la.tobytes())
        return image, palette, TransparencyInfo(has_alpha=mode == 'LA')

    indices = np.asarray(pil, dtype=np.uint8)
    trns = pil.info.get('transparency')
    if isinstance(trns, bytes):
        # every entry below half opacity collapses to the mask index
        indices = apply_mask(indices, palette_alphas(trns))
    image = Image.from_bytes(PixelFormat.INDEXED, width, height, indices.tobytes())
    raw = pil.getpalette() or []
    for index in range(min(len(raw) // 3, len(palette))):
        palette.set(index, raw[3 * index], raw[3 * index + 1], raw[3 * index + 2])
    mask_index = _mask_from_info(pil)
    return image, palette, TransparencyInfo(has_alpha=mask_index is not None, mask_index=mask_index)
