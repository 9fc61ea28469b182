"""Load and save image files through the format registry.

The format is chosen from the file extension. Its capability flags decide
whether the requested operation and pixel format are allowed before any
file is touched.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from sprite_png import registry
from sprite_png.core.config import CodecConfig, load_config
from sprite_png.core.errors import FormatNotSupported
from sprite_png.core.fileop import FileOp
from sprite_png.core.types import FileFormat, FormatFlag, Image, Palette, PixelFormat

logger = logging.getLogger(__name__)


def _pixel_format_flag(pixel_format: PixelFormat, need_alpha: bool) -> FormatFlag:
    if pixel_format is PixelFormat.TRUE_COLOR:
        return FormatFlag.RGBA if need_alpha else FormatFlag.RGB
    if pixel_format is PixelFormat.GRAYSCALE:
        return FormatFlag.GRAYA if need_alpha else FormatFlag.GRAY
    return FormatFlag.INDEXED


def _find_format(filename: str, needed: FormatFlag) -> FileFormat:
    try:
        fmt = registry.find_format(filename)
    except KeyError as exc:
        raise FormatNotSupported(exc.args[0]) from exc
    if not fmt.supports(needed):
        raise FormatNotSupported(f'Format {fmt.name} does not support {needed.name}')
    return fmt


def load_file(
    filename: str | os.PathLike,
    config: CodecConfig | None = None,
    progress: Callable[[float], None] | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> FileOp:
    """Load an image file.

    The returned FileOp holds the image, palette, alpha flag and mask index.
    `fop.result.complete` is False when `should_stop` cut the load short.
    """
    filename = os.fspath(filename)
    fmt = _find_format(filename, FormatFlag.LOAD)
    fop = FileOp(
        filename=filename,
        config=config or load_config(),
        on_progress=progress,
        stop_when=should_stop,
    )
    fop.result = fmt.load(fop)
    if not fop.result.complete:
        logger.debug('%s: load stopped before the last row', filename)
    return fop


def save_file(
    filename: str | os.PathLike,
    image: Image,
    palette: Palette | None = None,
    *,
    need_alpha: bool = False,
    has_background_layer: bool = False,
    transparent_index: int | None = None,
    config: CodecConfig | None = None,
    progress: Callable[[float], None] | None = None,
) -> FileOp:
    """Save an image file. A failed save may leave a truncated file behind."""
    filename = os.fspath(filename)
    fmt = _find_format(filename, FormatFlag.SAVE)
    needed = _pixel_format_flag(image.pixel_format, need_alpha)
    if not fmt.supports(needed):
        raise FormatNotSupported(f'Format {fmt.name} cannot save {needed.name} images')
    fop = FileOp(
        filename=filename,
        config=config or load_config(),
        image=image,
        palette=palette or Palette(),
        transparent_index=transparent_index,
        need_alpha=need_alpha,
        has_background_layer=has_background_layer,
        on_progress=progress,
    )
    fmt.save(fop)
    return fop
