"""PNG encoder: canonical Image in, 8-bit non-interlaced PNG out.

Indexed images always get a full 256-entry PLTE. When the document has no
background layer, the mask index is written as a short tRNS table
(entries 0..mask, only the last transparent). With a background layer no
tRNS is written at all.

Write failures raise WriteError after sink.report_error(); bytes already
written stay in the destination.
"""

from __future__ import annotations

import logging
from typing import BinaryIO

from sprite_png.core.chunks import ChunkWriter, PngHeader
from sprite_png.core.config import CodecConfig
from sprite_png.core.errors import EncodeError
from sprite_png.core.fileop import Sink
from sprite_png.core.filters import filter_scanline
from sprite_png.core.pixels import row_codec, select_color_model
from sprite_png.core.transparency import build_trns
from sprite_png.core.types import Image, Palette, PixelFormat

logger = logging.getLogger(__name__)


def _check_image(image: Image) -> None:
    if image.width <= 0 or image.height <= 0:
        raise EncodeError(f'Cannot encode a {image.width}x{image.height} image')
    if image.pixels.shape != (image.height, image.width):
        raise EncodeError(f'Pixel buffer shape {image.pixels.shape} does not match {image.width}x{image.height}')
    if image.pixels.dtype.itemsize != image.pixel_format.bytes_per_pixel:
        raise EncodeError(f'Pixel buffer dtype {image.pixels.dtype} does not match {image.pixel_format.value}')


def _encode(
    stream: BinaryIO,
    image: Image,
    palette: Palette | None,
    alpha_needed: bool,
    has_background_layer: bool,
    sink: Sink,
    config: CodecConfig,
) -> None:
    _check_image(image)
    color_model = select_color_model(image.pixel_format, alpha_needed)
    codec = row_codec(color_model)
    header = PngHeader(width=image.width, height=image.height, bit_depth=8, color_model=color_model)
    logger.debug('saving %dx%d %s as %s', image.width, image.height, image.pixel_format.value, color_model.name)

    writer = ChunkWriter(stream, config.compression_level, config.idat_chunk_size)
    writer.write_signature()
    writer.write_chunk(b'IHDR', header.pack())

    if image.pixel_format is PixelFormat.INDEXED:
        writer.write_chunk(b'PLTE', (palette or Palette()).tobytes())
        if not has_background_layer:
            mask_index = sink.get_transparent_index()
            if mask_index is not None:
                try:
                    trns = build_trns(mask_index)
                except ValueError as exc:
                    raise EncodeError(str(exc)) from exc
                writer.write_chunk(b'tRNS', trns)

    pack = codec.pack
    strategy = config.filter_strategy
    filter_unit = header.filter_unit
    previous = None
    for y in range(image.height):
        raw = pack(image.pixels[y])
        writer.write_scanline(filter_scanline(strategy, raw, previous, filter_unit))
        previous = raw
        sink.report_progress((y + 1) / image.height)

    writer.finish()
    logger.debug('wrote %d IDAT chunk(s)', writer.idat_chunks)


def encode(
    stream: BinaryIO,
    image: Image,
    palette: Palette | None,
    alpha_needed: bool,
    has_background_layer: bool,
    sink: Sink,
    config: CodecConfig | None = None,
) -> None:
    """Encode `image` as PNG into `stream`."""
    try:
        _encode(stream, image, palette, alpha_needed, has_background_layer, sink, config or CodecConfig())
    except EncodeError as exc:
        sink.report_error(str(exc))
        raise
