"""PNG decoder: stream in, canonical Image out.

The decoder reads the header chunks, allocates the image through the sink,
publishes the palette and the mask index, then walks every pass and every
row. Rows are inflated lazily, so a stop requested after row y leaves the
rest of the compressed data unread.

Hard errors are reported once through sink.report_error(), the sink drops
the image, and a DecodeError subclass is raised. A cooperative stop is not
an error: the partial image comes back in a DecodeResult with
complete=False.
"""

from __future__ import annotations

import functools
import logging
from typing import BinaryIO

import numpy as np

from sprite_png.core.chunks import ChunkReader, PngInfo
from sprite_png.core.config import CodecConfig
from sprite_png.core.errors import AllocationFailure, DecodeError
from sprite_png.core.fileop import Sink
from sprite_png.core.filters import unfilter_scanline
from sprite_png.core.interlace import passes_for
from sprite_png.core.pixels import normalize_samples, row_codec
from sprite_png.core.transparency import build_index_remap, find_mask_index, palette_alphas
from sprite_png.core.types import PALETTE_SIZE, ColorModel, DecodeResult, Image, PixelFormat, TransparencyInfo

logger = logging.getLogger(__name__)


def _allocate(sink: Sink, pixel_format: PixelFormat, width: int, height: int) -> Image:
    try:
        image = sink.allocate_image(pixel_format, width, height)
    except MemoryError as exc:
        raise AllocationFailure(f'Cannot allocate {width}x{height} {pixel_format.value} image') from exc
    if image is None:
        raise AllocationFailure(f'Cannot allocate {width}x{height} {pixel_format.value} image')
    return image


def _load_palette(info: PngInfo, sink: Sink) -> tuple[np.ndarray, int | None]:
    """Publish all 256 palette entries and the mask index. Returns (alphas, mask_index)."""
    entries = info.palette or []
    for index, (r, g, b) in enumerate(entries):
        sink.set_palette_entry(index, r, g, b)
    for index in range(len(entries), PALETTE_SIZE):
        sink.set_palette_entry(index, 0, 0, 0)

    if info.trns is not None and len(info.trns) > len(entries):
        logger.warning('tRNS has %d entries but the palette only %d', len(info.trns), len(entries))

    alphas = palette_alphas(info.trns)
    mask_index = find_mask_index(alphas)
    if mask_index is not None:
        sink.set_alpha(True)
        sink.set_transparent_index(mask_index)
    return alphas, mask_index


def _decode(stream: BinaryIO, sink: Sink, config: CodecConfig) -> DecodeResult:
    reader = ChunkReader(stream, verify_crc=config.verify_crc)
    info = reader.read_info()
    header = info.header
    codec = row_codec(header.color_model)
    passes = passes_for(header.interlace)
    width, height = header.width, header.height
    logger.debug(
        'PNG %dx%d, %d-bit %s, %d pass(es)',
        width,
        height,
        header.bit_depth,
        header.color_model.name,
        len(passes),
    )

    if codec.has_alpha:
        sink.set_alpha(True)
    image = _allocate(sink, codec.pixel_format, width, height)
    transparency = TransparencyInfo(has_alpha=codec.has_alpha)

    remap = None
    if codec.pixel_format is PixelFormat.INDEXED:
        alphas, mask_index = _load_palette(info, sink)
        remap = build_index_remap(alphas, mask_index)
        if mask_index is not None:
            transparency = TransparencyInfo(has_alpha=True, mask_index=mask_index)
    elif info.trns is not None:
        logger.debug('ignoring tRNS colour key on %s image', header.color_model.name)

    unpack = functools.partial(codec.unpack, remap=remap)
    scale_gray = header.color_model is ColorModel.GRAY
    filter_unit = header.filter_unit

    for pass_number, geometry in enumerate(passes):
        columns = geometry.columns(width)
        scanline_bytes = header.scanline_bytes(columns)
        previous = None
        for y in range(height):
            if columns and geometry.has_row(y):
                filter_type, line = reader.read_scanline(scanline_bytes)
                previous = unfilter_scanline(filter_type, line, previous, filter_unit)
                samples = normalize_samples(previous, header.bit_depth, columns * codec.channels, scale_gray)
                image.pixels[y, geometry.x_start :: geometry.x_step] = unpack(samples)

            sink.report_progress((pass_number + (y + 1) / height) / len(passes))
            if sink.should_stop():
                logger.debug('stop requested at pass %d row %d', pass_number, y)
                return DecodeResult(
                    image=image,
                    complete=False,
                    color_model=header.color_model,
                    transparency=transparency,
                    passes=len(passes),
                )

    if reader.has_trailing_data():
        logger.warning('%s: extra image data after the last row', sink.filename or '<stream>')

    return DecodeResult(
        image=image,
        complete=True,
        color_model=header.color_model,
        transparency=transparency,
        passes=len(passes),
    )


def decode(stream: BinaryIO, sink: Sink, config: CodecConfig | None = None) -> DecodeResult:
    """Decode a PNG stream into a canonical Image allocated through `sink`."""
    try:
        return _decode(stream, sink, config or CodecConfig())
    except DecodeError as exc:
        sink.report_error(str(exc))
        sink.discard_image()
        raise
