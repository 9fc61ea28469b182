"""PNG — Portable Network Graphics.

Loads 1/2/4/8/16-bit grayscale, RGB, palette, gray+alpha and RGBA files,
interlaced or not, into true colour, grayscale or indexed images.
Saves 8-bit non-interlaced files; the colour type follows the image's
pixel format and whether alpha is needed.

Palette transparency collapses to one mask index: the first palette entry
with alpha below 128.
"""

from sprite_png.core.decoder import decode
from sprite_png.core.encoder import encode
from sprite_png.core.errors import ReadError, WriteError
from sprite_png.core.fileop import FileOp
from sprite_png.core.types import DecodeResult, FileFormat, FormatFlag

file_format = FileFormat(
    name='png',
    extensions='png',
    flags=(
        FormatFlag.LOAD
        | FormatFlag.SAVE
        | FormatFlag.RGB
        | FormatFlag.RGBA
        | FormatFlag.GRAY
        | FormatFlag.GRAYA
        | FormatFlag.INDEXED
        | FormatFlag.SEQUENCES
    ),
)


@file_format.loader
def load(fop: FileOp) -> DecodeResult:
    try:
        handle = open(fop.filename, 'rb')
    except OSError as exc:
        error = ReadError(f'Cannot open {fop.filename}: {exc.strerror or exc}')
        fop.report_error(str(error))
        raise error from exc

    with handle:
        return decode(handle, fop, fop.config)


@file_format.saver
def save(fop: FileOp) -> None:
    if fop.image is None:
        raise ValueError('FileOp has no image to save')
    try:
        handle = open(fop.filename, 'wb')
    except OSError as exc:
        error = WriteError(f'Cannot create {fop.filename}: {exc.strerror or exc}')
        fop.report_error(str(error))
        raise error from exc

    with handle:
        encode(handle, fop.image, fop.palette, fop.need_alpha, fop.has_background_layer, fop, fop.config)
