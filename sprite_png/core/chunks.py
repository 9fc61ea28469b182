"""PNG chunk layer: signature, chunk framing, CRCs, header chunks and the IDAT stream.

A chunk is length (4 bytes, big-endian) + type (4 ASCII bytes) + data +
CRC-32 over type and data. The reader stops at the first IDAT and hands
compressed data to the inflater one chunk at a time, only when the row loop
asks for more bytes than are already inflated.
"""

from __future__ import annotations

import logging
import struct
import zlib
from dataclasses import dataclass
from typing import BinaryIO

from sprite_png.core.errors import CorruptDataError, HeaderError, ReadError, UnsupportedColorModel, WriteError
from sprite_png.core.types import PALETTE_SIZE, ColorModel

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'

ALLOWED_BIT_DEPTHS = {
    ColorModel.GRAY: (1, 2, 4, 8, 16),
    ColorModel.RGB: (8, 16),
    ColorModel.PALETTE: (1, 2, 4, 8),
    ColorModel.GRAY_ALPHA: (8, 16),
    ColorModel.RGBA: (8, 16),
}

CHANNELS = {
    ColorModel.GRAY: 1,
    ColorModel.RGB: 3,
    ColorModel.PALETTE: 1,
    ColorModel.GRAY_ALPHA: 2,
    ColorModel.RGBA: 4,
}

_MAX_DIMENSION = 2**31 - 1


@dataclass
class PngHeader:
    """IHDR fields."""

    width: int
    height: int
    bit_depth: int
    color_model: ColorModel
    compression: int = 0
    filter_method: int = 0
    interlace: int = 0

    @property
    def channels(self) -> int:
        return CHANNELS[self.color_model]

    @property
    def filter_unit(self) -> int:
        """Bytes per complete pixel for filtering, at least 1."""
        return max(1, self.channels * self.bit_depth // 8)

    def scanline_bytes(self, columns: int) -> int:
        """Bytes of one filtered scanline holding `columns` pixels, without the filter byte."""
        return (columns * self.channels * self.bit_depth + 7) // 8

    def pack(self) -> bytes:
        return struct.pack(
            '!2I5B',
            self.width,
            self.height,
            self.bit_depth,
            int(self.color_model),
            self.compression,
            self.filter_method,
            self.interlace,
        )


@dataclass
class PngInfo:
    """Everything read before the first IDAT chunk."""

    header: PngHeader
    palette: list[tuple[int, int, int]] | None = None
    trns: bytes | None = None


def parse_header(data: bytes) -> PngHeader:
    """Parse and validate IHDR data."""
    if len(data) != 13:
        raise HeaderError(f'IHDR has length {len(data)}, expected 13')
    width, height, bit_depth, color_type, compression, filter_method, interlace = struct.unpack('!2I5B', data)
    if not 0 < width <= _MAX_DIMENSION or not 0 < height <= _MAX_DIMENSION:
        raise HeaderError(f'Invalid image size {width}x{height}')
    try:
        color_model = ColorModel(color_type)
    except ValueError as exc:
        raise UnsupportedColorModel(f'Color type {color_type} not supported') from exc
    if bit_depth not in ALLOWED_BIT_DEPTHS[color_model]:
        raise HeaderError(f'Bit depth {bit_depth} not allowed for {color_model.name}')
    if compression != 0:
        raise HeaderError(f'Unknown compression method {compression}')
    if filter_method != 0:
        raise HeaderError(f'Unknown filter method {filter_method}')
    if interlace not in (0, 1):
        raise HeaderError(f'Unknown interlace method {interlace}')
    return PngHeader(width, height, bit_depth, color_model, compression, filter_method, interlace)


def parse_palette(data: bytes) -> list[tuple[int, int, int]]:
    if len(data) % 3 != 0:
        raise HeaderError(f'PLTE length {len(data)} is not a multiple of 3')
    count = len(data) // 3
    if not 0 < count <= PALETTE_SIZE:
        raise HeaderError(f'PLTE has {count} entries, expected 1..{PALETTE_SIZE}')
    return [(data[i], data[i + 1], data[i + 2]) for i in range(0, len(data), 3)]


def _is_critical(ctype: bytes) -> bool:
    return not ctype[0] & 0x20


class ChunkReader:
    """Reads chunks from a binary stream and inflates IDAT data on demand."""

    def __init__(self, stream: BinaryIO, verify_crc: bool = True):
        self.stream = stream
        self.verify_crc = verify_crc
        self._inflater = zlib.decompressobj()
        self._pending = b''
        self._inflated = bytearray()
        self._idat_done = False
        self.idat_chunks = 0

    def _read_exact(self, size: int, what: str) -> bytes:
        try:
            data = self.stream.read(size)
        except OSError as exc:
            raise ReadError(f'Error reading {what}: {exc}') from exc
        if len(data) != size:
            raise ReadError(f'Unexpected end of file while reading {what}')
        return data

    def read_signature(self) -> None:
        signature = self._read_exact(len(PNG_SIGNATURE), 'signature')
        if signature != PNG_SIGNATURE:
            raise HeaderError('Not a PNG file (bad signature)')

    def read_chunk(self) -> tuple[bytes, bytes]:
        """Return (type, data) of the next chunk."""
        length, ctype = struct.unpack('!I4s', self._read_exact(8, 'chunk header'))
        if length > _MAX_DIMENSION:
            raise CorruptDataError(f'Chunk length {length} too large')
        data = self._read_exact(length, f'{ctype!r} chunk')
        (checksum,) = struct.unpack('!I', self._read_exact(4, f'{ctype!r} checksum'))
        if self.verify_crc and zlib.crc32(data, zlib.crc32(ctype)) != checksum:
            error = HeaderError if ctype != b'IDAT' else CorruptDataError
            raise error(f'CRC mismatch in {ctype.decode("latin-1")} chunk')
        return ctype, data

    def read_info(self) -> PngInfo:
        """Read the signature and all chunks up to the first IDAT."""
        self.read_signature()
        ctype, data = self.read_chunk()
        if ctype != b'IHDR':
            raise HeaderError('IHDR is not the first chunk')
        info = PngInfo(header=parse_header(data))

        while True:
            ctype, data = self.read_chunk()
            if ctype == b'IDAT':
                self._pending = data
                self.idat_chunks = 1
                break
            if ctype == b'PLTE':
                info.palette = parse_palette(data)
            elif ctype == b'tRNS':
                info.trns = data
            elif ctype == b'IEND':
                raise CorruptDataError('No image data before IEND')
            elif _is_critical(ctype):
                raise HeaderError(f'Unknown critical chunk {ctype.decode("latin-1")}')
            else:
                logger.debug('skipping ancillary chunk %s', ctype.decode('latin-1'))

        if info.header.color_model is ColorModel.PALETTE and info.palette is None:
            raise HeaderError('Missing PLTE before IDAT')
        return info

    def _next_idat(self) -> bytes:
        if self._idat_done:
            raise CorruptDataError('Not enough image data')
        ctype, data = self.read_chunk()
        if ctype != b'IDAT':
            self._idat_done = True
            raise CorruptDataError('Not enough image data')
        self.idat_chunks += 1
        return data

    def read_inflated(self, size: int) -> bytes:
        """Return exactly `size` bytes of decompressed image data."""
        while len(self._inflated) < size:
            if self._inflater.eof:
                raise CorruptDataError('Not enough image data')
            if not self._pending:
                self._pending = self._next_idat()
            try:
                self._inflated += self._inflater.decompress(self._pending, size - len(self._inflated))
            except zlib.error as exc:
                raise CorruptDataError(f'Corrupt image data: {exc}') from exc
            self._pending = self._inflater.unconsumed_tail
        data = bytes(self._inflated[:size])
        del self._inflated[:size]
        return data

    def read_scanline(self, size: int) -> tuple[int, bytes]:
        """Return (filter type, filtered bytes) of one scanline of `size` bytes."""
        data = self.read_inflated(size + 1)
        return data[0], data[1:]

    def has_trailing_data(self) -> bool:
        """True when the IDAT chunk already read holds data past the last scanline.

        Only the current chunk is drained; later IDAT chunks stay unread.
        """
        if self._inflated:
            return True
        if self._inflater.eof:
            return bool(self._inflater.unused_data)
        try:
            extra = self._inflater.decompress(self._pending)
        except zlib.error:
            logger.debug('undecodable data after the last scanline')
            return True
        self._pending = b''
        return bool(extra or self._inflater.unused_data)


class ChunkWriter:
    """Writes chunks to a binary stream and deflates rows into IDAT chunks."""

    def __init__(self, stream: BinaryIO, compression_level: int = 6, idat_chunk_size: int = 8192):
        self.stream = stream
        self.idat_chunk_size = idat_chunk_size
        self._deflater = zlib.compressobj(compression_level)
        self._compressed = bytearray()
        self.idat_chunks = 0

    def _write(self, data: bytes) -> None:
        try:
            self.stream.write(data)
        except OSError as exc:
            raise WriteError(f'Error writing PNG data: {exc}') from exc

    def write_signature(self) -> None:
        self._write(PNG_SIGNATURE)

    def write_chunk(self, ctype: bytes, data: bytes) -> None:
        checksum = zlib.crc32(data, zlib.crc32(ctype))
        self._write(struct.pack('!I4s', len(data), ctype) + data + struct.pack('!I', checksum))

    def _flush_idat(self, final: bool) -> None:
        while len(self._compressed) >= self.idat_chunk_size or (final and self._compressed):
            chunk = bytes(self._compressed[: self.idat_chunk_size])
            del self._compressed[: self.idat_chunk_size]
            self.write_chunk(b'IDAT', chunk)
            self.idat_chunks += 1

    def write_scanline(self, filtered: bytes) -> None:
        """Feed one filtered scanline (filter byte included) to the deflater."""
        self._compressed += self._deflater.compress(filtered)
        self._flush_idat(final=False)

    def finish(self) -> None:
        """Flush the deflater, then write the remaining IDAT data and IEND."""
        self._compressed += self._deflater.flush()
        self._flush_idat(final=True)
        self.write_chunk(b'IEND', b'')
