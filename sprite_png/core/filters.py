"""PNG scanline filters.

Every scanline in the compressed stream starts with a filter-type byte.
Reconstruction works byte-wise against the byte `bpp` positions to the left
and the same byte of the previous scanline in the same pass. `bpp` is the
number of bytes per complete pixel, rounded up to 1 for sub-byte depths.

Average and Paeth reconstruction depend on already reconstructed bytes of
the same row, so they run as plain loops. The others are vectorised.
"""

import numpy as np

from sprite_png.core.errors import CorruptDataError

FILTER_NONE = 0
FILTER_SUB = 1
FILTER_UP = 2
FILTER_AVERAGE = 3
FILTER_PAETH = 4

STRATEGIES = {
    'none': FILTER_NONE,
    'sub': FILTER_SUB,
    'up': FILTER_UP,
    'average': FILTER_AVERAGE,
    'paeth': FILTER_PAETH,
}


def _paeth_predictor(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa = abs(p - a)
    pb = abs(p - b)
    pc = abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _undo_average(line: bytes, previous: np.ndarray, bpp: int) -> np.ndarray:
    out = bytearray(line)
    prev = previous.tobytes()
    for i in range(len(out)):
        left = out[i - bpp] if i >= bpp else 0
        out[i] = (out[i] + ((left + prev[i]) >> 1)) & 0xFF
    return np.frombuffer(bytes(out), dtype=np.uint8)


def _undo_paeth(line: bytes, previous: np.ndarray, bpp: int) -> np.ndarray:
    out = bytearray(line)
    prev = previous.tobytes()
    for i in range(len(out)):
        if i >= bpp:
            pred = _paeth_predictor(out[i - bpp], prev[i], prev[i - bpp])
        else:
            pred = prev[i]
        out[i] = (out[i] + pred) & 0xFF
    return np.frombuffer(bytes(out), dtype=np.uint8)


def unfilter_scanline(filter_type: int, line: bytes, previous: np.ndarray | None, bpp: int) -> np.ndarray:
    """Reconstruct one scanline (without its filter byte).

    `previous` is the reconstructed scanline above, or None for the first
    row of a pass.
    """
    if previous is None:
        previous = np.zeros(len(line), dtype=np.uint8)
    data = np.frombuffer(line, dtype=np.uint8)

    if filter_type == FILTER_NONE:
        return data.copy()
    if filter_type == FILTER_SUB:
        return np.add.accumulate(data.reshape(-1, bpp), axis=0, dtype=np.uint8).reshape(-1)
    if filter_type == FILTER_UP:
        return data + previous
    if filter_type == FILTER_AVERAGE:
        return _undo_average(line, previous, bpp)
    if filter_type == FILTER_PAETH:
        return _undo_paeth(line, previous, bpp)
    raise CorruptDataError(f'Unknown scanline filter type {filter_type}')


def _residuals(filter_type: int, cur: np.ndarray, up: np.ndarray, bpp: int) -> np.ndarray:
    left = np.zeros_like(cur)
    left[bpp:] = cur[:-bpp]
    if filter_type == FILTER_NONE:
        pred = np.zeros_like(cur)
    elif filter_type == FILTER_SUB:
        pred = left
    elif filter_type == FILTER_UP:
        pred = up
    elif filter_type == FILTER_AVERAGE:
        pred = (left + up) >> 1
    else:
        upleft = np.zeros_like(cur)
        upleft[bpp:] = up[:-bpp]
        p = left + up - upleft
        pa = np.abs(p - left)
        pb = np.abs(p - up)
        pc = np.abs(p - upleft)
        pred = np.where((pa <= pb) & (pa <= pc), left, np.where(pb <= pc, up, upleft))
    return ((cur - pred) & 0xFF).astype(np.uint8)


def filter_scanline(strategy: str, line: np.ndarray, previous: np.ndarray | None, bpp: int) -> bytes:
    """Filter one raw scanline and prefix it with its filter-type byte.

    `adaptive` tries all five filters and keeps the one whose residuals,
    read as signed bytes, have the smallest absolute sum.
    """
    cur = line.astype(np.int16)
    up = previous.astype(np.int16) if previous is not None else np.zeros_like(cur)

    if strategy == 'adaptive':
        best_type, best_data, best_cost = FILTER_NONE, None, None
        for filter_type in (FILTER_NONE, FILTER_SUB, FILTER_UP, FILTER_AVERAGE, FILTER_PAETH):
            data = _residuals(filter_type, cur, up, bpp)
            cost = int(np.abs(data.view(np.int8).astype(np.int32)).sum())
            if best_cost is None or cost < best_cost:
                best_type, best_data, best_cost = filter_type, data, cost
        return bytes([best_type]) + best_data.tobytes()

    filter_type = STRATEGIES[strategy]
    return bytes([filter_type]) + _residuals(filter_type, cur, up, bpp).tobytes()
