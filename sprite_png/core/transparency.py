"""Palette transparency: collapse per-entry alpha into one mask index.

Any palette entry with alpha below ALPHA_THRESHOLD counts as transparent.
Only the first such entry (lowest index) becomes the mask index; pixels
using any other transparent entry are rewritten to it while decoding, so
those entries cannot be told apart afterwards.

On save the mask index is written back as a tRNS table that covers entries
0..mask only: the mask entry is fully transparent, the rest opaque.
"""

import numpy as np

from sprite_png.core.types import PALETTE_SIZE

ALPHA_THRESHOLD = 128


def palette_alphas(trns: bytes | None) -> np.ndarray:
    """Alpha per palette entry; entries without a tRNS value are opaque."""
    alphas = np.full(PALETTE_SIZE, 255, dtype=np.uint8)
    if trns:
        values = np.frombuffer(trns[:PALETTE_SIZE], dtype=np.uint8)
        alphas[: len(values)] = values
    return alphas


def find_mask_index(alphas: np.ndarray) -> int | None:
    """First palette index whose alpha is below the threshold, or None."""
    transparent = np.flatnonzero(alphas < ALPHA_THRESHOLD)
    if transparent.size == 0:
        return None
    return int(transparent[0])


def build_index_remap(alphas: np.ndarray, mask_index: int | None) -> np.ndarray | None:
    """256-entry lookup table sending every transparent index to mask_index.

    Returns None when there is nothing to rewrite.
    """
    if mask_index is None:
        return None
    remap = np.arange(PALETTE_SIZE, dtype=np.uint8)
    remap[alphas < ALPHA_THRESHOLD] = mask_index
    return remap


def apply_mask(indices: np.ndarray, alphas: np.ndarray) -> np.ndarray:
    """Rewrite transparent indices in an index array to the mask index."""
    remap = build_index_remap(alphas, find_mask_index(alphas))
    if remap is None:
        return indices.copy()
    return remap[indices]


def build_trns(mask_index: int) -> bytes:
    """tRNS data for a mask index: mask_index + 1 entries, only the last is transparent."""
    if not 0 <= mask_index < PALETTE_SIZE:
        raise ValueError(f'Mask index {mask_index} out of range 0..{PALETTE_SIZE - 1}')
    trns = bytearray([255] * (mask_index + 1))
    trns[mask_index] = 0
    return bytes(trns)
