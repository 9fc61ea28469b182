"""Tests for sprite_png.core.transparency — mask index selection and tRNS emission."""

import numpy as np
import pytest
from sprite_png.core.transparency import (
    ALPHA_THRESHOLD,
    apply_mask,
    build_index_remap,
    build_trns,
    find_mask_index,
    palette_alphas,
)


def _alphas_with_transparent(*indices: int) -> np.ndarray:
    alphas = np.full(256, 255, dtype=np.uint8)
    for i in indices:
        alphas[i] = 0
    return alphas


class TestPaletteAlphas:
    def test_no_trns_is_opaque(self):
        alphas = palette_alphas(None)
        assert alphas.shape == (256,)
        assert (alphas == 255).all()

    def test_short_trns_pads_opaque(self):
        alphas = palette_alphas(bytes([10, 20]))
        assert list(alphas[:3]) == [10, 20, 255]

    def test_long_trns_truncated(self):
        alphas = palette_alphas(bytes(300))
        assert alphas.shape == (256,)


class TestFindMaskIndex:
    def test_first_transparent_wins(self):
        assert find_mask_index(_alphas_with_transparent(2, 5, 9)) == 2

    def test_none_when_all_opaque(self):
        assert find_mask_index(palette_alphas(None)) is None

    def test_threshold_is_exclusive(self):
        alphas = palette_alphas(bytes([ALPHA_THRESHOLD, ALPHA_THRESHOLD - 1]))
        assert find_mask_index(alphas) == 1

    def test_partially_transparent_counts(self):
        alphas = palette_alphas(bytes([255, 255, 255, 100]))
        assert find_mask_index(alphas) == 3


class TestIndexRemap:
    def test_transparent_entries_collapse(self):
        alphas = _alphas_with_transparent(2, 5, 9)
        remap = build_index_remap(alphas, 2)
        assert remap[5] == 2
        assert remap[9] == 2
        assert remap[2] == 2
        assert remap[3] == 3

    def test_no_mask_no_remap(self):
        assert build_index_remap(palette_alphas(None), None) is None

    def test_apply_twice_equals_once(self):
        alphas = _alphas_with_transparent(2, 5, 9)
        indices = np.arange(16, dtype=np.uint8).reshape(4, 4)
        once = apply_mask(indices, alphas)
        twice = apply_mask(once, alphas)
        assert np.array_equal(once, twice)
        assert set(np.unique(once[np.isin(indices, [2, 5, 9])])) == {2}

    def test_apply_without_transparency_copies(self):
        indices = np.array([1, 2, 3], dtype=np.uint8)
        result = apply_mask(indices, palette_alphas(None))
        assert list(result) == [1, 2, 3]
        assert result is not indices


class TestBuildTrns:
    def test_mask_three(self):
        assert build_trns(3) == bytes([255, 255, 255, 0])

    def test_mask_zero(self):
        assert build_trns(0) == bytes([0])

    def test_mask_last_entry(self):
        trns = build_trns(255)
        assert len(trns) == 256
        assert trns[255] == 0
        assert set(trns[:255]) == {255}

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            build_trns(256)
