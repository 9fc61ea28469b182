"""Tests for sprite_png.files — load/save through the registry with real files."""

from pathlib import Path

import numpy as np
import pytest
import sprite_png.formats.png as png_format
from png_builder import build_png
from sprite_png.core.config import CodecConfig
from sprite_png.core.errors import DecodeError, FormatNotSupported, ReadError, WriteError
from sprite_png.core.types import Image, Palette, PixelFormat, rgba
from sprite_png.files import load_file, save_file


class TestLoadFile:
    def test_loads_png(self, tmp_path: Path) -> None:
        path = tmp_path / 'a.png'
        path.write_bytes(build_png(np.array([[[1, 2, 3, 4]]], dtype=np.uint8), 6))
        fop = load_file(path, config=CodecConfig())
        assert fop.result.complete
        assert fop.image is fop.result.image
        assert fop.image.get_pixel(0, 0) == rgba(1, 2, 3, 4)
        assert fop.has_alpha
        assert fop.progress == 1.0
        assert not fop.failed

    def test_loads_indexed_transparency(self, tmp_path: Path) -> None:
        path = tmp_path / 'i.png'
        path.write_bytes(build_png(np.array([[0, 1, 2]]), 3, palette=[(9, 9, 9)] * 3, trns=b'\xff\x00\x00'))
        fop = load_file(path, config=CodecConfig())
        assert fop.transparent_index == 1
        assert fop.transparency.mask_index == 1
        assert list(fop.image.pixels[0]) == [0, 1, 1]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ReadError):
            load_file(tmp_path / 'nope.png', config=CodecConfig())

    def test_unknown_extension(self, tmp_path: Path) -> None:
        with pytest.raises(FormatNotSupported):
            load_file(tmp_path / 'a.tga', config=CodecConfig())

    def test_corrupt_file_leaves_no_image(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / 'bad.png'
        data = build_png(np.zeros((8, 8, 3), dtype=np.uint8), 2)
        path.write_bytes(data[:-30])
        seen = {}

        original = png_format.decode

        def spy(stream, fop, config):
            seen['fop'] = fop
            return original(stream, fop, config)

        monkeypatch.setattr(png_format, 'decode', spy)
        with pytest.raises(DecodeError):
            load_file(path, config=CodecConfig())
        assert seen['fop'].image is None
        assert len(seen['fop'].errors) == 1

    def test_stop_callback(self, tmp_path: Path) -> None:
        path = tmp_path / 'tall.png'
        path.write_bytes(build_png(np.zeros((10, 2, 3), dtype=np.uint8), 2))
        reports: list[float] = []
        fop = load_file(path, config=CodecConfig(), progress=reports.append, should_stop=lambda: len(reports) >= 3)
        assert not fop.result.complete
        assert len(reports) == 3


class TestSaveFile:
    def test_round_trip(self, tmp_path: Path) -> None:
        image = Image.create(PixelFormat.TRUE_COLOR, 3, 2)
        image.pixels[:] = np.arange(6, dtype='<u4').reshape(2, 3) * 0x01020304
        path = tmp_path / 'out.png'
        save_file(path, image, need_alpha=True, config=CodecConfig())
        back = load_file(path, config=CodecConfig()).image
        assert back.tobytes() == image.tobytes()
        assert back.id != image.id

    def test_indexed_round_trip(self, tmp_path: Path) -> None:
        image = Image.create(PixelFormat.INDEXED, 2, 2)
        image.pixels[:] = [[0, 3], [3, 1]]
        palette = Palette([(10, 0, 0), (0, 10, 0), (0, 0, 10), (5, 5, 5)])
        path = tmp_path / 'out.png'
        save_file(path, image, palette, transparent_index=3, config=CodecConfig())
        fop = load_file(path, config=CodecConfig())
        assert np.array_equal(fop.image.pixels, image.pixels)
        assert fop.transparent_index == 3
        assert fop.palette == palette

    def test_unwritable_destination(self, tmp_path: Path) -> None:
        image = Image.create(PixelFormat.GRAYSCALE, 1, 1)
        with pytest.raises(WriteError):
            save_file(tmp_path / 'missing-dir' / 'out.png', image, config=CodecConfig())

    def test_unknown_extension(self, tmp_path: Path) -> None:
        image = Image.create(PixelFormat.GRAYSCALE, 1, 1)
        with pytest.raises(FormatNotSupported):
            save_file(tmp_path / 'out.jpg', image, config=CodecConfig())

    def test_progress(self, tmp_path: Path) -> None:
        reports: list[float] = []
        image = Image.create(PixelFormat.INDEXED, 1, 2)
        save_file(tmp_path / 'p.png', image, progress=reports.append, config=CodecConfig())
        assert reports == [0.5, 1.0]
