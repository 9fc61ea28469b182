"""The sink a codec call talks to, and FileOp, the document-side implementation.

The decoder allocates its image, publishes palette entries, the alpha flag
and the mask index, reports progress, polls for a stop and drops the image
after a hard error through the sink.
The encoder reads the mask index back from it. A sink is passed explicitly
to every call and never shared between concurrent calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from sprite_png.core.config import CodecConfig
from sprite_png.core.types import DecodeResult, Image, Palette, PixelFormat, TransparencyInfo

logger = logging.getLogger(__name__)


class Sink(Protocol):
    filename: str

    def allocate_image(self, pixel_format: PixelFormat, width: int, height: int) -> Image | None: ...

    def set_palette_entry(self, index: int, r: int, g: int, b: int) -> None: ...

    def set_transparent_index(self, index: int) -> None: ...

    def get_transparent_index(self) -> int | None: ...

    def set_alpha(self, has_alpha: bool) -> None: ...

    def report_progress(self, fraction: float) -> None: ...

    def should_stop(self) -> bool: ...

    def report_error(self, message: str) -> None: ...

    def discard_image(self) -> None: ...


@dataclass
class FileOp:
    """One load or save operation on one file."""

    filename: str = ''
    config: CodecConfig = field(default_factory=CodecConfig)
    image: Image | None = None
    palette: Palette = field(default_factory=Palette)
    has_alpha: bool = False
    transparent_index: int | None = None
    need_alpha: bool = False
    has_background_layer: bool = False
    progress: float = 0.0
    errors: list[str] = field(default_factory=list)
    result: DecodeResult | None = None
    on_progress: Callable[[float], None] | None = None
    stop_when: Callable[[], bool] | None = None
    _stop: bool = field(default=False, repr=False)

    def allocate_image(self, pixel_format: PixelFormat, width: int, height: int) -> Image | None:
        self.image = Image.create(pixel_format, width, height)
        return self.image

    def set_palette_entry(self, index: int, r: int, g: int, b: int) -> None:
        self.palette.set(index, r, g, b)

    def set_transparent_index(self, index: int) -> None:
        self.transparent_index = index

    def get_transparent_index(self) -> int | None:
        return self.transparent_index

    def set_alpha(self, has_alpha: bool) -> None:
        self.has_alpha = has_alpha

    def report_progress(self, fraction: float) -> None:
        self.progress = fraction
        if self.on_progress is not None:
            self.on_progress(fraction)

    def stop(self) -> None:
        """Ask the running codec call to stop after the current row."""
        self._stop = True

    def should_stop(self) -> bool:
        if self.stop_when is not None and self.stop_when():
            self._stop = True
        return self._stop

    def report_error(self, message: str) -> None:
        logger.debug('%s: %s', self.filename or '<stream>', message)
        self.errors.append(message)

    def discard_image(self) -> None:
        """Drop a partially decoded image after a failed or stopped load."""
        self.image = None

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def transparency(self) -> TransparencyInfo:
        return TransparencyInfo(has_alpha=self.has_alpha, mask_index=self.transparent_index)
