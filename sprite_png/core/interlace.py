"""Adam7 pass geometry.

Each pass is (x_start, y_start, x_step, y_step). A non-interlaced image is a
single pass covering every pixel.
"""

from typing import NamedTuple


class Pass(NamedTuple):
    x_start: int
    y_start: int
    x_step: int
    y_step: int

    def columns(self, width: int) -> int:
        """Number of pixels this pass holds in each of its rows."""
        if width <= self.x_start:
            return 0
        return (width - self.x_start + self.x_step - 1) // self.x_step

    def has_row(self, y: int) -> bool:
        return y >= self.y_start and (y - self.y_start) % self.y_step == 0


ADAM7 = (
    Pass(0, 0, 8, 8),
    Pass(4, 0, 8, 8),
    Pass(0, 4, 4, 8),
    Pass(2, 0, 4, 4),
    Pass(0, 2, 2, 4),
    Pass(1, 0, 2, 2),
    Pass(0, 1, 1, 2),
)

NO_INTERLACE = (Pass(0, 0, 1, 1),)

INTERLACE_ADAM7 = 1


def passes_for(interlace: int) -> tuple[Pass, ...]:
    return ADAM7 if interlace == INTERLACE_ADAM7 else NO_INTERLACE
