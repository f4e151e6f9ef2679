"""Proportional-to-absolute geometry for the terminal surface.

Sizes are recomputed from the current viewport on every surface creation,
so a resized host window is picked up the next time the terminal opens.
"""

import math
from dataclasses import dataclass

# Lines kept free for the host's own chrome (tabline, statusline, command line).
HOST_CHROME_LINES = 4

# Host rows are zero-based while the centering math is one-based.
ROW_OFFSET = 1


@dataclass(frozen=True)
class Viewport:
    """Current host viewport size in cells

    Attributes:
        columns: Total columns available
        lines: Total lines available
    """
    columns: int
    lines: int


@dataclass(frozen=True)
class Geometry:
    """Absolute surface rectangle in host cells"""
    width: int
    height: int
    col: int
    row: int


def calculate_geometry(dimensions, viewport: Viewport) -> Geometry:
    """Calculate the absolute surface rectangle

    Ratios are not validated. Values outside (0, 1] produce a rectangle that
    may fall outside the viewport; clipping is left to the host.

    Args:
        dimensions: Object with height, width, x and y ratios
        viewport: Current viewport size

    Returns:
        Geometry with width, height, col and row
    """
    columns = viewport.columns
    lines = viewport.lines

    width = math.ceil(columns * dimensions.width)
    height = math.ceil(lines * dimensions.height - HOST_CHROME_LINES)

    col = math.ceil((columns - width) * dimensions.x)
    row = math.ceil((lines - height) * dimensions.y - ROW_OFFSET)

    return Geometry(width=width, height=height, col=col, row=row)
