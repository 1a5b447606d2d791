# services/api/models/page.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PageSize:
    """Absolute page size in document units (PDF points)."""
    width: float
    height: float


@dataclass(frozen=True)
class PageDimension:
    """
    Page geometry reported by the rasterizer: original size at scale 1
    and the size of the rendered preview.
    """
    page_index: int
    original_width: float
    original_height: float
    display_width: float
    display_height: float
    scale: float

    @property
    def original_size(self) -> PageSize:
        return PageSize(self.original_width, self.original_height)


@dataclass(frozen=True)
class PageSurface:
    """
    On-screen rectangle of a rendered page, in viewport coordinates.
    width/height are the page's current rendered size; they change
    whenever the hosting view is laid out again.
    """
    page_index: int
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def size(self) -> Tuple[float, float]:
        return (self.width, self.height)

    def contains(self, x: float, y: float) -> bool:
        # edges count as inside
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def to_local(self, x: float, y: float) -> Tuple[float, float]:
        """Viewport point -> point relative to this page's top-left."""
        return (x - self.left, y - self.top)


def norm_to_absolute(
    nx: float,
    ny: float,
    nw: float,
    nh: float,
    page: PageSize,
) -> Tuple[float, float, float, float]:
    """
    Convert normalized [0..1] rect (origin top-left) into PDF coordinates
    (origin bottom-left).
    Returns (x, y, width, height) in PDF user space.
    """
    x = nx * page.width
    w = nw * page.width
    h = nh * page.height
    # PDF origin is bottom-left: y_flip = height - (y + h)
    y = page.height - (ny * page.height) - h
    return x, y, w, h
