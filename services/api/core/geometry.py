# services/api/core/geometry.py
"""
Pure geometry helpers for the overlay editor.

Percent geometry is relative to the owning page's *rendered* size, so
pixel values must be recomputed from the current surface size on every
layout change; nothing here caches.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from models.placement import Placement


MIN_SIZE_PERCENT = 0.05
MAX_CORNER_SIZE_PERCENT = 0.9


class Corner(str, Enum):
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"


class Edge(str, Enum):
    N = "n"
    S = "s"
    E = "e"
    W = "w"


@dataclass(frozen=True)
class PixelRect:
    x: float
    y: float
    width: float
    height: float


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def to_pixels(placement: Placement, surface_size: Tuple[float, float]) -> PixelRect:
    """Percent geometry -> pixel rect on a page rendered at surface_size."""
    surface_w, surface_h = surface_size
    return PixelRect(
        x=placement.x_percent * surface_w,
        y=placement.y_percent * surface_h,
        width=placement.width_percent * surface_w,
        height=placement.height_percent * surface_h,
    )


def to_percent(rect: PixelRect, surface_size: Tuple[float, float]) -> Tuple[float, float, float, float]:
    """Inverse of to_pixels: (x, y, width, height) as fractions of the surface."""
    surface_w, surface_h = surface_size
    if surface_w <= 0 or surface_h <= 0:
        raise ValueError("surface width/height must be > 0")
    return (
        rect.x / surface_w,
        rect.y / surface_h,
        rect.width / surface_w,
        rect.height / surface_h,
    )


def rotation_center(rect: PixelRect) -> Tuple[float, float]:
    return (rect.x + rect.width / 2, rect.y + rect.height / 2)


def angle_from_pointer(center: Tuple[float, float], pointer: Tuple[float, float]) -> float:
    """
    Absolute bearing from center to pointer, in degrees (screen space, y down).
    0 = pointer to the right, 90 = pointer below.
    """
    cx, cy = center
    px, py = pointer
    return math.degrees(math.atan2(py - cy, px - cx))


def corner_delta(corner: Corner, dx: float, dy: float) -> float:
    """
    Collapse a normalized pointer delta into one size delta for a corner handle.
    Dragging a corner away from the box grows it.
    """
    if corner == Corner.SE:
        return (dx + dy) / 2
    if corner == Corner.NW:
        return (-dx - dy) / 2
    if corner == Corner.NE:
        return (dx - dy) / 2
    if corner == Corner.SW:
        return (-dx + dy) / 2
    raise ValueError(f"Unknown corner: {corner}")


def proportional_resize(
    start_width: float,
    aspect_ratio: float,
    delta: float,
    *,
    floor: float = MIN_SIZE_PERCENT,
    ceiling: float = MAX_CORNER_SIZE_PERCENT,
) -> Tuple[float, float]:
    """New (width, height) for a corner resize; height follows the fixed aspect ratio."""
    if aspect_ratio <= 0:
        raise ValueError(f"aspect_ratio must be > 0, got {aspect_ratio}")
    width = clamp(start_width + delta, floor, ceiling)
    return width, width / aspect_ratio
