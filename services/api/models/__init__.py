from __future__ import annotations

from .page import PageDimension, PageSize, PageSurface, norm_to_absolute
from .placement import (
    COLOR_PRESETS,
    ContentKind,
    Geometry,
    Placement,
    Style,
    normalize_color,
)

__all__ = [
    "COLOR_PRESETS",
    "ContentKind",
    "Geometry",
    "PageDimension",
    "PageSize",
    "PageSurface",
    "Placement",
    "Style",
    "norm_to_absolute",
    "normalize_color",
]
