"""
Pydantic schemas for API request/response validation.
"""
from .placement import (
    ImageCaptureIn,
    PageDimensionOut,
    PagesOut,
    PlacementIn,
    PlacementOut,
    StyleIn,
    TextCaptureIn,
)

# Re-export all
__all__ = [
    "StyleIn",
    "PlacementIn",
    "PlacementOut",
    "PageDimensionOut",
    "PagesOut",
    "TextCaptureIn",
    "ImageCaptureIn",
]
