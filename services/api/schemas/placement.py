# services/api/schemas/placement.py
"""
Pydantic schemas for overlay placements.

Geometry is normalized to the owning page's rendered size. Unlike marks,
boxes may extend past the page edge (resize and stretch do not clamp),
so there is no x + w <= 1 validator here.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models.placement import ContentKind, normalize_color


class StyleIn(BaseModel):
    """Visual attributes, all optional on input."""
    font_index: int = Field(0, ge=0, description="Index into the font catalog")
    font_name: str = Field("Alex Brush", max_length=100)
    color: str = Field("#000000", description="6 hex digits, '#' optional")
    opacity: float = Field(1.0, ge=0.0, le=1.0)
    size: float = Field(1.5, gt=0.0, description="Relative text size multiplier")
    bold: bool = False
    italic: bool = False
    stroke_weight: float = Field(3.0, gt=0.0, description="Ink boldness")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        return normalize_color(v)


class PlacementIn(BaseModel):
    """One overlay object as sent by the editor."""
    id: Optional[str] = Field(None, max_length=64)
    kind: ContentKind
    content: str = Field(..., min_length=1, description="Text, or a data URL for ink / image")

    page_index: int = Field(0, ge=0, description="0-based owning page")
    x_percent: float = Field(0.1, ge=0.0, le=1.0)
    y_percent: float = Field(0.1, ge=0.0, le=1.0)
    width_percent: float = Field(0.3, gt=0.0)
    height_percent: float = Field(0.1, gt=0.0)
    aspect_ratio: float = Field(3.0, gt=0.0)
    rotation_degrees: float = 0.0

    style: StyleIn = Field(default_factory=StyleIn)


class PlacementOut(PlacementIn):
    """Placement returned to the editor (id always set)."""
    id: str


class PageDimensionOut(BaseModel):
    page_index: int
    original_width: float
    original_height: float
    display_width: float
    display_height: float
    scale: float
    preview: Optional[str] = Field(None, description="PNG data URL when previews were requested")


class PagesOut(BaseModel):
    page_count: int
    pages: List[PageDimensionOut]


class TextCaptureIn(BaseModel):
    text: str = Field(..., max_length=500)
    style: StyleIn = Field(default_factory=StyleIn)


class ImageCaptureIn(BaseModel):
    """An uploaded image, read by the browser as a data URL."""
    content: str = Field(..., description="data:image/...;base64,...")
    style: StyleIn = Field(default_factory=StyleIn)
