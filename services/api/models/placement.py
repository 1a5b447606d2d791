# services/api/models/placement.py
from __future__ import annotations

import re

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4


_HEX_COLOR = re.compile(r"[0-9a-fA-F]{6}")


def _gen_id() -> str:
    return f"p-{uuid4().hex[:10]}"


COLOR_PRESETS = [
    "#000000",
    "#1E3A5F",
    "#0066CC",
    "#2E7D32",
    "#8B0000",
    "#4A148C",
    "#E65100",
    "#37474F",
]


class ContentKind(str, Enum):
    """What a placement carries: typed text, free-hand ink, or an uploaded image."""
    TEXT = "text"
    INK = "ink"
    IMAGE = "image"


@dataclass
class Style:
    """
    Visual attributes of a placement. Orthogonal to geometry and copied
    verbatim into drawing instructions at export time.
    """
    font_index: int = 0
    font_name: str = "Alex Brush"
    color: str = "#000000"     # 6 hex digits, '#' optional
    opacity: float = 1.0       # 0..1
    size: float = 1.5          # relative size multiplier (text only)
    bold: bool = False
    italic: bool = False
    stroke_weight: float = 3.0  # ink boldness

    @classmethod
    def field_names(cls) -> frozenset:
        return frozenset(f.name for f in fields(cls))


@dataclass(frozen=True)
class Geometry:
    """Frozen snapshot of a placement's geometry (taken at interaction start)."""
    page_index: int
    x_percent: float
    y_percent: float
    width_percent: float
    height_percent: float
    aspect_ratio: float
    rotation_degrees: float = 0.0


@dataclass
class Placement:
    """
    One overlay object attached to a page.

    Geometry is stored as fractions of the owning page's rendered size
    (origin top-left), so it survives any change of preview resolution.
    rotation_degrees is left unnormalized; export normalizes where needed.
    """

    kind: ContentKind
    content: str                    # text, or a data URL for ink / image
    id: str = field(default_factory=_gen_id)

    page_index: int = 0
    x_percent: float = 0.1
    y_percent: float = 0.1
    width_percent: float = 0.3
    height_percent: float = 0.1
    aspect_ratio: float = 3.0
    rotation_degrees: float = 0.0

    style: Style = field(default_factory=Style)

    GEOMETRY_FIELDS = (
        "page_index",
        "x_percent",
        "y_percent",
        "width_percent",
        "height_percent",
        "aspect_ratio",
        "rotation_degrees",
    )

    def geometry(self) -> Geometry:
        return Geometry(
            page_index=self.page_index,
            x_percent=self.x_percent,
            y_percent=self.y_percent,
            width_percent=self.width_percent,
            height_percent=self.height_percent,
            aspect_ratio=self.aspect_ratio,
            rotation_degrees=self.rotation_degrees,
        )

    # --------------------
    # Conversions – API schemas (FastAPI / pydantic)
    # --------------------
    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Placement":
        """
        Build from an incoming API dict (e.g. request body).
        Coordinates are already normalized 0..1 (as the editor sends).
        """
        style_data = data.get("style") or {}
        style = Style(**{k: v for k, v in style_data.items() if k in Style.field_names()})
        return cls(
            id=data.get("id") or _gen_id(),
            kind=ContentKind(data["kind"]),
            content=data.get("content") or "",
            page_index=int(data.get("page_index", 0)),
            x_percent=float(data.get("x_percent", 0.1)),
            y_percent=float(data.get("y_percent", 0.1)),
            width_percent=float(data.get("width_percent", 0.3)),
            height_percent=float(data.get("height_percent", 0.1)),
            aspect_ratio=float(data.get("aspect_ratio", 3.0)),
            rotation_degrees=float(data.get("rotation_degrees", 0.0)),
            style=style,
        )

    def to_api(self) -> Dict[str, Any]:
        """
        Convert to shape returned to frontend (JSON).
        """
        return {
            "id": self.id,
            "kind": self.kind.value,
            "content": self.content,
            "page_index": self.page_index,
            "x_percent": self.x_percent,
            "y_percent": self.y_percent,
            "width_percent": self.width_percent,
            "height_percent": self.height_percent,
            "aspect_ratio": self.aspect_ratio,
            "rotation_degrees": self.rotation_degrees,
            "style": asdict(self.style),
        }


def normalize_color(color: Optional[str]) -> str:
    """'#1e3a5f' / '1E3A5F' -> '#1E3A5F'. Raises ValueError on anything else."""
    hex_part = (color or "").strip().lstrip("#")
    if not _HEX_COLOR.fullmatch(hex_part):
        raise ValueError(f"color must have 6 hex digits, got {color!r}")
    return f"#{hex_part.upper()}"
