# services/api/core/export_mapper.py
"""
Maps placements (percent geometry, screen orientation) to drawing
instructions in document space (PDF points, origin bottom-left).

For every placement, in store order:
  abs box   = percent geometry * owning page size, y flipped
  center    = middle of the abs box (rotation pivot)
  text      = font size auto-fit into the box with a 0.85 margin,
              origin so the fitted text is centered on the box
  ink/image = drawn into the abs box as-is (stretch distortion kept)
  rotation  = -rotation_degrees (screen rotates clockwise for positive
              angles, document space counter-clockwise)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

from core.errors import DecodeError, ExportError
from core.payloads import decode_data_url, format_hint
from models.page import PageSize, norm_to_absolute
from models.placement import ContentKind, Placement, Style

logger = logging.getLogger(__name__)

BASE_FONT_SIZE = 24.0
TEXT_FIT_MARGIN = 0.85


def parse_hex_color(color: str) -> Tuple[float, float, float]:
    """'#RRGGBB' -> (r, g, b) in 0..1."""
    hex_part = (color or "").strip().lstrip("#")
    if len(hex_part) != 6:
        raise ValueError(f"color must have 6 hex digits, got {color!r}")
    r = int(hex_part[0:2], 16) / 255
    g = int(hex_part[2:4], 16) / 255
    b = int(hex_part[4:6], 16) / 255
    return r, g, b


@dataclass(frozen=True)
class AbsoluteBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)


def absolute_box(placement: Placement, page: PageSize) -> AbsoluteBox:
    x, y, w, h = norm_to_absolute(
        placement.x_percent,
        placement.y_percent,
        placement.width_percent,
        placement.height_percent,
        page,
    )
    return AbsoluteBox(x=x, y=y, width=w, height=h)


@dataclass(frozen=True)
class FittedText:
    size: float
    width: float
    height: float
    scale: float


def fit_text(
    font: Any,
    content: str,
    box_width: float,
    box_height: float,
    size_multiplier: float,
    *,
    base_font_size: float = BASE_FONT_SIZE,
    margin: float = TEXT_FIT_MARGIN,
) -> FittedText:
    """
    Scale text so it fills the box minus margin without overflowing either axis.
    `font` needs width_of_text_at_size(text, size) and height_at_size(size).
    """
    base_size = base_font_size * size_multiplier
    text_width = font.width_of_text_at_size(content, base_size)
    text_height = font.height_at_size(base_size)
    if text_width <= 0 or text_height <= 0:
        raise ExportError(f"Font has no measurable extent for {content!r}")

    scale = min(box_width / text_width, box_height / text_height) * margin
    final_size = base_size * scale
    return FittedText(
        size=final_size,
        width=font.width_of_text_at_size(content, final_size),
        height=font.height_at_size(final_size),
        scale=scale,
    )


@dataclass(frozen=True)
class TextInstruction:
    placement_id: str
    page_index: int
    content: str
    x: float
    y: float
    size: float
    font_index: int
    font: Any
    color: Tuple[float, float, float]
    opacity: float
    rotation_degrees: float
    center: Tuple[float, float]
    style: Style


@dataclass(frozen=True)
class ImageInstruction:
    placement_id: str
    page_index: int
    data: bytes
    format_hint: str
    x: float
    y: float
    width: float
    height: float
    opacity: float
    rotation_degrees: float
    center: Tuple[float, float]
    style: Style


DrawInstruction = Union[TextInstruction, ImageInstruction]


class ExportMapper:
    """
    Reads the placements once and emits one drawing instruction each.

    Fonts come from `font_resolver.resolve(font_index)` (awaited one at a
    time, memoized by the resolver for the whole run). Any failure aborts
    the run with ExportError.
    """

    def __init__(
        self,
        font_resolver: Any,
        *,
        base_font_size: float = BASE_FONT_SIZE,
        margin: float = TEXT_FIT_MARGIN,
    ) -> None:
        self.font_resolver = font_resolver
        self.base_font_size = base_font_size
        self.margin = margin

    async def map(self, placements: Sequence[Placement], pages: Sequence[PageSize]) -> List[DrawInstruction]:
        if not placements:
            raise ExportError("Please add at least one item before exporting")
        if not pages:
            raise ExportError("Document has no pages")

        instructions: List[DrawInstruction] = []
        for placement in placements:
            instructions.append(await self.map_one(placement, pages))
        logger.info(f"Mapped {len(instructions)} placements onto {len(pages)} pages")
        return instructions

    def _owning_page(self, placement: Placement, pages: Sequence[PageSize]) -> int:
        if 0 <= placement.page_index < len(pages):
            return placement.page_index
        logger.warning(
            f"Placement {placement.id} targets missing page {placement.page_index}; drawing on page 0"
        )
        return 0

    async def map_one(self, placement: Placement, pages: Sequence[PageSize]) -> DrawInstruction:
        page_index = self._owning_page(placement, pages)
        box = absolute_box(placement, pages[page_index])
        rotation = -placement.rotation_degrees
        style = placement.style

        if placement.kind == ContentKind.TEXT:
            return await self._map_text(placement, page_index, box, rotation)
        if placement.kind in (ContentKind.INK, ContentKind.IMAGE):
            try:
                _, data = decode_data_url(placement.content)
            except DecodeError as e:
                raise ExportError(f"Cannot read image for placement {placement.id}: {e}") from e
            return ImageInstruction(
                placement_id=placement.id,
                page_index=page_index,
                data=data,
                format_hint=format_hint(placement.content),
                x=box.x,
                y=box.y,
                width=box.width,
                height=box.height,
                opacity=style.opacity,
                rotation_degrees=rotation,
                center=box.center,
                style=style,
            )
        raise ExportError(f"Unsupported content kind: {placement.kind}")

    async def _map_text(
        self,
        placement: Placement,
        page_index: int,
        box: AbsoluteBox,
        rotation: float,
    ) -> TextInstruction:
        style = placement.style
        try:
            font = await self.font_resolver.resolve(style.font_index)
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"Failed to load font {style.font_index}: {e}") from e

        fitted = fit_text(
            font,
            placement.content,
            box.width,
            box.height,
            style.size,
            base_font_size=self.base_font_size,
            margin=self.margin,
        )
        cx, cy = box.center
        try:
            color = parse_hex_color(style.color)
        except ValueError as e:
            raise ExportError(str(e)) from e

        return TextInstruction(
            placement_id=placement.id,
            page_index=page_index,
            content=placement.content,
            x=cx - fitted.width / 2,
            y=cy - fitted.height / 2,
            size=fitted.size,
            font_index=style.font_index,
            font=font,
            color=color,
            opacity=style.opacity,
            rotation_degrees=rotation,
            center=(cx, cy),
            style=style,
        )
