# services/api/core/capture.py
from __future__ import annotations

import io
import logging
import random
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple, Union

from PIL import Image, ImageColor, ImageDraw

from core.errors import DecodeError, InputError
from core.payloads import decode_data_url, encode_data_url, natural_size, sniff_mime
from core.placement_store import PlacementStore
from models.placement import ContentKind, Style, normalize_color

logger = logging.getLogger(__name__)

TEXT_ASPECT_RATIO = 3.0
TEXT_WIDTH_PERCENT = 0.30
INK_WIDTH_PERCENT = 0.25
IMAGE_WIDTH_PERCENT = 0.25
IMAGE_FALLBACK_ASPECT_RATIO = 2.0
INITIAL_POSITION = (0.1, 0.1)


def _initial_geometry(width_percent: float, aspect_ratio: float) -> dict:
    x, y = INITIAL_POSITION
    return {
        "page_index": 0,
        "x_percent": x,
        "y_percent": y,
        "width_percent": width_percent,
        "height_percent": width_percent / aspect_ratio,
        "aspect_ratio": aspect_ratio,
        "rotation_degrees": 0.0,
    }


# ---------- Typed text -------------------------------------------------------

def capture_text(store: PlacementStore, text: Optional[str], style: Optional[Style] = None) -> str:
    """Create a text placement from typed input. Blank input is refused."""
    content = (text or "").strip()
    if not content:
        raise InputError("Please enter some text first")

    defaults = _initial_geometry(TEXT_WIDTH_PERCENT, TEXT_ASPECT_RATIO)
    defaults["style"] = style or Style()
    return store.create(ContentKind.TEXT, content, defaults)


# ---------- Free-hand ink ----------------------------------------------------

@dataclass(frozen=True)
class InkSample:
    x: float
    y: float
    pressure: float


class InkCanvas:
    """
    Fixed-size drawing surface for free-hand ink.

    Samples arrive in canvas pixels (use `to_canvas` when the surface is
    displayed at another size). Each segment is drawn immediately with
    width = stroke_weight * pressure; pressure is synthetic, drawn from
    [pressure_min, pressure_max). On gesture end the whole surface is
    rasterized to a PNG data URL.
    """

    def __init__(
        self,
        width: int = 600,
        height: int = 200,
        *,
        stroke_weight: float = 3.0,
        color: str = "#000000",
        opacity: float = 1.0,
        pressure_min: float = 0.5,
        pressure_max: float = 0.8,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.width = width
        self.height = height
        self.stroke_weight = stroke_weight
        self.color = normalize_color(color)
        self.opacity = opacity
        self.pressure_min = pressure_min
        self.pressure_max = pressure_max
        self._rng = rng or random.Random()

        self._image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        self._draw = ImageDraw.Draw(self._image)
        self._samples: List[InkSample] = []
        self._drawing = False
        self.payload: Optional[str] = None

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "InkCanvas":
        return cls(
            settings.ink_canvas_width,
            settings.ink_canvas_height,
            stroke_weight=kwargs.pop("stroke_weight", settings.ink_stroke_weight),
            pressure_min=settings.ink_pressure_min,
            pressure_max=settings.ink_pressure_max,
            **kwargs,
        )

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def samples(self) -> List[InkSample]:
        return list(self._samples)

    @property
    def is_drawing(self) -> bool:
        return self._drawing

    @property
    def image(self) -> Image.Image:
        return self._image.copy()

    def to_canvas(self, x: float, y: float, display_size: Tuple[float, float]) -> Tuple[float, float]:
        """Map a point on the displayed surface to native canvas pixels."""
        display_w, display_h = display_size
        if display_w <= 0 or display_h <= 0:
            raise ValueError("display width/height must be > 0")
        return (x * (self.width / display_w), y * (self.height / display_h))

    def _sample(self, x: float, y: float) -> InkSample:
        pressure = self._rng.uniform(self.pressure_min, self.pressure_max)
        return InkSample(x=x, y=y, pressure=pressure)

    def pointer_down(self, x: float, y: float) -> None:
        # a new gesture starts a fresh trace; earlier strokes stay on the surface
        self._drawing = True
        self._samples = [self._sample(x, y)]

    def pointer_move(self, x: float, y: float) -> None:
        if not self._drawing:
            return
        prev = self._samples[-1]
        curr = self._sample(x, y)
        self._samples.append(curr)
        self._stroke(prev, curr)

    def pointer_up(self) -> Optional[str]:
        if self._drawing:
            self.payload = self._rasterize()
        self._drawing = False
        return self.payload

    def clear(self) -> None:
        self._image = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))
        self._draw = ImageDraw.Draw(self._image)
        self._samples = []
        self._drawing = False
        self.payload = None

    def _stroke(self, prev: InkSample, curr: InkSample) -> None:
        r, g, b = ImageColor.getrgb(self.color)
        fill = (r, g, b, int(round(255 * max(0.0, min(1.0, self.opacity)))))
        line_width = self.stroke_weight * curr.pressure
        px_width = max(1, int(round(line_width)))
        self._draw.line([(prev.x, prev.y), (curr.x, curr.y)], fill=fill, width=px_width)
        # round caps and joins
        radius = line_width / 2
        for point in (prev, curr):
            self._draw.ellipse(
                [point.x - radius, point.y - radius, point.x + radius, point.y + radius],
                fill=fill,
            )

    def _rasterize(self) -> str:
        bio = io.BytesIO()
        self._image.save(bio, format="PNG")
        return encode_data_url(bio.getvalue(), "image/png")


def capture_ink(store: PlacementStore, canvas: InkCanvas, style: Optional[Style] = None) -> str:
    """Create an ink placement from the canvas' rasterized drawing."""
    if not canvas.payload:
        raise InputError("Please draw something first")

    base_style = style or Style()
    base_style = replace(
        base_style,
        color=canvas.color,
        opacity=canvas.opacity,
        stroke_weight=canvas.stroke_weight,
    )
    defaults = _initial_geometry(INK_WIDTH_PERCENT, canvas.aspect_ratio)
    defaults["style"] = base_style
    return store.create(ContentKind.INK, canvas.payload, defaults)


# ---------- Uploaded image ---------------------------------------------------

def image_aspect_ratio(data: bytes) -> float:
    """Natural width/height of an image, or the fallback ratio when it cannot be decoded."""
    try:
        width, height = natural_size(data)
    except DecodeError as e:
        logger.warning(f"Image decode failed, using fallback aspect ratio {IMAGE_FALLBACK_ASPECT_RATIO}: {e}")
        return IMAGE_FALLBACK_ASPECT_RATIO
    return width / height


def capture_image(
    store: PlacementStore,
    upload: Union[bytes, str, None],
    style: Optional[Style] = None,
) -> str:
    """
    Create an image placement from raw upload bytes or a data URL.
    An undecodable image is still placed, with the fallback aspect ratio.
    """
    if not upload:
        raise InputError("Please upload an image first")

    if isinstance(upload, str):
        payload = upload
        try:
            _, data = decode_data_url(upload)
        except DecodeError as e:
            logger.warning(f"Uploaded payload is not a usable data URL: {e}")
            data = b""
    else:
        data = bytes(upload)
        payload = encode_data_url(data, sniff_mime(data))

    aspect_ratio = image_aspect_ratio(data)
    defaults = _initial_geometry(IMAGE_WIDTH_PERCENT, aspect_ratio)
    defaults["style"] = style or Style()
    return store.create(ContentKind.IMAGE, payload, defaults)
