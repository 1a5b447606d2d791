# services/api/core/payloads.py
"""
Raster payloads travel as data URLs ("data:image/png;base64,...").
The media type in the URL is the content-type marker export relies on.
"""
from __future__ import annotations

import base64
import binascii
import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from core.errors import DecodeError

DEFAULT_MIME = "image/png"


def encode_data_url(data: bytes, mime: str = DEFAULT_MIME) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(payload: str) -> Tuple[str, bytes]:
    """
    Split a data URL into (mime, raw bytes).
    Raises DecodeError for anything that is not a base64 data URL.
    """
    if not payload or not payload.startswith("data:"):
        raise DecodeError("Payload is not a data URL")
    header, sep, body = payload.partition(",")
    if not sep:
        raise DecodeError("Data URL has no body")
    meta = header[len("data:"):]
    if not meta.endswith(";base64"):
        raise DecodeError("Only base64 data URLs are supported")
    mime = meta[: -len(";base64")] or DEFAULT_MIME
    try:
        raw = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e
    return mime.lower(), raw


def format_hint(payload: str) -> str:
    """
    'png' or 'jpeg', read from the payload's content-type marker.
    Unknown or missing markers default to png.
    """
    head = payload[:64].lower()
    if "data:image/png" in head:
        return "png"
    if "data:image/jpeg" in head or "data:image/jpg" in head:
        return "jpeg"
    return "png"


def sniff_mime(data: bytes) -> str:
    """Media type for raw uploaded bytes, from the magic number."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"


def open_image(data: bytes) -> Image.Image:
    """Decode raw raster bytes with Pillow (fully loaded)."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        return img
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e


def natural_size(data: bytes) -> Tuple[int, int]:
    img = open_image(data)
    width, height = img.size
    if width <= 0 or height <= 0:
        raise DecodeError(f"Image has no area: {width}x{height}")
    return width, height
