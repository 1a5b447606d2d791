# services/api/core/fonts.py
from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

import httpx
from fontTools.ttLib import TTFont, TTLibError

from core.errors import ExportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FontSpec:
    name: str
    url: str


FONT_CATALOG: List[FontSpec] = [
    FontSpec("Alex Brush", "https://fonts.gstatic.com/s/alexbrush/v22/SZc83FzrJKuqFbwMKk6EtUL57DtOmCc.ttf"),
    FontSpec("Allura", "https://fonts.gstatic.com/s/allura/v21/9oRPNYsQpS4zjuAPjAIXPtrrGA.ttf"),
    FontSpec("Arizonia", "https://fonts.gstatic.com/s/arizonia/v19/neIIzCemt4A5qa7mv6WGHK06UY30.ttf"),
    FontSpec("Dancing Script", "https://fonts.gstatic.com/s/dancingscript/v24/If2cXTr6YS-zF4S-kcSWSVi_sxjsohD9F50Ruu7BMSoHTeB9ptDqpw.ttf"),
    FontSpec("Herr Von Muellerhoff", "https://fonts.gstatic.com/s/herrvonmuellerhoff/v15/WBL6rFjRZkREW8WqmCWYLgCkQKXb4CAft3c6_qJY3QPQ.ttf"),
    FontSpec("Mr Dafoe", "https://fonts.gstatic.com/s/mrdafoe/v14/lJwE-pIzkS5NXuMMrGiqg7MCxz_C.ttf"),
    FontSpec("Pinyon Script", "https://fonts.gstatic.com/s/pinyonscript/v20/6xKpdSJbL9-e9LuoeQiDRQR8aOLQO4bhiDY.ttf"),
    FontSpec("Qwigley", "https://fonts.gstatic.com/s/qwigley/v17/1cXzaU3UGJb5tGoCuVxsi1mBmcE.ttf"),
    FontSpec("Rouge Script", "https://fonts.gstatic.com/s/rougescript/v14/LYjFdGbiklMoCIQOw1Ep3S4PVPXbUJWq9g.ttf"),
]


def font_spec(font_index: int) -> FontSpec:
    if not 0 <= font_index < len(FONT_CATALOG):
        raise ExportError(f"Unknown font index: {font_index}")
    return FONT_CATALOG[font_index]


class FontHandle:
    """
    Metrics for one embedded TrueType font.

    width_of_text_at_size: sum of glyph advances scaled by size / unitsPerEm.
    height_at_size: (ascender - descender) scaled the same way, i.e. the
    full line box including the descender.
    """

    def __init__(self, name: str, data: bytes) -> None:
        self.name = name
        self.data = data
        try:
            font = TTFont(io.BytesIO(data), lazy=True)
            self._units_per_em = font["head"].unitsPerEm
            self._advances = {glyph: adv for glyph, (adv, _lsb) in font["hmtx"].metrics.items()}
            self._cmap = font.getBestCmap() or {}
            if "hhea" in font:
                self._ascent = font["hhea"].ascent
                self._descent = font["hhea"].descent
            else:
                self._ascent = font["head"].yMax
                self._descent = font["head"].yMin
        except (TTLibError, KeyError, AssertionError, struct.error) as e:
            raise ExportError(f"Cannot read font '{name}': {e}") from e

    def _advance(self, char: str) -> int:
        glyph = self._cmap.get(ord(char), ".notdef")
        return self._advances.get(glyph, self._advances.get(".notdef", 0))

    def width_of_text_at_size(self, text: str, size: float) -> float:
        units = sum(self._advance(ch) for ch in text)
        return units * size / self._units_per_em

    def height_at_size(self, size: float) -> float:
        return (self._ascent - self._descent) * size / self._units_per_em


FetchBytes = Callable[[str], Awaitable[bytes]]


async def _fetch_font_bytes(url: str, timeout: float = 30.0) -> bytes:
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        r = await client.get(url)
        r.raise_for_status()
        return r.content


class FontResolver:
    """
    Fetches and parses catalog fonts, memoized by font index.

    One resolver is meant to live for one export run: each distinct font
    is fetched and parsed exactly once, sequentially.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        fetch: Optional[FetchBytes] = None,
        handle_factory: Callable[[str, bytes], FontHandle] = FontHandle,
    ) -> None:
        self.timeout = timeout
        self._fetch = fetch
        self._handle_factory = handle_factory
        self._cache: Dict[int, FontHandle] = {}

    async def _download(self, url: str) -> bytes:
        if self._fetch is not None:
            return await self._fetch(url)
        return await _fetch_font_bytes(url, timeout=self.timeout)

    async def resolve(self, font_index: int) -> FontHandle:
        if font_index in self._cache:
            return self._cache[font_index]

        spec = font_spec(font_index)
        try:
            data = await self._download(spec.url)
        except httpx.HTTPError as e:
            logger.warning(f"Font fetch failed for '{spec.name}': {e}")
            raise ExportError(f"Failed to fetch font '{spec.name}': {e}") from e

        handle = self._handle_factory(spec.name, data)
        self._cache[font_index] = handle
        logger.info(f"Font embedded: {spec.name} ({len(data)} bytes)")
        return handle

    @property
    def resolved(self) -> Dict[int, FontHandle]:
        return dict(self._cache)
