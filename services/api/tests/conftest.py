"""
Shared fixtures: in-memory PDFs (fpdf2), images (Pillow) and a small
TrueType font (fontTools FontBuilder), so no test touches the network.
"""
import io
import os
import sys

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen
from fpdf import FPDF
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.fonts import FontResolver
from core.payloads import encode_data_url


# --------------------
# Builders
# --------------------
GLYPH_ADVANCE = 500
SPACE_ADVANCE = 250
UNITS_PER_EM = 1000
ASCENT = 800
DESCENT = -200


def _box_glyph():
    pen = TTGlyphPen(None)
    pen.moveTo((50, 0))
    pen.lineTo((50, 700))
    pen.lineTo((450, 700))
    pen.lineTo((450, 0))
    pen.closePath()
    return pen.glyph()


def build_ttf(family: str = "Test Script") -> bytes:
    """Printable ASCII, every glyph a 500-unit box; space is 250 units."""
    codepoints = list(range(33, 127))
    names = [f"uni{cp:04X}" for cp in codepoints]
    glyph_order = [".notdef", "space"] + names

    fb = FontBuilder(UNITS_PER_EM, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    cmap = {32: "space"}
    cmap.update(dict(zip(codepoints, names)))
    fb.setupCharacterMap(cmap)

    glyphs = {name: _box_glyph() for name in [".notdef"] + names}
    glyphs["space"] = TTGlyphPen(None).glyph()
    fb.setupGlyf(glyphs)

    metrics = {name: (GLYPH_ADVANCE, 50) for name in [".notdef"] + names}
    metrics["space"] = (SPACE_ADVANCE, 0)
    fb.setupHorizontalMetrics(metrics)
    fb.setupHorizontalHeader(ascent=ASCENT, descent=DESCENT)
    fb.setupNameTable({
        "familyName": family,
        "styleName": "Regular",
        "psName": family.replace(" ", "") + "-Regular",
    })
    fb.setupOS2(
        sTypoAscender=ASCENT,
        sTypoDescender=DESCENT,
        usWinAscent=ASCENT,
        usWinDescent=-DESCENT,
        fsType=0,
    )
    fb.setupPost()

    bio = io.BytesIO()
    fb.save(bio)
    return bio.getvalue()


def build_pdf(sizes=((600, 800), (300, 400))) -> bytes:
    """One page per (width, height) in points, each with a filled rectangle."""
    pdf = FPDF(unit="pt")
    pdf.set_auto_page_break(auto=False)
    for w, h in sizes:
        pdf.add_page(format=(w, h))
        pdf.set_fill_color(200, 200, 200)
        pdf.rect(10, 10, w / 4, h / 4, style="F")
    return bytes(pdf.output())


def build_png(width: int = 30, height: int = 10, color=(255, 0, 0)) -> bytes:
    bio = io.BytesIO()
    Image.new("RGB", (width, height), color).save(bio, format="PNG")
    return bio.getvalue()


def build_jpeg(width: int = 40, height: int = 20) -> bytes:
    bio = io.BytesIO()
    Image.new("RGB", (width, height), (0, 0, 255)).save(bio, format="JPEG")
    return bio.getvalue()


class CountingFetch:
    """Stands in for the HTTP font download; counts calls per URL."""

    def __init__(self, data: bytes):
        self.data = data
        self.calls = []

    async def __call__(self, url: str) -> bytes:
        self.calls.append(url)
        return self.data


# --------------------
# Fixtures
# --------------------
@pytest.fixture(scope="session")
def ttf_bytes() -> bytes:
    return build_ttf()


@pytest.fixture
def pdf_bytes() -> bytes:
    return build_pdf()


@pytest.fixture
def png_bytes() -> bytes:
    return build_png()


@pytest.fixture
def png_data_url(png_bytes) -> str:
    return encode_data_url(png_bytes, "image/png")


@pytest.fixture
def font_fetch(ttf_bytes) -> CountingFetch:
    return CountingFetch(ttf_bytes)


@pytest.fixture
def font_resolver(font_fetch) -> FontResolver:
    return FontResolver(fetch=font_fetch)
