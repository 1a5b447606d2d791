# services/api/core/pdf_document.py

from __future__ import annotations
import io
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Any

import pypdfium2 as pdfium
from PIL import Image
from fpdf import FPDF
from fpdf.errors import FPDFException

from core.errors import DecodeError, ExportError, InputError
from core.export_mapper import DrawInstruction, ExportMapper, ImageInstruction, TextInstruction
from core.payloads import open_image
from core.placement_store import PlacementStore
from models.page import PageDimension, PageSize

logger = logging.getLogger(__name__)


# ---------- Public API -------------------------------------------------------

async def export_edited_pdf(
    *,
    pdf_bytes: bytes,
    store: PlacementStore,
    font_resolver: Any,
    font_dir: str | Path,
    base_font_size: float = 24.0,
    margin: float = 0.85,
) -> bytes:
    """
    Bake every placement of `store` into the source PDF and return the new bytes.

    The store is held for the whole run: no placement can be added or
    removed until the export finishes. Any failure aborts the run with
    ExportError and nothing is returned.
    """
    with store.export_lock():
        # 1) Absolute page sizes from the source document
        try:
            rasterizer = PdfRasterizer(pdf_bytes)
        except InputError as e:
            raise ExportError(str(e)) from e
        try:
            pages = rasterizer.page_sizes()
        finally:
            rasterizer.close()

        # 2) Placements -> drawing instructions (fonts fetched one at a time)
        mapper = ExportMapper(font_resolver, base_font_size=base_font_size, margin=margin)
        instructions = await mapper.map(store.list(), pages)

        # 3) Draw overlay pages, then stamp them onto the source
        writer = OverlayWriter(pdf_bytes, pages, font_dir=font_dir)
        try:
            writer.draw_all(instructions)
            result = writer.save()
        except FPDFException as e:
            raise ExportError(f"Failed to draw overlay: {e}") from e

    logger.info(f"Export finished: {len(instructions)} placements, {len(result)} bytes")
    return result


def edited_filename(name: Optional[str]) -> str:
    """'contract.pdf' -> 'contract-edited.pdf'."""
    base = (name or "document.pdf").strip() or "document.pdf"
    if base.lower().endswith(".pdf"):
        base = base[:-4]
    return f"{base}-edited.pdf"


# ---------- Page rasterizer --------------------------------------------------

class PdfRasterizer:
    """
    Opens a source PDF with pypdfium2 to report page sizes and render
    page previews.
    """

    def __init__(self, pdf_bytes: bytes):
        try:
            self._doc = pdfium.PdfDocument(pdf_bytes)
        except pdfium.PdfiumError as e:
            raise InputError(f"Failed to load PDF: {e}") from e

    def __enter__(self) -> "PdfRasterizer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._doc.close()

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def page_sizes(self) -> List[PageSize]:
        sizes = []
        for index in range(len(self._doc)):
            width, height = self._doc[index].get_size()
            sizes.append(PageSize(width=width, height=height))
        return sizes

    def render_page(self, page_index: int, scale: float) -> Tuple[Image.Image, PageDimension]:
        """
        Render one page at `scale` (scale 1 = 72 DPI).
        Returns the PIL image plus original/display dimensions.
        """
        page = self._doc[page_index]
        width, height = page.get_size()
        image: Image.Image = page.render(scale=scale).to_pil()
        dim = PageDimension(
            page_index=page_index,
            original_width=width,
            original_height=height,
            display_width=image.width,
            display_height=image.height,
            scale=scale,
        )
        return image, dim

    def render_all(self, scale: float) -> List[Tuple[Image.Image, PageDimension]]:
        return [self.render_page(i, scale) for i in range(len(self._doc))]


# ---------- Document authoring sink ------------------------------------------

class OverlayWriter:
    """
    Draws instructions with fpdf2 onto overlay pages of the same size as
    the source pages, then stamps each touched overlay page onto its
    source page (pypdfium2 form XObject) and saves.

    Coordinates in instructions are document space (origin bottom-left);
    fpdf2 works top-down, so y is flipped here. Rotation pivots on the
    instruction's center; positive angles turn counter-clockwise.
    """

    def __init__(self, source_pdf: bytes, pages: Sequence[PageSize], *, font_dir: str | Path):
        self._source_pdf = source_pdf
        self._pages = list(pages)
        self._font_dir = Path(font_dir)
        self._pdf = FPDF(unit="pt")
        self._pdf.set_auto_page_break(auto=False)
        self._pdf.set_margins(0, 0, 0)
        self._families: Dict[str, str] = {}
        self._touched: List[int] = []
        self._finished = False

    # -- embedding --

    def embed_font(self, font: Any) -> str:
        """Register a font's TTF bytes with fpdf2 once; returns the family name."""
        name = getattr(font, "name", None) or "font"
        if name in self._families:
            return self._families[name]

        family = re.sub(r"[^a-z0-9]+", "", name.lower()) or "font"
        self._font_dir.mkdir(parents=True, exist_ok=True)
        path = self._font_dir / f"{family}.ttf"
        if not path.exists() or path.stat().st_size != len(font.data):
            path.write_bytes(font.data)
        try:
            self._pdf.add_font(family=family, style="", fname=str(path))
        except Exception as e:
            raise ExportError(f"Failed to embed font '{name}': {e}") from e
        self._families[name] = family
        return family

    def embed_raster(self, data: bytes, format_hint: str) -> io.BytesIO:
        """
        Validate raster bytes and return a stream fpdf2 can place.
        PNG stays PNG, JPEG stays JPEG; anything else is re-encoded as PNG.
        """
        try:
            img = open_image(data)
        except DecodeError as e:
            raise ExportError(f"Failed to embed image: {e}") from e

        fmt = (img.format or "").lower()
        if format_hint == "jpeg" and fmt == "jpeg":
            return io.BytesIO(data)
        if format_hint == "png" and fmt == "png":
            return io.BytesIO(data)
        bio = io.BytesIO()
        img.save(bio, format="PNG")
        bio.seek(0)
        return bio

    # -- drawing --

    def draw_all(self, instructions: Sequence[DrawInstruction]) -> None:
        """Draw page by page; within a page, instructions keep their order."""
        for page_index, size in enumerate(self._pages):
            self._pdf.add_page(format=(size.width, size.height))
            on_page = [ins for ins in instructions if ins.page_index == page_index]
            for ins in on_page:
                self.draw(ins)
            if on_page:
                self._touched.append(page_index)

    def draw(self, ins: DrawInstruction) -> None:
        if isinstance(ins, TextInstruction):
            self.draw_text(ins)
        elif isinstance(ins, ImageInstruction):
            self.draw_image(ins)
        else:
            raise ExportError(f"Unsupported instruction: {type(ins).__name__}")

    def draw_text(self, ins: TextInstruction) -> None:
        pdf = self._pdf
        family = self.embed_font(ins.font)
        page_h = pdf.h
        cx, cy = ins.center
        r, g, b = ins.color
        with pdf.rotation(angle=ins.rotation_degrees, x=cx, y=page_h - cy):
            with pdf.local_context(fill_opacity=ins.opacity):
                pdf.set_font(family, size=ins.size)
                pdf.set_text_color(r * 255, g * 255, b * 255)
                # (x, y) is the baseline origin in document space
                pdf.text(ins.x, page_h - ins.y, ins.content)

    def draw_image(self, ins: ImageInstruction) -> None:
        pdf = self._pdf
        stream = self.embed_raster(ins.data, ins.format_hint)
        page_h = pdf.h
        cx, cy = ins.center
        top = page_h - ins.y - ins.height
        with pdf.rotation(angle=ins.rotation_degrees, x=cx, y=page_h - cy):
            with pdf.local_context(fill_opacity=ins.opacity):
                pdf.image(stream, x=ins.x, y=top, w=ins.width, h=ins.height)

    # -- output --

    def overlay_bytes(self) -> bytes:
        return bytes(self._pdf.output())

    def save(self) -> bytes:
        if self._finished:
            raise ExportError("Document already saved")
        self._finished = True
        overlay = self.overlay_bytes()
        return stamp_overlay(self._source_pdf, overlay, self._touched)


def stamp_overlay(source_pdf: bytes, overlay_pdf: bytes, page_indices: Sequence[int]) -> bytes:
    """Place overlay page i on top of source page i, for each index given."""
    try:
        src = pdfium.PdfDocument(source_pdf)
    except pdfium.PdfiumError as e:
        raise ExportError(f"Failed to open PDF for stamping: {e}") from e
    try:
        overlay = pdfium.PdfDocument(overlay_pdf)
    except pdfium.PdfiumError as e:
        src.close()
        raise ExportError(f"Failed to open overlay for stamping: {e}") from e

    try:
        for index in page_indices:
            xobject = overlay.page_as_xobject(index, src)
            page = src[index]
            page.insert_obj(xobject.as_pageobject())
            page.gen_content()

        bio = io.BytesIO()
        src.save(bio)
        return bio.getvalue()
    except pdfium.PdfiumError as e:
        raise ExportError(f"Failed to write edited PDF: {e}") from e
    finally:
        overlay.close()
        src.close()
