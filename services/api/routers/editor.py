# services/api/routers/editor.py
from __future__ import annotations

import io
import logging
from dataclasses import asdict
from typing import Annotated, List

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from pydantic import TypeAdapter, ValidationError

from core.capture import capture_image, capture_text
from core.errors import DecodeError, ExportError, InputError
from core.fonts import FontResolver
from core.payloads import encode_data_url
from core.pdf_document import PdfRasterizer, edited_filename, export_edited_pdf
from core.placement_store import PlacementStore
from models.placement import Placement, Style
from schemas.placement import (
    ImageCaptureIn,
    PageDimensionOut,
    PagesOut,
    PlacementIn,
    PlacementOut,
    StyleIn,
    TextCaptureIn,
)
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/editor", tags=["editor"])


# --------------------
# DI
# --------------------
def get_font_resolver(settings: Settings = Depends(get_settings)) -> FontResolver:
    # one resolver per request = one font cache per export run
    return FontResolver(timeout=settings.font_fetch_timeout)


SettingsDep = Annotated[Settings, Depends(get_settings)]
Fonts = Annotated[FontResolver, Depends(get_font_resolver)]

_placements_adapter = TypeAdapter(List[PlacementIn])


# --------------------
# Helpers
# --------------------
async def _read_pdf(file: UploadFile, settings: Settings) -> bytes:
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="EMPTY_UPLOAD")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"UPLOAD_TOO_LARGE: max {settings.max_upload_mb} MB",
        )
    return data


def _style(style_in: StyleIn) -> Style:
    return Style(**style_in.model_dump())


def _placement_out(placement: Placement) -> PlacementOut:
    return PlacementOut(**placement.to_api())


def _store_from(placements: List[PlacementIn]) -> PlacementStore:
    store = PlacementStore()
    for p in placements:
        defaults = p.model_dump(exclude={"id", "kind", "content", "style"})
        defaults["style"] = _style(p.style)
        store.create(p.kind, p.content, defaults)
    return store


# --------------------
# Pages
# --------------------
@router.post("/pages", response_model=PagesOut)
async def get_pages(
    settings: SettingsDep,
    file: UploadFile = File(...),
    previews: bool = Query(False, description="Include PNG previews as data URLs"),
):
    """
    Page count and per-page dimensions of an uploaded PDF.

    display_* is the size of the preview rendered at settings.render_scale;
    the editor stores every placement as fractions of that size.
    """
    pdf_bytes = await _read_pdf(file, settings)
    scale = settings.render_scale

    try:
        with PdfRasterizer(pdf_bytes) as raster:
            pages: List[PageDimensionOut] = []
            if previews:
                for image, dim in raster.render_all(scale):
                    bio = io.BytesIO()
                    image.save(bio, format="PNG")
                    pages.append(
                        PageDimensionOut(
                            **asdict(dim),
                            preview=encode_data_url(bio.getvalue(), "image/png"),
                        )
                    )
            else:
                for i, size in enumerate(raster.page_sizes()):
                    pages.append(
                        PageDimensionOut(
                            page_index=i,
                            original_width=size.width,
                            original_height=size.height,
                            display_width=size.width * scale,
                            display_height=size.height * scale,
                            scale=scale,
                        )
                    )
    except InputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"INVALID_PDF: {e}")

    logger.info(f"Pages read: {len(pages)} (previews={previews})")
    return PagesOut(page_count=len(pages), pages=pages)


# --------------------
# Export
# --------------------
@router.post("/export")
async def export_pdf(
    settings: SettingsDep,
    fonts: Fonts,
    file: UploadFile = File(...),
    placements: str = Form(..., description="JSON list of placements"),
):
    """
    Bake placements into the uploaded PDF and stream the edited file back.

    The whole export either succeeds or fails with 422; no partial file.
    """
    pdf_bytes = await _read_pdf(file, settings)

    try:
        items = _placements_adapter.validate_json(placements)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"INVALID_PLACEMENTS: {e.error_count()} errors",
        )

    try:
        store = _store_from(items)
    except InputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"Export requested: {len(store)} placements, {len(pdf_bytes)} bytes of PDF")
    try:
        result = await export_edited_pdf(
            pdf_bytes=pdf_bytes,
            store=store,
            font_resolver=fonts,
            font_dir=settings.font_cache_dir,
            base_font_size=settings.base_font_size,
            margin=settings.text_fit_margin,
        )
    except ExportError as e:
        logger.warning(f"Export failed: {e}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"EXPORT_FAILED: {e}")

    fname = edited_filename(file.filename)
    return StreamingResponse(
        io.BytesIO(result),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{fname}"'},
    )


# --------------------
# Capture
# --------------------
@router.post("/capture/text", response_model=PlacementOut, status_code=status.HTTP_201_CREATED)
async def capture_text_placement(body: TextCaptureIn):
    """Typed text -> new text placement with default geometry."""
    store = PlacementStore()
    try:
        pid = capture_text(store, body.text, _style(body.style))
    except InputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _placement_out(store.get(pid))


@router.post("/capture/image", response_model=PlacementOut, status_code=status.HTTP_201_CREATED)
async def capture_image_placement(body: ImageCaptureIn):
    """
    Uploaded image (data URL) -> new image placement.
    An image that cannot be decoded still gets placed with aspect ratio 2.
    """
    store = PlacementStore()
    try:
        pid = capture_image(store, body.content, _style(body.style))
    except (InputError, DecodeError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _placement_out(store.get(pid))
