"""
Tests for the HTTP surface (FastAPI TestClient).

Font downloads are replaced through dependency overrides.

Run with: pytest tests/test_editor_api.py -v
"""
import json

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.fonts import FontResolver
from main import app
from routers.editor import get_font_resolver
from settings import Settings, get_settings

from conftest import CountingFetch, build_png


@pytest.fixture
def client(tmp_path, ttf_bytes):
    fetch = CountingFetch(ttf_bytes)
    app.dependency_overrides[get_settings] = lambda: Settings(font_cache_dir=str(tmp_path), max_upload_mb=1)
    app.dependency_overrides[get_font_resolver] = lambda: FontResolver(fetch=fetch)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _pdf_file(pdf_bytes, name="contract.pdf"):
    return {"file": (name, pdf_bytes, "application/pdf")}


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"
        assert len(r.headers["X-Request-ID"]) == 8

    def test_root_lists_endpoints(self, client):
        r = client.get("/")
        assert "POST /editor/export" in r.json()["endpoints"]


class TestPages:
    def test_dimensions(self, client, pdf_bytes):
        """Display size = original size * render_scale (1.5)."""
        r = client.post("/editor/pages", files=_pdf_file(pdf_bytes))
        assert r.status_code == 200
        body = r.json()
        assert body["page_count"] == 2
        first = body["pages"][0]
        assert first["original_width"] == pytest.approx(600)
        assert first["display_width"] == pytest.approx(900)
        assert first["preview"] is None

    def test_previews(self, client, pdf_bytes):
        r = client.post("/editor/pages?previews=true", files=_pdf_file(pdf_bytes))
        assert r.status_code == 200
        pages = r.json()["pages"]
        assert all(p["preview"].startswith("data:image/png;base64,") for p in pages)
        assert pages[1]["display_height"] == 600

    def test_invalid_pdf(self, client):
        r = client.post("/editor/pages", files=_pdf_file(b"hello"))
        assert r.status_code == 400
        assert r.json()["detail"].startswith("INVALID_PDF")

    def test_empty_upload(self, client):
        r = client.post("/editor/pages", files=_pdf_file(b""))
        assert r.status_code == 400

    def test_upload_too_large(self, client):
        r = client.post("/editor/pages", files=_pdf_file(b"%PDF" + b"0" * (1024 * 1024 + 1)))
        assert r.status_code == 413


class TestCapture:
    def test_text(self, client):
        r = client.post("/editor/capture/text", json={"text": "Jane", "style": {"color": "1e3a5f"}})
        assert r.status_code == 201
        body = r.json()
        assert body["kind"] == "text"
        assert body["width_percent"] == pytest.approx(0.3)
        assert body["height_percent"] == pytest.approx(0.1)
        assert body["aspect_ratio"] == 3.0
        assert body["style"]["color"] == "#1E3A5F"
        assert body["id"].startswith("p-")

    def test_blank_text(self, client):
        r = client.post("/editor/capture/text", json={"text": "   "})
        assert r.status_code == 400

    def test_bad_color(self, client):
        r = client.post("/editor/capture/text", json={"text": "Jane", "style": {"color": "red"}})
        assert r.status_code == 422

    def test_image(self, client):
        from core.payloads import encode_data_url

        url = encode_data_url(build_png(40, 10))
        r = client.post("/editor/capture/image", json={"content": url})
        assert r.status_code == 201
        body = r.json()
        assert body["kind"] == "image"
        assert body["aspect_ratio"] == pytest.approx(4.0)
        assert body["height_percent"] == pytest.approx(0.0625)

    def test_undecodable_image_still_placed(self, client):
        r = client.post("/editor/capture/image", json={"content": "data:image/png;base64,AAAA"})
        assert r.status_code == 201
        assert r.json()["aspect_ratio"] == pytest.approx(2.0)

    def test_missing_image(self, client):
        r = client.post("/editor/capture/image", json={"content": ""})
        assert r.status_code == 400


class TestExport:
    def _placements(self, png_data_url):
        return [
            {"kind": "text", "content": "Jane Doe", "rotation_degrees": 10, "style": {"font_index": 1}},
            {"kind": "image", "content": png_data_url, "page_index": 1, "width_percent": 0.5, "height_percent": 0.2},
        ]

    def test_export_streams_pdf(self, client, pdf_bytes, png_data_url):
        r = client.post(
            "/editor/export",
            files=_pdf_file(pdf_bytes),
            data={"placements": json.dumps(self._placements(png_data_url))},
        )
        assert r.status_code == 200, r.text
        assert r.headers["content-type"] == "application/pdf"
        assert 'filename="contract-edited.pdf"' in r.headers["content-disposition"]
        assert r.content.startswith(b"%PDF")

    def test_no_placements(self, client, pdf_bytes):
        r = client.post("/editor/export", files=_pdf_file(pdf_bytes), data={"placements": "[]"})
        assert r.status_code == 422
        assert r.json()["detail"].startswith("EXPORT_FAILED")

    def test_invalid_placements_json(self, client, pdf_bytes):
        r = client.post("/editor/export", files=_pdf_file(pdf_bytes), data={"placements": "{not json"})
        assert r.status_code == 400

    def test_invalid_geometry(self, client, pdf_bytes):
        bad = [{"kind": "text", "content": "x", "x_percent": 1.5}]
        r = client.post("/editor/export", files=_pdf_file(pdf_bytes), data={"placements": json.dumps(bad)})
        assert r.status_code == 400

    def test_box_may_overflow_page(self, client, pdf_bytes):
        """Resize/stretch can push a box past the edge; export accepts it."""
        p = [{"kind": "text", "content": "Wide", "x_percent": 0.8, "width_percent": 0.6, "height_percent": 0.1}]
        r = client.post("/editor/export", files=_pdf_file(pdf_bytes), data={"placements": json.dumps(p)})
        assert r.status_code == 200, r.text

    def test_unknown_font_index(self, client, pdf_bytes):
        p = [{"kind": "text", "content": "x", "style": {"font_index": 99}}]
        r = client.post("/editor/export", files=_pdf_file(pdf_bytes), data={"placements": json.dumps(p)})
        assert r.status_code == 422
