"""
Tests for the font catalog, metrics and resolver.

Run with: pytest tests/test_fonts.py -v
"""
import asyncio

import httpx
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.errors import ExportError
from core.fonts import FONT_CATALOG, FontHandle, FontResolver, font_spec

from conftest import CountingFetch


class TestCatalog:
    def test_nine_fonts(self):
        assert len(FONT_CATALOG) == 9
        assert FONT_CATALOG[0].name == "Alex Brush"
        assert all(f.url.endswith(".ttf") for f in FONT_CATALOG)

    def test_out_of_range_index(self):
        """Unknown indices fail the export."""
        with pytest.raises(ExportError):
            font_spec(9)
        with pytest.raises(ExportError):
            font_spec(-1)


class TestFontHandle:
    """Metrics read with fontTools."""

    def test_width_sums_advances(self, ttf_bytes):
        """Two 500-unit glyphs at 24 pt on a 1000-unit em are 24 pt wide."""
        font = FontHandle("Test Script", ttf_bytes)
        assert font.width_of_text_at_size("Hi", 24) == pytest.approx(24.0)
        assert font.width_of_text_at_size("H i", 24) == pytest.approx(30.0)

    def test_height_is_ascent_minus_descent(self, ttf_bytes):
        """(800 - -200) / 1000 * size."""
        font = FontHandle("Test Script", ttf_bytes)
        assert font.height_at_size(24) == pytest.approx(24.0)
        assert font.height_at_size(10) == pytest.approx(10.0)

    def test_unmapped_char_uses_notdef(self, ttf_bytes):
        font = FontHandle("Test Script", ttf_bytes)
        assert font.width_of_text_at_size("é", 10) == pytest.approx(5.0)

    def test_garbage_bytes(self):
        with pytest.raises(ExportError):
            FontHandle("Broken", b"not a font at all")


class TestFontResolver:
    """Fetch once per font index, per export run."""

    def test_resolve_memoizes(self, font_resolver, font_fetch):
        """Same index twice -> one fetch."""
        async def run():
            a = await font_resolver.resolve(0)
            b = await font_resolver.resolve(0)
            c = await font_resolver.resolve(4)
            return a, b, c

        a, b, c = asyncio.run(run())
        assert a is b
        assert a is not c
        assert font_fetch.calls == [FONT_CATALOG[0].url, FONT_CATALOG[4].url]
        assert set(font_resolver.resolved) == {0, 4}
        assert a.name == "Alex Brush"

    def test_http_error_becomes_export_error(self):
        async def failing(url):
            raise httpx.ConnectError("offline")

        resolver = FontResolver(fetch=failing)
        with pytest.raises(ExportError):
            asyncio.run(resolver.resolve(1))
        assert resolver.resolved == {}

    def test_bad_font_bytes(self):
        resolver = FontResolver(fetch=CountingFetch(b"<html>not found</html>"))
        with pytest.raises(ExportError):
            asyncio.run(resolver.resolve(2))

    def test_unknown_index_is_not_fetched(self, font_fetch):
        resolver = FontResolver(fetch=font_fetch)
        with pytest.raises(ExportError):
            asyncio.run(resolver.resolve(42))
        assert font_fetch.calls == []

    def test_default_fetch_uses_httpx(self, ttf_bytes, monkeypatch):
        """Without a hook the resolver downloads with httpx (mocked transport)."""
        def handler(request):
            assert request.url == httpx.URL(FONT_CATALOG[3].url)
            return httpx.Response(200, content=ttf_bytes)

        real_client = httpx.AsyncClient

        def client_factory(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(handler)
            return real_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)
        font = asyncio.run(FontResolver(timeout=5).resolve(3))
        assert font.name == "Dancing Script"
        assert font.data == ttf_bytes

    def test_default_fetch_http_status(self, monkeypatch):
        """A 404 from the font host fails the export."""
        real_client = httpx.AsyncClient

        def client_factory(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(lambda request: httpx.Response(404))
            return real_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)
        with pytest.raises(ExportError):
            asyncio.run(FontResolver().resolve(0))
