"""Tests for QR symbol rendering."""

import io

import pytest
from PIL import Image

from qrbackup.errors import CapacityError
from qrbackup.levels import LEVELS, select_level
from qrbackup.renderer import QRSymbolEncoder, build_matrix, render_png, render_svg
from qrbackup.splitter import split_file
from qrbackup.transport import Base32Transcoder


class TestBuildMatrix:
    def test_version_1_with_quiet_zone(self):
        matrix = build_matrix("LSQRBT")
        assert len(matrix) == 29
        assert all(len(row) == 29 for row in matrix)

    def test_quiet_zone_is_light(self):
        matrix = build_matrix("LSQRBT")
        assert not any(matrix[0])
        assert not any(row[0] for row in matrix)

    def test_higher_level_needs_more_modules(self):
        payload = "LSQRBT" * 40
        low = build_matrix(payload, select_level("L"))
        high = build_matrix(payload, select_level("H"))
        assert len(high) > len(low)

    def test_overflow_raises_capacity_error(self):
        with pytest.raises(CapacityError, match="does not fit"):
            build_matrix("A" * 5000, select_level("L"))

    @pytest.mark.parametrize("level", LEVELS, ids=lambda level: level.name)
    def test_budget_sized_frame_fits_its_level(self, level):
        frames = split_file(bytes(range(256)) * 20, "archive.tar.gz", level.budget)
        payload = Base32Transcoder().encode(frames[0].encode())
        matrix = build_matrix(payload, level)
        # version 40 is 177 modules plus the quiet zone on both sides
        assert len(matrix) <= 185


class TestRenderSVG:
    def test_produces_valid_svg(self):
        svg = render_svg(build_matrix("LSQRBT"))
        assert svg.startswith("<svg")
        assert svg.endswith("</svg>")
        assert "xmlns" in svg

    def test_size_without_caption(self):
        svg = render_svg(build_matrix("LSQRBT"), module_size=10)
        assert 'width="290"' in svg
        assert 'height="290"' in svg
        assert "caption" not in svg

    def test_caption_band_adds_height(self):
        svg = render_svg(build_matrix("LSQRBT"), " a.txt (1 / 2)", module_size=10, caption_height=50)
        assert 'width="290"' in svg
        assert 'height="340"' in svg
        assert "a.txt (1 / 2)" in svg

    def test_caption_is_escaped(self):
        svg = render_svg(build_matrix("LSQRBT"), "<b>&co</b>")
        assert "&lt;b&gt;&amp;co&lt;/b&gt;" in svg
        assert "<b>" not in svg

    def test_contains_dark_modules(self):
        svg = render_svg(build_matrix("LSQRBT"))
        assert 'fill="black"' in svg


class TestRenderPNG:
    def test_produces_png(self):
        png_bytes = render_png(build_matrix("LSQRBT"))
        assert png_bytes[:4] == b"\x89PNG"

    def test_respects_size(self):
        png_bytes = render_png(build_matrix("LSQRBT"), "title", module_size=4, caption_height=20)
        with Image.open(io.BytesIO(png_bytes)) as img:
            assert img.size == (29 * 4, 29 * 4 + 20)


class TestQRSymbolEncoder:
    def test_render_png(self):
        encoder = QRSymbolEncoder(select_level("M"), module_size=2, caption_height=10)
        assert encoder.render("LSQRBTAAAA", " x (1 / 1)")[:4] == b"\x89PNG"

    def test_render_svg(self):
        encoder = QRSymbolEncoder(module_size=2)
        svg = encoder.render_svg("LSQRBTAAAA", "caption")
        assert "caption" in svg
