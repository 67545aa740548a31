from __future__ import annotations

from pathlib import Path
from typing import Callable

import fitz  # PyMuPDF
import pytest
from PIL import Image, ImageDraw

from pdf_textlayer.errors import EngineFailure
from pdf_textlayer.types import Glyph, GlyphBounds


def make_glyph(
    text: str,
    *,
    font: str = "Arial",
    x: float = 0.0,
    y: float = 780.0,
    left: float | None = None,
    width: float = 8.0,
    height: float = 12.0,
) -> Glyph:
    """Glyph in bottom-left space; bounds start at `left` (defaults to x)."""
    left = x if left is None else left
    return Glyph(
        text=text,
        font_family=font,
        origin_x=x,
        origin_y=y,
        bounds=GlyphBounds(left=left, right=left + width, width=width, height=height),
    )


class FakePage:
    """In-memory page handle: fixed glyphs, flat-colour renders with a dark box."""

    def __init__(
        self,
        glyphs: list[Glyph] | None = None,
        *,
        width: float = 600.0,
        height: float = 800.0,
        fail_glyphs: bool = False,
        fail_widths: set[int] | None = None,
        crash_widths: set[int] | None = None,
    ):
        self._glyphs = list(glyphs or [])
        self._width = width
        self._height = height
        self.fail_glyphs = fail_glyphs
        self.fail_widths = set(fail_widths or ())
        self.crash_widths = set(crash_widths or ())
        self.render_calls: list[tuple[int, int, bool]] = []

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    def glyphs(self) -> list[Glyph]:
        if self.fail_glyphs:
            raise EngineFailure("glyph extraction failed")
        return list(self._glyphs)

    def render(self, width_px: int, height_px: int, *, transparent: bool = False) -> Image.Image:
        self.render_calls.append((width_px, height_px, transparent))
        if width_px in self.fail_widths:
            raise EngineFailure(f"cannot render {width_px}x{height_px}")
        if width_px in self.crash_widths:
            raise MemoryError(f"out of memory at {width_px}x{height_px}")
        bg = (255, 255, 255, 0) if transparent else (255, 255, 255, 255)
        img = Image.new("RGBA", (width_px, height_px), bg)
        draw = ImageDraw.Draw(img)
        draw.rectangle([width_px // 2, height_px // 2, width_px // 2 + 2, height_px // 2 + 2], fill=(0, 0, 0, 255))
        return img


class BrokenPage(FakePage):
    """Page whose dimensions cannot even be read."""

    @property
    def width(self) -> float:
        raise RuntimeError("page handle is gone")


@pytest.fixture
def glyph() -> Callable[..., Glyph]:
    return make_glyph


@pytest.fixture
def fake_page() -> Callable[..., FakePage]:
    return FakePage


@pytest.fixture
def broken_page() -> Callable[..., FakePage]:
    return BrokenPage


@pytest.fixture
def hi_glyphs() -> list[Glyph]:
    """'H' then 'i' on a 600x800 page, adjacent, same font."""
    return [
        make_glyph("H", font="Arial", x=10, y=780, width=8, height=12),
        make_glyph("i", font="Arial", x=18, y=780, width=4, height=12),
    ]


@pytest.fixture
def pdf_bytes() -> bytes:
    """Two-page 600x800 PDF: 'Hi' on page 1, two separated words on page 2."""
    doc = fitz.open()
    p1 = doc.new_page(width=600, height=800)
    p1.insert_text((10, 20), "Hi", fontname="helv", fontsize=12)
    p2 = doc.new_page(width=600, height=800)
    p2.insert_text((10, 100), "left", fontname="helv", fontsize=12)
    p2.insert_text((400, 100), "right", fontname="cour", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_path(tmp_path: Path, pdf_bytes: bytes) -> Path:
    p = tmp_path / "sample.pdf"
    p.write_bytes(pdf_bytes)
    return p
