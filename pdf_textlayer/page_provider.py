from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

import fitz  # PyMuPDF
from PIL import Image

from .errors import EngineFailure
from .types import Glyph, GlyphBounds

logger = logging.getLogger(__name__)


@dataclass
class PdfPage:
    """PyMuPDF page exposed through the engine boundary.

    Glyphs are reported in PDF user space (bottom-left origin). Every call
    into MuPDF holds the owning document's lock; the page size is read once,
    under that lock, when the page is loaded.
    """

    page: Any  # fitz.Page
    page_index: int
    width: float
    height: float
    lock: threading.Lock = field(default_factory=threading.Lock)

    def glyphs(self) -> list[Glyph]:
        with self.lock:
            try:
                raw = self.page.get_text("rawdict")
            except Exception as e:
                raise EngineFailure(f"glyph extraction failed on page {self.page_index}: {e}") from e

        page_height = self.height
        out: list[Glyph] = []
        for blk in raw.get("blocks", []):
            if blk.get("type") != 0:
                continue
            for line in blk.get("lines", []):
                for span in line.get("spans", []):
                    font = span.get("font", "")
                    for ch in span.get("chars", []):
                        x0, y0, x1, y1 = ch["bbox"]
                        ox, oy = ch["origin"]
                        out.append(
                            Glyph(
                                text=ch.get("c", ""),
                                font_family=font,
                                origin_x=float(ox),
                                origin_y=page_height - float(oy),
                                bounds=GlyphBounds.from_edges(
                                    float(x0), page_height - float(y1), float(x1), page_height - float(y0)
                                ),
                            )
                        )
        return out

    def _pixmap_image(self, width_px: int, height_px: int, transparent: bool) -> Image.Image:
        matrix = fitz.Matrix(width_px / self.width, height_px / self.height)
        with self.lock:
            pix = self.page.get_pixmap(matrix=matrix, alpha=transparent)
            try:
                size = (pix.width, pix.height)
                if pix.alpha:
                    # MuPDF samples are premultiplied.
                    return Image.frombytes("RGBA", size, pix.samples, "raw", "RGBa")
                return Image.frombytes("RGB", size, pix.samples)
            finally:
                pix = None

    def render(self, width_px: int, height_px: int, *, transparent: bool = False) -> Image.Image:
        """Rasterize to exactly width_px x height_px (RGBA when transparent)."""
        try:
            img = self._pixmap_image(width_px, height_px, transparent)
            if img.size != (width_px, height_px):
                # MuPDF rounds the pixmap rect outward; snap back to the target.
                img = img.resize((width_px, height_px), Image.Resampling.LANCZOS)
        except Exception as e:
            raise EngineFailure(
                f"render failed on page {self.page_index} at {width_px}x{height_px}: {e}"
            ) from e
        return img


class PageProvider:
    """Open a PDF (path or bytes) and hand out its pages in document order.

    Usage:
        with PageProvider("doc.pdf") as provider:
            for page in provider.iter_pages():
                ...
    """

    def __init__(self, source: str | Path | bytes):
        self.source = source
        self._doc: Any | None = None
        self._lock = threading.Lock()

    def open(self) -> "PageProvider":
        try:
            if isinstance(self.source, (bytes, bytearray)):
                doc = fitz.open(stream=bytes(self.source), filetype="pdf")
            else:
                doc = fitz.open(Path(self.source))
        except Exception as e:
            raise EngineFailure(f"cannot open pdf: {e}") from e

        if doc.needs_pass:
            doc.close()
            raise EngineFailure("pdf is encrypted")
        self._doc = doc
        logger.debug("opened pdf with %d pages", doc.page_count)
        return self

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None

    def __enter__(self) -> "PageProvider":
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        if self._doc is None:
            raise RuntimeError("PageProvider is not open")
        return int(self._doc.page_count)

    def get_page(self, page_index: int) -> PdfPage:
        if not 0 <= page_index < self.page_count:
            raise IndexError(f"page {page_index} out of range (0..{self.page_count - 1})")
        with self._lock:
            try:
                page = self._doc.load_page(page_index)
                rect = page.rect
            except Exception as e:
                raise EngineFailure(f"cannot load page {page_index}: {e}") from e
            return PdfPage(
                page=page,
                page_index=page_index,
                width=float(rect.width),
                height=float(rect.height),
                lock=self._lock,
            )

    def iter_pages(self) -> Iterator[PdfPage]:
        for i in range(self.page_count):
            yield self.get_page(i)
