"""PDF text-layer engine.

Turns a page's glyph stream into positioned SVG text blocks for a
selectable overlay, and renders each page to PNG at several scales.
"""

from __future__ import annotations

from .pipeline import process_document, reconstruct_page
from .raster import rasterize_page

__all__ = ["__version__", "process_document", "rasterize_page", "reconstruct_page"]

__version__ = "0.1.0"
