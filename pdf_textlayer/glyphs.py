from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator

from .types import Glyph, NormalizedGlyph

logger = logging.getLogger(__name__)

# C0 controls except TAB, plus DEL and line breaks.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F\r\n]")


def is_control_text(text: str) -> bool:
    return bool(_CONTROL_RE.search(text))


def normalize_y(origin_y: float, page_height: float) -> float:
    """Flip a bottom-left origin y into top-left (raster) space."""
    return page_height - origin_y


def normalize_glyph(glyph: Glyph, page_height: float) -> NormalizedGlyph:
    return NormalizedGlyph(glyph=glyph, x=glyph.origin_x, y=normalize_y(glyph.origin_y, page_height))


def accept_glyph(glyph: Glyph, page_height: float) -> bool:
    """Return True when the glyph can contribute to a visible text block.

    Rejects negative x origins, origins above the page after the y flip,
    control/line-break characters and zero-height glyphs.
    """
    if glyph.origin_x < 0:
        return False
    if normalize_y(glyph.origin_y, page_height) < 0:
        return False
    if is_control_text(glyph.text):
        return False
    if glyph.bounds.height == 0:
        return False
    return True


def iter_visible_glyphs(glyphs: Iterable[Glyph], page_height: float) -> Iterator[NormalizedGlyph]:
    """Normalize and filter a page's glyph stream, preserving order."""
    rejected = 0
    for glyph in glyphs:
        if not accept_glyph(glyph, page_height):
            rejected += 1
            continue
        yield normalize_glyph(glyph, page_height)
    if rejected:
        logger.debug("filtered %d glyphs", rejected)
