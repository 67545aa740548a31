from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from PIL import Image


@dataclass(frozen=True)
class GlyphBounds:
    left: float
    right: float
    width: float
    height: float

    @classmethod
    def from_edges(cls, left: float, bottom: float, right: float, top: float) -> "GlyphBounds":
        return cls(left=left, right=right, width=right - left, height=abs(top - bottom))


@dataclass(frozen=True)
class Glyph:
    text: str
    font_family: str
    origin_x: float  # bottom-left origin, y up
    origin_y: float
    bounds: GlyphBounds


@dataclass(frozen=True)
class NormalizedGlyph:
    glyph: Glyph
    x: float  # top-left origin, y down
    y: float


@dataclass
class TextBlock:
    x_positions: list[float]
    y_positions: list[float]
    text: str
    font_family: str
    right_edge: float
    font_size: float
    baseline_offset: float = 0.0

    @property
    def glyph_count(self) -> int:
        return len(self.x_positions)


@dataclass(frozen=True)
class PageImage:
    scale: float
    width: int
    height: int
    data: bytes | None = None  # PNG; None when this scale failed
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class PageError:
    page_index: int
    stage: str  # glyphs|raster|page
    message: str
    scale: float | None = None


@dataclass(frozen=True)
class PagePayload:
    page_index: int  # 0-based
    page_width: float
    page_height: float
    markup: str
    blocks: tuple[TextBlock, ...] = ()
    images: tuple[PageImage, ...] = ()
    errors: tuple[PageError, ...] = field(default_factory=tuple)

    @property
    def page_id(self) -> str:
        return f"page_{self.page_index + 1:03d}"

    @property
    def ok(self) -> bool:
        return not self.errors and all(img.ok for img in self.images)


class PageHandle(Protocol):
    """Page abstraction supplied by the rendering engine."""

    @property
    def width(self) -> float: ...

    @property
    def height(self) -> float: ...

    def glyphs(self) -> Iterable[Glyph]: ...

    def render(self, width_px: int, height_px: int, *, transparent: bool = False) -> Image.Image: ...
