from __future__ import annotations

import logging
from io import BytesIO
from typing import Iterable, Sequence

from PIL import Image

from .errors import EncodingFailure, EngineFailure
from .types import PageHandle, PageImage

logger = logging.getLogger(__name__)

DEFAULT_SCALES: tuple[float, ...] = (0.25, 0.5, 1.0, 1.5, 2.0)


def normalize_scales(scales: Iterable[float]) -> tuple[float, ...]:
    values = [float(s) for s in scales]
    out = sorted(set(values))
    if not out or out[0] <= 0:
        raise ValueError(f"scales must be positive: {values}")
    return tuple(out)


def target_size(page_width: float, page_height: float, scale: float) -> tuple[int, int]:
    """Pixel size for a scale, truncated toward zero, never below 1x1."""
    return max(1, int(page_width * scale)), max(1, int(page_height * scale))


def encode_png(image: Image.Image, *, transparent: bool) -> bytes:
    try:
        mode = "RGBA" if transparent else "RGB"
        if image.mode != mode:
            image = image.convert(mode)
        buf = BytesIO()
        image.save(buf, format="PNG")
        return buf.getvalue()
    except Exception as e:
        raise EncodingFailure(f"png encode failed: {e}") from e


def render_scale(
    page: PageHandle,
    page_width: float,
    page_height: float,
    scale: float,
    *,
    transparent: bool = False,
) -> PageImage:
    """Render and encode one scale. Failures come back on the PageImage."""
    w, h = target_size(page_width, page_height, scale)
    try:
        image = page.render(w, h, transparent=transparent)
        try:
            data = encode_png(image, transparent=transparent)
        finally:
            image.close()
    except (EngineFailure, EncodingFailure) as e:
        logger.warning("raster failed at scale %s (%dx%d): %s", scale, w, h, e)
        return PageImage(scale=scale, width=w, height=h, data=None, error=f"{type(e).__name__}: {e}")
    except Exception as e:
        # fail-soft: an unexpected error still only costs this one scale
        logger.exception("raster crashed at scale %s (%dx%d)", scale, w, h)
        return PageImage(scale=scale, width=w, height=h, data=None, error=f"{type(e).__name__}: {e}")
    return PageImage(scale=scale, width=w, height=h, data=data)


def rasterize_page(
    page: PageHandle,
    page_width: float,
    page_height: float,
    transparent: bool = False,
    *,
    scales: Sequence[float] = DEFAULT_SCALES,
) -> list[PageImage]:
    """Render a page once per scale, ascending.

    Every scale is attempted; one failing scale does not drop the others.
    """
    return [
        render_scale(page, page_width, page_height, scale, transparent=transparent)
        for scale in normalize_scales(scales)
    ]
