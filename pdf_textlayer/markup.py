from __future__ import annotations

import html
from typing import Any, Sequence

from .types import TextBlock

DEFAULT_FONT_STACK = "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif"
DEFAULT_FILL = "rgb(230, 179, 179)"


def fmt_num(v: float) -> str:
    """Deterministic short number form: 10 -> '10', 10.5 -> '10.5'."""
    s = f"{float(v):.3f}".rstrip("0").rstrip(".")
    return "0" if s in ("-0", "") else s


def _join(values: Sequence[float]) -> str:
    return " ".join(fmt_num(v) for v in values)


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def render_svg(
    page_width: float,
    page_height: float,
    blocks: Sequence[TextBlock],
    *,
    style: dict[str, Any] | None = None,
) -> str:
    """Serialize text blocks into a self-contained SVG text layer.

    Returns an empty string when there are no blocks. Text and attribute
    values are XML-escaped.
    """
    if not blocks:
        return ""

    style = style or {}
    font_stack = str(style.get("font_family", DEFAULT_FONT_STACK))
    fill = str(style.get("fill", DEFAULT_FILL))

    w = fmt_num(page_width)
    h = fmt_num(page_height)
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" viewBox="0 0 {w} {h}" '
        f'style="{_attr(f"font-family: {font_stack}; text-rendering: optimizeLegibility; shape-rendering: geometricPrecision")}">'
        "<title>text-layer</title>"
    ]
    for block in blocks:
        text_style = (
            f"font-size:{fmt_num(block.font_size)}pt; white-space: pre; text-rendering: geometricPrecision; "
            f"dominant-baseline: hanging; font-weight: 400; letter-spacing: -0.01em; fill: {fill};"
        )
        parts.append(
            f'<text style="{_attr(text_style)}">'
            f'<tspan x="{_join(block.x_positions)}" y="{_join(block.y_positions)}">'
            f"{html.escape(block.text, quote=False)}</tspan></text>"
        )
    parts.append("</svg>")
    return "".join(parts)
