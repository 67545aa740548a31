from __future__ import annotations

from typing import Iterable

from .types import NormalizedGlyph, TextBlock

DEFAULT_GAP_TOLERANCE = 5.0

BASELINE_BLOCK_OPEN = "block_open"
BASELINE_RUNNING_MAX = "running_max"
BASELINE_MODES = (BASELINE_BLOCK_OPEN, BASELINE_RUNNING_MAX)


def open_block(ng: NormalizedGlyph) -> TextBlock:
    b = ng.glyph.bounds
    return TextBlock(
        x_positions=[ng.x],
        y_positions=[ng.y - b.height],
        text=ng.glyph.text,
        font_family=ng.glyph.font_family,
        right_edge=b.right,
        font_size=b.height,
        baseline_offset=b.height,
    )


def joins_block(block: TextBlock, ng: NormalizedGlyph, gap_tolerance: float = DEFAULT_GAP_TOLERANCE) -> bool:
    """Same font family and close enough to the previous member's right edge."""
    if ng.glyph.font_family != block.font_family:
        return False
    gap = abs(ng.glyph.bounds.left - block.right_edge)
    return gap <= ng.glyph.bounds.width + gap_tolerance


def _extend(block: TextBlock, ng: NormalizedGlyph, baseline_mode: str) -> None:
    b = ng.glyph.bounds
    offset = block.font_size if baseline_mode == BASELINE_RUNNING_MAX else block.baseline_offset
    block.x_positions.append(ng.x)
    block.y_positions.append(ng.y - offset)
    block.text += ng.glyph.text
    block.right_edge = b.right
    block.font_size = max(block.font_size, b.height)


def step(
    current: TextBlock | None,
    ng: NormalizedGlyph,
    *,
    gap_tolerance: float = DEFAULT_GAP_TOLERANCE,
    baseline_mode: str = BASELINE_BLOCK_OPEN,
) -> tuple[TextBlock | None, TextBlock]:
    """Feed one glyph to the open block.

    Returns (closed, open): `closed` is the block finished by this glyph,
    if any; `open` is the accumulator to carry into the next step.
    """
    if current is None:
        return None, open_block(ng)
    if not joins_block(current, ng, gap_tolerance):
        return current, open_block(ng)
    _extend(current, ng, baseline_mode)
    return None, current


def cluster_glyphs(
    glyphs: Iterable[NormalizedGlyph],
    *,
    gap_tolerance: float = DEFAULT_GAP_TOLERANCE,
    baseline_mode: str = BASELINE_BLOCK_OPEN,
) -> list[TextBlock]:
    """Group a normalized, filtered glyph stream into text blocks in one pass.

    A glyph extends the open block when it shares the block's font family
    and its left edge lies within `width + gap_tolerance` of the previous
    member's right edge. Anything else closes the block and opens a new one.

    baseline_mode:
    - block_open: every member's y is offset by the opening glyph's height.
    - running_max: joining glyphs are offset by the block's font size so far.
    """
    if baseline_mode not in BASELINE_MODES:
        raise ValueError(f"Unknown baseline_mode: {baseline_mode}")

    blocks: list[TextBlock] = []
    current: TextBlock | None = None
    for ng in glyphs:
        closed, current = step(current, ng, gap_tolerance=gap_tolerance, baseline_mode=baseline_mode)
        if closed is not None:
            blocks.append(closed)
    if current is not None:
        blocks.append(current)
    return blocks
