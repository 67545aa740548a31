"""Tests for the single-pass glyph clustering."""
from __future__ import annotations

import random

import pytest

from pdf_textlayer.clustering import (
    BASELINE_RUNNING_MAX,
    DEFAULT_GAP_TOLERANCE,
    cluster_glyphs,
    joins_block,
    open_block,
    step,
)
from pdf_textlayer.glyphs import accept_glyph, iter_visible_glyphs, normalize_glyph

PAGE_H = 800.0


def _norm(glyphs):
    return [normalize_glyph(g, PAGE_H) for g in glyphs]


# ═══════════════════════════════════════════════════════════════════════════════
# SCENARIOS
# ═══════════════════════════════════════════════════════════════════════════════

class TestScenarios:

    def test_adjacent_same_font_merge(self, hi_glyphs):
        blocks = cluster_glyphs(_norm(hi_glyphs))
        assert len(blocks) == 1
        b = blocks[0]
        assert b.text == "Hi"
        assert b.x_positions == [10, 18]
        assert len(b.y_positions) == 2
        assert b.font_family == "Arial"
        assert b.right_edge == 22
        assert b.font_size == 12

    def test_font_change_splits(self, glyph):
        glyphs = [
            glyph("H", font="Arial", x=10, width=8),
            glyph("i", font="Times", x=18, width=4),
        ]
        blocks = cluster_glyphs(_norm(glyphs))
        assert [b.text for b in blocks] == ["H", "i"]
        assert all(b.glyph_count == 1 for b in blocks)

    def test_negative_origin_contributes_nothing(self, glyph):
        glyphs = [glyph("x", x=-1), glyph("y", x=100)]
        blocks = cluster_glyphs(iter_visible_glyphs(glyphs, PAGE_H))
        assert [b.text for b in blocks] == ["y"]

    def test_empty_stream(self):
        assert cluster_glyphs([]) == []


# ═══════════════════════════════════════════════════════════════════════════════
# PROXIMITY RULE
# ═══════════════════════════════════════════════════════════════════════════════

class TestProximity:
    """Previous right edge is 18; next glyph width 4 -> threshold 4 + 5 = 9."""

    def _pair(self, glyph, left):
        first = glyph("a", x=10, left=10, width=8)
        second = glyph("b", x=left, left=left, width=4)
        return cluster_glyphs(_norm([first, second]))

    def test_exactly_at_threshold_merges(self, glyph):
        assert len(self._pair(glyph, 18 + 9.0)) == 1

    def test_just_past_threshold_splits(self, glyph):
        assert len(self._pair(glyph, 18 + 9.0 + 1e-3)) == 2

    def test_gap_is_absolute(self, glyph):
        """Overlap to the left is measured the same way as a gap to the right."""
        assert len(self._pair(glyph, 18 - 9.0)) == 1
        assert len(self._pair(glyph, 18 - 9.5)) == 2

    def test_custom_tolerance(self, glyph):
        first = glyph("a", x=10, left=10, width=8)
        second = glyph("b", x=40, left=40, width=4)
        assert len(cluster_glyphs(_norm([first, second]))) == 2
        assert len(cluster_glyphs(_norm([first, second]), gap_tolerance=20.0)) == 1

    def test_default_tolerance(self):
        assert DEFAULT_GAP_TOLERANCE == 5.0

    def test_drift_against_previous_member(self, glyph):
        """Long runs keep growing as long as each consecutive gap is small."""
        glyphs = [glyph(c, x=10 + 10 * i, width=8) for i, c in enumerate("abcdefghijklmnop")]
        blocks = cluster_glyphs(_norm(glyphs))
        assert len(blocks) == 1
        assert blocks[0].text == "abcdefghijklmnop"
        assert blocks[0].x_positions[-1] - blocks[0].x_positions[0] == 150

    def test_joins_block_respects_font(self, glyph):
        block = open_block(normalize_glyph(glyph("a", x=10), PAGE_H))
        assert joins_block(block, normalize_glyph(glyph("b", x=18), PAGE_H))
        assert not joins_block(block, normalize_glyph(glyph("b", font="Other", x=18), PAGE_H))


# ═══════════════════════════════════════════════════════════════════════════════
# FOLD / ACCUMULATOR
# ═══════════════════════════════════════════════════════════════════════════════

class TestFold:

    def test_step_opens_then_extends_then_closes(self, glyph):
        a, b, c = _norm([glyph("a", x=10), glyph("b", x=18), glyph("c", x=300)])

        closed, current = step(None, a)
        assert closed is None and current.text == "a"

        closed, current = step(current, b)
        assert closed is None and current.text == "ab"

        closed, current = step(current, c)
        assert closed.text == "ab"
        assert current.text == "c"

    def test_font_size_is_running_max(self, glyph):
        glyphs = [glyph("a", x=10, height=10), glyph("B", x=18, height=14), glyph("c", x=26, height=9)]
        blocks = cluster_glyphs(_norm(glyphs))
        assert blocks[0].font_size == 14


# ═══════════════════════════════════════════════════════════════════════════════
# VERTICAL OFFSETS
# ═══════════════════════════════════════════════════════════════════════════════

class TestBaseline:

    def _mixed(self, glyph):
        # Normalized y is 20 for all three.
        return _norm([glyph("a", x=10, height=10), glyph("B", x=18, height=14), glyph("c", x=26, height=9)])

    def test_first_glyph_subtracts_own_height(self, glyph):
        blocks = cluster_glyphs(_norm([glyph("a", x=10, y=780, height=12)]))
        assert blocks[0].y_positions == [8.0]

    def test_block_open_offset_is_fixed(self, glyph):
        blocks = cluster_glyphs(self._mixed(glyph))
        assert blocks[0].y_positions == [10.0, 10.0, 10.0]

    def test_running_max_offset(self, glyph):
        blocks = cluster_glyphs(self._mixed(glyph), baseline_mode=BASELINE_RUNNING_MAX)
        # 'B' sees font_size 10, 'c' sees 14 after 'B' grew it.
        assert blocks[0].y_positions == [10.0, 10.0, 6.0]

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            cluster_glyphs([], baseline_mode="median")


# ═══════════════════════════════════════════════════════════════════════════════
# INVARIANTS
# ═══════════════════════════════════════════════════════════════════════════════

class TestInvariants:

    def test_every_accepted_glyph_once_in_order(self, glyph):
        rng = random.Random(7)
        stream = []
        x = 0.0
        for i in range(400):
            x += rng.choice([4.0, 8.0, 12.0, 40.0, -200.0])
            stream.append(
                glyph(
                    rng.choice("abcXYZ\n\x01 "),
                    font=rng.choice(["Arial", "Arial", "Times"]),
                    x=x,
                    y=rng.choice([780.0, 500.0, 900.0]),
                    width=rng.choice([4.0, 8.0]),
                    height=rng.choice([0.0, 10.0, 12.0]),
                )
            )
        accepted = [g for g in stream if accept_glyph(g, PAGE_H)]
        blocks = cluster_glyphs(iter_visible_glyphs(stream, PAGE_H))

        assert len(blocks) <= len(accepted)
        assert "".join(b.text for b in blocks) == "".join(g.text for g in accepted)
        assert [x for b in blocks for x in b.x_positions] == [g.origin_x for g in accepted]
        for b in blocks:
            assert len(b.x_positions) == len(b.y_positions) == b.glyph_count

        # Consecutive accepted glyphs with different fonts never share a block.
        idx = 0
        for b in blocks:
            members = accepted[idx:idx + b.glyph_count]
            assert {g.font_family for g in members} == {b.font_family}
            idx += b.glyph_count
        assert idx == len(accepted)
