"""Tests for byte-budgeted segmentation."""
from __future__ import annotations

import re

import pytest

from tutor_tts.tts.chunker import join_segments, segment_text
from tutor_tts.tts.sanitizer import utf8_len

_WS = re.compile(r"\s+")

CJK = "这是第一句。这是第二句，包含一个很长的列举项：苹果、香蕉、橙子、葡萄、西瓜、草莓。第三句！第四句？"
ASCII = "This is the first sentence. Here comes another one, with a clause; and more! Is it done? Yes."
MIXED = "我们学习 fractions 和 decimals。Let's count: 一、二、三! 最后一句，谢谢。"


def _squash(text: str) -> str:
    return _WS.sub("", text)


class TestBudgetProperty:
    """Every chunk fits the budget and nothing is lost."""

    @pytest.mark.parametrize("text", [CJK, ASCII, MIXED])
    @pytest.mark.parametrize("budget", [4, 9, 12, 30, 60, 100, 800])
    def test_chunks_within_budget(self, text, budget):
        cr = segment_text(text, budget)
        assert cr.chunks
        assert all(utf8_len(c) <= budget for c in cr.chunks)
        assert all(c.strip() == c and c for c in cr.chunks)

    @pytest.mark.parametrize("text", [CJK, ASCII, MIXED])
    @pytest.mark.parametrize("budget", [4, 12, 60, 800])
    def test_concatenation_is_lossless(self, text, budget):
        cr = segment_text(text, budget)
        assert _squash("".join(cr.chunks)) == _squash(text)

    def test_byte_sizes_property(self):
        cr = segment_text(CJK, 30)
        assert cr.byte_sizes == [utf8_len(c) for c in cr.chunks]


class TestSegmentation:

    def test_empty_and_blank(self):
        assert segment_text("").chunks == []
        assert segment_text("   \n  ").chunks == []

    def test_short_text_single_chunk(self):
        assert segment_text("你好。今天学习分数。").chunks == ["你好。今天学习分数。"]

    def test_sentences_packed_greedily(self):
        cr = segment_text("一。二。三。四。", max_bytes=12)
        assert cr.chunks == ["一。二。", "三。四。"]

    def test_clause_fallback(self):
        cr = segment_text("第一句。第二句，很长。", max_bytes=12)
        assert cr.chunks == ["第一句。", "第二句，", "很长。"]

    def test_character_fallback(self):
        cr = segment_text("一二三四五六七", max_bytes=6)
        assert cr.chunks == ["一二", "三四", "五六", "七"]

    def test_never_splits_inside_character(self):
        cr = segment_text("😀😀😀", max_bytes=5)
        assert cr.chunks == ["😀", "😀", "😀"]

    def test_oversized_single_character_emitted_alone(self):
        cr = segment_text("你好", max_bytes=2)
        assert cr.chunks == ["你", "好"]

    def test_decimal_point_not_a_terminator(self):
        cr = segment_text("Pi is 3.14 roughly. Next.", max_bytes=20)
        assert cr.chunks[0] == "Pi is 3.14 roughly."

    def test_newline_is_terminator(self):
        cr = segment_text("第一行\n第二行", max_bytes=10)
        assert cr.chunks == ["第一行", "第二行"]

    def test_timing_recorded(self):
        cr = segment_text(CJK, 30)
        assert isinstance(cr.timings_s.get("segment"), float)

    @pytest.mark.parametrize("budget", [0, -1, 1.5, True, "800"])
    def test_invalid_budget(self, budget):
        with pytest.raises(ValueError):
            segment_text("你好", budget)


class TestEndToEnd:

    def test_long_enumeration_at_100_bytes(self):
        text = "这是第一句。这是第二句，包含一个很长的列举项，" + "a" * 300 + "。第三句。"
        cr = segment_text(text, max_bytes=100)

        assert len(cr.chunks) >= 3
        assert all(utf8_len(c) <= 100 for c in cr.chunks)
        joined = "".join(cr.chunks)
        assert joined.index("这是第一句") < joined.index("这是第二句") < joined.index("aaa") < joined.index("第三句")
        assert _squash(joined) == _squash(text)


class TestJoinSegments:

    def test_adds_terminators(self):
        assert join_segments(["第一句", "第二句"]) == "第一句。第二句。"

    def test_keeps_existing_terminators(self):
        assert join_segments(["第一句！", "第二句？"]) == "第一句！第二句？"

    def test_empty(self):
        assert join_segments([]) == ""
        assert join_segments(["", ""]) == ""

    def test_custom_terminator(self):
        assert join_segments(["one", "two"], terminator=".") == "one.two."
