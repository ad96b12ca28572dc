"""
Tests for the skip-directive filter.
"""

import pytest

from templatize.engine.changes import SkipSpan
from templatize.engine.errors import InvalidSkipDirectiveError
from templatize.engine.skip import check_straddle, find_skip_spans, is_skipped

START = "<!-- @template-skip -->"
END = "<!-- @template-skip-end -->"


class TestFindSkipSpans:

    def test_markup_span_covers_both_markers(self):
        content = f"a{START}b{END}c"
        spans = find_skip_spans(content, "markup")
        assert spans == [SkipSpan(1, len(content) - 1)]

    def test_code_end_marker_is_not_a_start(self):
        content = "x\n// @template-skip\ny\n// @template-skip-end\nz"
        spans = find_skip_spans(content, "code")
        assert len(spans) == 1
        assert content[spans[0].start:spans[0].end].endswith("// @template-skip-end")

    def test_hash_family(self):
        content = "# @template-skip\nname: x\n# @template-skip-end\n"
        assert len(find_skip_spans(content, "hash")) == 1

    def test_several_spans_in_order(self):
        content = f"{START}1{END} 2 {START}3{END}"
        spans = find_skip_spans(content, "markup")
        assert [s.start for s in spans] == [0, content.rindex(START)]

    def test_no_markers(self):
        assert find_skip_spans("plain", "code") == []

    def test_nested_markers_fail(self):
        with pytest.raises(InvalidSkipDirectiveError, match="Nested"):
            find_skip_spans(f"{START}{START}x{END}{END}", "markup")

    def test_unterminated_marker_fails(self):
        with pytest.raises(InvalidSkipDirectiveError, match="Unterminated"):
            find_skip_spans("// @template-skip\nrest", "code", "a.json")

    def test_end_without_start_fails(self):
        with pytest.raises(InvalidSkipDirectiveError, match="without a start"):
            find_skip_spans(f"x{END}", "markup")

    def test_unknown_family(self):
        with pytest.raises(ValueError):
            find_skip_spans("x", "semicolon")


class TestFiltering:

    def test_is_skipped_partial_overlap(self):
        spans = [SkipSpan(10, 20)]
        assert is_skipped(spans, 15, 25)
        assert is_skipped(spans, 5, 11)
        assert not is_skipped(spans, 20, 30)
        assert not is_skipped(spans, 0, 10)

    def test_straddling_span_is_rejected(self):
        with pytest.raises(InvalidSkipDirectiveError):
            check_straddle([SkipSpan(5, 15)], [(0, 10), (12, 20)])

    def test_enclosed_span_is_accepted(self):
        check_straddle([SkipSpan(5, 15)], [(0, 30), (6, 8)])
