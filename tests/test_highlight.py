"""Tests for snippet location and bounding-box scaling."""

import pytest
from pydantic import ValidationError

from app.paper_extractor.services.highlight import (
    NormalizedBoundingBox,
    find_snippet,
    highlight_segments,
    is_grounded,
    page_offsets,
    to_pixels,
)

TRANSCRIPTION = "# ACME Corp\n\nInvoice No: 12345\nTotal due: $10.00\nInvoice no: 67890"


class TestFindSnippet:
    """Tests for find_snippet()."""

    def test_first_case_insensitive_match(self):
        match = find_snippet(TRANSCRIPTION, "INVOICE NO:")
        assert match is not None
        assert TRANSCRIPTION[match.start:match.end] == "Invoice No:"
        assert match.text == "Invoice No:"

    @pytest.mark.parametrize("snippet", ["", None, "Purchase order"])
    def test_no_match(self, snippet):
        assert find_snippet(TRANSCRIPTION, snippet) is None

    def test_regex_characters_are_literal(self):
        assert find_snippet(TRANSCRIPTION, "$10.00") is not None
        assert find_snippet("Total (USD)", "(USD)") is not None

    def test_is_grounded(self):
        assert is_grounded(TRANSCRIPTION, "total due") is True
        assert is_grounded(TRANSCRIPTION, "grand total") is False


class TestHighlightSegments:
    """Tests for highlight_segments()."""

    def test_segments_reproduce_text(self):
        segments = highlight_segments(TRANSCRIPTION, "invoice no")
        assert "".join(text for text, _ in segments) == TRANSCRIPTION

    def test_every_occurrence_flagged(self):
        segments = highlight_segments(TRANSCRIPTION, "invoice no")
        assert [text for text, flagged in segments if flagged] == ["Invoice No", "Invoice no"]

    def test_no_snippet_is_single_plain_run(self):
        assert highlight_segments("abc", None) == [("abc", False)]
        assert highlight_segments("abc", "zzz") == [("abc", False)]

    def test_empty_text(self):
        assert highlight_segments("", "abc") == []


class TestBoundingBoxes:
    """Tests for 0-1000 box scaling."""

    def test_to_pixels(self):
        box = NormalizedBoundingBox(x=100, y=250, width=500, height=100)
        pixels = to_pixels(box, image_width=1224, image_height=1584)
        assert pixels.x == pytest.approx(122.4)
        assert pixels.y == pytest.approx(396.0)
        assert pixels.width == pytest.approx(612.0)
        assert pixels.height == pytest.approx(158.4)

    def test_full_page_box(self):
        box = NormalizedBoundingBox(x=0, y=0, width=1000, height=1000)
        pixels = to_pixels(box, image_width=800, image_height=600)
        assert (pixels.width, pixels.height) == (800, 600)

    @pytest.mark.parametrize("field", ["x", "y", "width", "height"])
    def test_out_of_range_rejected(self, field):
        values = {"x": 0, "y": 0, "width": 10, "height": 10}
        values[field] = 1001
        with pytest.raises(ValidationError):
            NormalizedBoundingBox(**values)

    def test_page_offsets(self):
        assert page_offsets([1584, 1584, 800]) == {1: 0.0, 2: 1584.0, 3: 3168.0}
        assert page_offsets([]) == {}
