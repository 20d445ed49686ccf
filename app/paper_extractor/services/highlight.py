"""
Snippet-to-location reconciliation.

Locates extracted snippets in the transcription for highlighting and maps
normalized (0-1000) bounding boxes onto rendered page pixels. A snippet
that cannot be located is not an error: callers get None and show nothing.
"""

import re

from pydantic import BaseModel, Field

# Bounding boxes are expressed on a fixed 0-1000 scale in both axes.
NORMALIZED_SCALE = 1000


class SnippetMatch(BaseModel):
    """Position of a snippet inside the transcription text."""

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    text: str = Field(..., description="The matched text, in the document's casing")


class NormalizedBoundingBox(BaseModel):
    """A rectangle on a page expressed on the 0-1000 scale."""

    x: float = Field(..., ge=0, le=NORMALIZED_SCALE)
    y: float = Field(..., ge=0, le=NORMALIZED_SCALE)
    width: float = Field(..., ge=0, le=NORMALIZED_SCALE)
    height: float = Field(..., ge=0, le=NORMALIZED_SCALE)


class PixelBox(BaseModel):
    """A rectangle in rendered page pixels."""

    x: float
    y: float
    width: float
    height: float


def find_snippet(text: str, snippet: str | None) -> SnippetMatch | None:
    """
    Find the first case-insensitive exact occurrence of ``snippet``.

    Returns:
        The match position, or None when the snippet is empty or absent.
    """
    if not text or not snippet:
        return None
    match = re.search(re.escape(snippet), text, re.IGNORECASE)
    if match is None:
        return None
    return SnippetMatch(start=match.start(), end=match.end(), text=match.group(0))


def is_grounded(text: str, snippet: str | None) -> bool:
    """Whether the snippet occurs in the text (ignoring case)."""
    return find_snippet(text, snippet) is not None


def highlight_segments(text: str, snippet: str | None) -> list[tuple[str, bool]]:
    """
    Split ``text`` into runs, flagging every case-insensitive snippet match.

    Joining the segments reproduces ``text`` exactly. Without a snippet
    (or without a match) the whole text is a single unflagged run.
    """
    if not text:
        return []
    if not snippet:
        return [(text, False)]

    segments: list[tuple[str, bool]] = []
    position = 0
    for match in re.finditer(re.escape(snippet), text, re.IGNORECASE):
        if match.start() > position:
            segments.append((text[position:match.start()], False))
        segments.append((match.group(0), True))
        position = match.end()
    if position < len(text):
        segments.append((text[position:], False))
    return segments


def to_pixels(box: NormalizedBoundingBox, image_width: float, image_height: float) -> PixelBox:
    """Scale a normalized box to the actual pixel size of a rendered page."""
    return PixelBox(
        x=box.x / NORMALIZED_SCALE * image_width,
        y=box.y / NORMALIZED_SCALE * image_height,
        width=box.width / NORMALIZED_SCALE * image_width,
        height=box.height / NORMALIZED_SCALE * image_height,
    )


def page_offsets(page_heights: list[float]) -> dict[int, float]:
    """
    Vertical offset of each page when pages are stacked top to bottom.

    Args:
        page_heights: Rendered height of each page, page 1 first.

    Returns:
        Mapping of 1-indexed page number to its Y offset.
    """
    offsets: dict[int, float] = {}
    total = 0.0
    for page_number, height in enumerate(page_heights, start=1):
        offsets[page_number] = total
        total += height or 0
    return offsets
