# creditscan/features/context.py

from __future__ import annotations

import re

from bisect import bisect_left
from dataclasses import dataclass
from typing import List, Optional, Tuple

from creditscan.rules.constants import CONTEXT_RADIUS

_WS_RE = re.compile(r"\s+")
_NEWLINE_RE = re.compile("\n")

ELLIPSIS = "..."


@dataclass(frozen=True)
class ContextExcerpt:
    """
    Human-readable excerpt around a match.
    start/end are offsets into the original text (end is exclusive).
    """
    text: str
    start: int
    end: int


def newline_offsets(text: str) -> List[int]:
    """Sorted offsets of every newline character in the text."""
    return [m.start() for m in _NEWLINE_RE.finditer(text)]


def line_and_column(
    text: str,
    position: int,
    newlines: Optional[List[int]] = None,
) -> Tuple[int, int]:
    """
    1-based (line, column) for a character offset.

    line = newlines strictly before the offset + 1
    column = offset - start of its line + 1

    Pass `newlines` (from newline_offsets) when looking up many offsets in
    the same text; each lookup is then a binary search.
    """
    if newlines is None:
        newlines = newline_offsets(text)
    before = bisect_left(newlines, position)
    line_start = newlines[before - 1] + 1 if before else 0
    return before + 1, position - line_start + 1


def extract_context(
    text: str,
    position: int,
    match_length: int,
    *,
    radius: int = CONTEXT_RADIUS,
) -> ContextExcerpt:
    """
    Bounded excerpt around [position, position + match_length).

    Internal whitespace is collapsed so excerpts stay on one line.
    Ellipses mark a side that was cut before reaching the text boundary.
    """
    start = max(0, position - radius)
    end = min(len(text), position + match_length + radius)

    excerpt = _WS_RE.sub(" ", text[start:end]).strip()
    if start > 0:
        excerpt = ELLIPSIS + excerpt
    if end < len(text):
        excerpt = excerpt + ELLIPSIS

    return ContextExcerpt(text=excerpt, start=start, end=end)
