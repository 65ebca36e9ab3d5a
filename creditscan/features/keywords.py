# creditscan/features/keywords.py

from __future__ import annotations

import re

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Pattern

from creditscan.features.context import extract_context, line_and_column, newline_offsets
from creditscan.rules.constants import CONTEXT_RADIUS, EXACT_MATCH_CONFIDENCE


@dataclass(frozen=True)
class KeywordMatch:
    """
    One located occurrence of a keyword, with position and context.
    """
    keyword: str         # canonical lowercase keyword
    pattern: str         # literal text as it appears in the document
    position: int        # character offset
    line_number: int     # 1-based
    column_number: int   # 1-based
    context: str
    context_start: int
    context_end: int
    confidence: float = EXACT_MATCH_CONFIDENCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.keyword,
            "pattern": self.pattern,
            "position": self.position,
            "line_number": self.line_number,
            "column_number": self.column_number,
            "context": self.context,
            "context_start": self.context_start,
            "context_end": self.context_end,
            "confidence": self.confidence,
        }


def keyword_pattern(keyword: str) -> Pattern:
    """
    Whole-word, case-insensitive pattern for a literal keyword.
    A keyword never matches inside a longer word ("lab" does not hit "label").
    """
    return re.compile(r"\b" + re.escape(keyword) + r"\b", re.I)


def find_keyword_matches(
    text: str,
    keyword: str,
    *,
    context_radius: int = CONTEXT_RADIUS,
    newlines: Optional[List[int]] = None,
) -> List[KeywordMatch]:
    """
    Find every occurrence of `keyword` in `text`.

    `newlines` is the text's newline_offsets(); it is built here when omitted.
    Returns an empty list when there is nothing to find; that is not an error.
    """
    if not text:
        return []

    if newlines is None:
        newlines = newline_offsets(text)

    canonical = keyword.lower()
    matches: List[KeywordMatch] = []

    for m in keyword_pattern(keyword).finditer(text):
        line, column = line_and_column(text, m.start(), newlines)
        ctx = extract_context(text, m.start(), len(m.group(0)), radius=context_radius)
        matches.append(
            KeywordMatch(
                keyword=canonical,
                pattern=m.group(0),
                position=m.start(),
                line_number=line,
                column_number=column,
                context=ctx.text,
                context_start=ctx.start,
                context_end=ctx.end,
            )
        )

    return matches


def scan_vocabulary(
    text: str,
    keywords: Iterable[str],
    *,
    context_radius: int = CONTEXT_RADIUS,
) -> Dict[str, List[KeywordMatch]]:
    """
    Scan the document once per distinct keyword.

    Rules that share a keyword reuse the same match list, so the result is
    identical to scanning per rule but the text is walked fewer times.

    Returns:
        {lowercase keyword: [KeywordMatch, ...]} (every keyword present, possibly empty)
    """
    newlines = newline_offsets(text)
    found: Dict[str, List[KeywordMatch]] = {}
    for kw in keywords:
        key = kw.lower()
        if key in found:
            continue
        found[key] = find_keyword_matches(
            text, kw, context_radius=context_radius, newlines=newlines
        )
    return found
