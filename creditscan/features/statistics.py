# creditscan/features/statistics.py

from __future__ import annotations

import re

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List

from creditscan.rules.constants import MIN_TOP_WORD_LENGTH, TOP_WORDS_LIMIT

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_MAX_INDEX_KEY = 2 ** 32 - 2


@dataclass(frozen=True)
class WordCount:
    word: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"word": self.word, "count": self.count}


@dataclass(frozen=True)
class ContentStatistics:
    """
    Corpus-level lexical statistics. Independent of the rule catalog except
    for keyword_density, which needs the total match count.
    """
    total_characters: int
    total_words: int
    total_lines: int
    total_sentences: int
    average_word_length: float
    average_sentence_length: float
    lexical_density: float   # unique words / total words
    keyword_density: float   # rule matches / total words
    top_words: List[WordCount] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_characters": self.total_characters,
            "total_words": self.total_words,
            "total_lines": self.total_lines,
            "total_sentences": self.total_sentences,
            "average_word_length": round(self.average_word_length, 4),
            "average_sentence_length": round(self.average_sentence_length, 4),
            "lexical_density": round(self.lexical_density, 4),
            "keyword_density": round(self.keyword_density, 4),
            "top_words": [w.to_dict() for w in self.top_words],
        }


def _is_index_key(word: str) -> bool:
    # Canonical non-negative integer below 2**32 - 1, no leading zeros
    if not word.isdigit() or (len(word) > 1 and word[0] == "0"):
        return False
    return int(word) <= _MAX_INDEX_KEY


def top_words(words: List[str], *, limit: int = TOP_WORDS_LIMIT) -> List[WordCount]:
    """
    Most frequent normalised words.

    Words are lowercased and stripped to [a-z0-9]; anything shorter than
    three characters after that is ignored.

    Ties list integer-like tokens ("1099", "2024") first in ascending
    numeric order, then every other word in first-seen order.
    """
    freq: Counter = Counter()
    for w in words:
        normalized = _NON_ALNUM_RE.sub("", w.lower())
        if len(normalized) >= MIN_TOP_WORD_LENGTH:
            freq[normalized] += 1

    numeric = sorted((w for w in freq if _is_index_key(w)), key=int)
    ordered = numeric + [w for w in freq if not _is_index_key(w)]
    ordered.sort(key=lambda w: -freq[w])  # stable
    return [WordCount(word=w, count=freq[w]) for w in ordered[:limit]]


def calculate_statistics(
    text: str,
    *,
    match_count: int = 0,
    top_n: int = TOP_WORDS_LIMIT,
) -> ContentStatistics:
    """
    Compute lexical statistics for the text.

    Args:
        text: plain text
        match_count: total rule matches found in the text (for keyword_density)
        top_n: size of the word-frequency table

    Returns:
        ContentStatistics
    """
    text = text or ""

    words = text.split()
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    lines = text.split("\n")

    n_words = len(words)
    n_sentences = len(sentences)

    total_word_length = sum(len(w) for w in words)
    unique_words = len({w.lower() for w in words})

    return ContentStatistics(
        total_characters=len(text),
        total_words=n_words,
        total_lines=len(lines),
        total_sentences=n_sentences,
        average_word_length=total_word_length / n_words if n_words else 0.0,
        average_sentence_length=n_words / n_sentences if n_sentences else 0.0,
        lexical_density=unique_words / n_words if n_words else 0.0,
        keyword_density=match_count / n_words if n_words else 0.0,
        top_words=top_words(words, limit=top_n),
    )
