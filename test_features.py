"""
Tests for content statistics and risk detection.
"""

import pytest

from creditscan.features.risk import (
    RiskIndicator,
    RiskLevel,
    RiskSeverity,
    detect_risk_indicators,
    overall_risk_level,
)
from creditscan.features.statistics import calculate_statistics


# =============================================================================
# STATISTICS
# =============================================================================

def test_basic_statistics():
    text = "Hello world. Hello again!\nThird line?"
    stats = calculate_statistics(text, match_count=3)

    assert stats.total_characters == len(text)
    assert stats.total_words == 6
    assert stats.total_sentences == 3
    assert stats.total_lines == 2
    assert stats.average_word_length == pytest.approx(32 / 6)
    assert stats.average_sentence_length == pytest.approx(2.0)
    assert stats.lexical_density == pytest.approx(5 / 6)
    assert stats.keyword_density == pytest.approx(0.5)


def test_top_words_order_and_normalisation():
    stats = calculate_statistics("Hello world. Hello again!\nThird line?")

    assert stats.top_words[0].to_dict() == {"word": "hello", "count": 2}
    assert [w.word for w in stats.top_words[1:]] == ["world", "again", "third", "line"]


def test_top_words_skip_short_words():
    stats = calculate_statistics("an an an cat")
    assert [w.to_dict() for w in stats.top_words] == [{"word": "cat", "count": 1}]


def test_top_words_tie_order_puts_integer_tokens_first():
    stats = calculate_statistics("alpha 2024 Form 1099 beta 0042 2024 alpha")

    assert [w.to_dict() for w in stats.top_words] == [
        {"word": "2024", "count": 2},
        {"word": "alpha", "count": 2},
        {"word": "1099", "count": 1},
        {"word": "form", "count": 1},
        {"word": "beta", "count": 1},
        {"word": "0042", "count": 1},
    ]


def test_top_words_limit():
    text = " ".join(f"word{i:02d}" for i in range(30))
    assert len(calculate_statistics(text).top_words) == 20
    assert len(calculate_statistics(text, top_n=5).top_words) == 5


def test_empty_text_statistics():
    stats = calculate_statistics("")

    assert stats.total_characters == 0
    assert stats.total_words == 0
    assert stats.total_sentences == 0
    assert stats.total_lines == 1
    assert stats.average_word_length == 0.0
    assert stats.lexical_density == 0.0
    assert stats.keyword_density == 0.0
    assert stats.top_words == []


# =============================================================================
# RISK
# =============================================================================

def test_estimated_figures_are_caution_only():
    text = "We spent approximately $5,000 on tools and approximately $12,000 on travel."
    indicators = detect_risk_indicators(text)

    assert len(indicators) == 2
    assert all(i.type == RiskSeverity.CAUTION for i in indicators)
    assert [i.indicator_id for i in indicators] == ["RISK-001-0", "RISK-001-1"]
    assert indicators[0].evidence == "approximately $5,000"
    assert indicators[0].position == text.index("approximately")
    assert indicators[0].recommendation == "Request supporting documentation"
    assert overall_risk_level(indicators) == RiskLevel.LOW


def test_single_informal_agreement_is_medium():
    indicators = detect_risk_indicators("Work was done under a verbal agreement.")

    assert len(indicators) == 1
    assert indicators[0].type == RiskSeverity.WARNING
    assert indicators[0].category == "documentation_gap"
    assert overall_risk_level(indicators) == RiskLevel.MEDIUM


def test_two_informal_agreements_is_high():
    indicators = detect_risk_indicators("A verbal agreement and an Informal Contract.")
    assert overall_risk_level(indicators) == RiskLevel.HIGH


def test_contractor_references_are_info():
    indicators = detect_risk_indicators("Paid via 1099 to an independent contractor.")

    assert [i.type for i in indicators] == [RiskSeverity.INFO, RiskSeverity.INFO]
    assert {i.evidence for i in indicators} == {"1099", "independent contractor"}
    assert overall_risk_level(indicators) == RiskLevel.LOW


def test_running_index_spans_patterns():
    indicators = detect_risk_indicators("roughly $10 and an oral contract")
    assert [i.indicator_id for i in indicators] == ["RISK-001-0", "RISK-002-1"]


def test_no_risk_in_empty_text():
    assert detect_risk_indicators("") == []
    assert overall_risk_level([]) == RiskLevel.LOW


@pytest.mark.parametrize("warnings,cautions,expected", [
    (0, 5, RiskLevel.LOW),
    (1, 0, RiskLevel.MEDIUM),
    (1, 3, RiskLevel.MEDIUM),
    (2, 0, RiskLevel.HIGH),
    (4, 1, RiskLevel.HIGH),
])
def test_overall_level_counts_only_warnings(warnings, cautions, expected):
    def make(severity):
        return RiskIndicator(
            indicator_id="RISK-000-0", type=severity, category="test",
            description="", evidence="", position=None, recommendation="",
        )

    indicators = [make(RiskSeverity.WARNING)] * warnings + [make(RiskSeverity.CAUTION)] * cautions
    assert overall_risk_level(indicators) == expected
