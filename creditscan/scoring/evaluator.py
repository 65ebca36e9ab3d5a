# creditscan/scoring/evaluator.py
"""
Rule evaluation: turns the keyword matches for one rule into a qualification
decision, a dollar estimate, a confidence score and an evidence label.

Everything here is a pure function of (rule, matches).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence

from creditscan.features.keywords import KeywordMatch
from creditscan.rules.catalog import GrantRule
from creditscan.rules.constants import (
    CONFIDENCE_WEIGHTS,
    DENSITY_SATURATION,
    EVIDENCE_THRESHOLDS,
    THRESHOLD_MARGIN_MULTIPLIER,
)


class EvidenceStrength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NONE = "none"


@dataclass(frozen=True)
class ValueBreakdown:
    per_match_value: int
    flat_bonus: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "per_match_value": self.per_match_value,
            "flat_bonus": self.flat_bonus,
            "total": self.total,
        }


@dataclass(frozen=True)
class RuleEvaluation:
    """Result of applying one rule to one document."""
    rule_id: str
    rule_name: str
    category: str
    qualified: bool
    match_count: int
    unique_keywords_matched: List[str]
    matches: List[KeywordMatch]
    calculated_value: int
    value_breakdown: ValueBreakdown
    confidence: float  # 0.0 to 1.0
    evidence_strength: EvidenceStrength
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "category": self.category,
            "qualified": self.qualified,
            "match_count": self.match_count,
            "unique_keywords_matched": list(self.unique_keywords_matched),
            "matches": [m.to_dict() for m in self.matches],
            "calculated_value": self.calculated_value,
            "value_breakdown": self.value_breakdown.to_dict(),
            "confidence": round(self.confidence, 4),
            "evidence_strength": self.evidence_strength.value,
            "notes": list(self.notes),
        }


def determine_evidence_strength(
    match_count: int,
    unique_keywords: int,
    total_keywords: int,
) -> EvidenceStrength:
    """
    Four-level label from match count and keyword coverage.
    Independent of qualification, so near-misses still show as "weak".
    """
    if match_count == 0 or total_keywords == 0:
        return EvidenceStrength.NONE

    coverage = unique_keywords / total_keywords
    for level in (EvidenceStrength.STRONG, EvidenceStrength.MODERATE, EvidenceStrength.WEAK):
        t = EVIDENCE_THRESHOLDS[level.value]
        if match_count >= t["min_matches"] and coverage >= t["min_coverage"]:
            return level
    return EvidenceStrength.NONE


def calculate_confidence(
    match_count: int,
    unique_keywords: int,
    total_keywords: int,
    requires_min_matches: int,
) -> float:
    """
    Weighted sum of keyword coverage, match density and threshold margin.
    Zero when the rule does not qualify.
    """
    if match_count < requires_min_matches or total_keywords == 0:
        return 0.0

    coverage = unique_keywords / total_keywords
    density = min(1.0, match_count / DENSITY_SATURATION)
    margin = min(1.0, match_count / (requires_min_matches * THRESHOLD_MARGIN_MULTIPLIER))

    score = (
        coverage * CONFIDENCE_WEIGHTS["coverage"]
        + density * CONFIDENCE_WEIGHTS["density"]
        + margin * CONFIDENCE_WEIGHTS["threshold"]
    )
    return min(1.0, score)


def calculate_value(rule: GrantRule, match_count: int) -> int:
    """Dollar estimate for a rule; 0 unless the rule qualifies."""
    if match_count < rule.requires_min_matches:
        return 0
    value = match_count * rule.value_per_match + rule.flat_bonus
    if rule.max_value is not None:
        value = min(value, rule.max_value)
    return value


def evaluate_rule(
    rule: GrantRule,
    matches_by_keyword: Mapping[str, Sequence[KeywordMatch]],
) -> RuleEvaluation:
    """
    Evaluate one rule against the matches found for its keywords.

    Args:
        rule: the rule to apply
        matches_by_keyword: {lowercase keyword: matches}; missing keys mean no matches

    Returns:
        RuleEvaluation (always; zero matches is a valid input)
    """
    rule_matches: List[KeywordMatch] = []
    unique_keywords: List[str] = []

    for kw in rule.keywords:
        key = kw.lower()
        kw_matches = matches_by_keyword.get(key) or []
        if kw_matches:
            if key not in unique_keywords:
                unique_keywords.append(key)
            rule_matches.extend(kw_matches)

    match_count = len(rule_matches)
    qualified = match_count >= rule.requires_min_matches
    value = calculate_value(rule, match_count)

    confidence = calculate_confidence(
        match_count, len(unique_keywords), len(rule.keywords), rule.requires_min_matches
    )
    strength = determine_evidence_strength(
        match_count, len(unique_keywords), len(rule.keywords)
    )

    notes: List[str] = []
    if not qualified and match_count > 0:
        notes.append(
            f"Found {match_count} matches but requires minimum {rule.requires_min_matches}"
        )
    if strength == EvidenceStrength.STRONG:
        notes.append("Strong evidence supporting qualification")

    return RuleEvaluation(
        rule_id=rule.rule_id,
        rule_name=rule.rule_name,
        category=rule.category.value,
        qualified=qualified,
        match_count=match_count,
        unique_keywords_matched=unique_keywords,
        matches=rule_matches,
        calculated_value=value,
        value_breakdown=ValueBreakdown(
            per_match_value=match_count * rule.value_per_match,
            flat_bonus=rule.flat_bonus if qualified else 0,
            total=value,
        ),
        confidence=confidence,
        evidence_strength=strength,
        notes=notes,
    )
