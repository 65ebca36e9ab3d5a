# creditscan/scoring/aggregator.py
"""
Roll rule evaluations up into one qualification summary per program.
"""

from __future__ import annotations

import math

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from creditscan.rules.catalog import PROGRAMS, ProgramDefinition
from creditscan.rules.constants import VALUE_RANGE_BAND
from creditscan.scoring.evaluator import RuleEvaluation

ELIGIBLE_RECOMMENDATIONS = [
    "Gather supporting documentation",
    "Review contemporaneous records",
]
INELIGIBLE_RECOMMENDATIONS = ["Insufficient evidence found"]


def round_half_up(x: float) -> int:
    """Round .5 away from zero for positives (display rounding, not banker's)."""
    return int(math.floor(x + 0.5))


@dataclass(frozen=True)
class ValueRange:
    minimum: int
    expected: int
    maximum: int

    def to_dict(self) -> Dict[str, Any]:
        return {"minimum": self.minimum, "expected": self.expected, "maximum": self.maximum}


@dataclass(frozen=True)
class RequirementEvidence:
    requirement: str
    met: bool
    evidence: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"requirement": self.requirement, "met": self.met, "evidence": self.evidence}


@dataclass(frozen=True)
class QualificationSummary:
    program_id: str
    program_name: str
    irs_form: Optional[str]
    is_eligible: bool
    eligibility_score: int      # 0 to 100
    estimated_value: int
    value_range: ValueRange
    matched_rules: List[str]
    evidence_count: int
    confidence: float           # mean confidence across the program's rules
    requirements: List[RequirementEvidence] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "program_id": self.program_id,
            "program_name": self.program_name,
            "irs_form": self.irs_form,
            "is_eligible": self.is_eligible,
            "eligibility_score": self.eligibility_score,
            "estimated_value": self.estimated_value,
            "value_range": self.value_range.to_dict(),
            "matched_rules": list(self.matched_rules),
            "evidence_count": self.evidence_count,
            "confidence": round(self.confidence, 4),
            "requirements": [r.to_dict() for r in self.requirements],
            "recommendations": list(self.recommendations),
        }


def value_range(total: int, *, band: float = VALUE_RANGE_BAND) -> ValueRange:
    """Fixed +/- band around the estimate. Presentation only, not a statistical interval."""
    return ValueRange(
        minimum=round_half_up(total * (1 - band)),
        expected=total,
        maximum=round_half_up(total * (1 + band)),
    )


def build_qualification_summary(
    program: ProgramDefinition,
    evaluations: Sequence[RuleEvaluation],
) -> QualificationSummary:
    """
    Summarise the evaluations of one program.

    `evaluations` may contain rules of other categories; only the program's
    own category is considered.
    """
    group = [e for e in evaluations if e.category == program.category.value]
    qualifying = [e for e in group if e.qualified]

    is_eligible = bool(qualifying)
    total = sum(e.calculated_value for e in qualifying)
    avg_confidence = sum(e.confidence for e in group) / len(group) if group else 0.0

    return QualificationSummary(
        program_id=program.program_id,
        program_name=program.program_name,
        irs_form=program.irs_form,
        is_eligible=is_eligible,
        eligibility_score=round_half_up(avg_confidence * 100),
        estimated_value=total,
        value_range=value_range(total),
        matched_rules=[e.rule_id for e in qualifying],
        evidence_count=sum(e.match_count for e in group),
        confidence=avg_confidence,
        requirements=[
            RequirementEvidence(
                requirement=e.rule_name,
                met=e.qualified,
                evidence=f"{e.match_count} matches found" if e.qualified else None,
            )
            for e in group
        ],
        recommendations=list(ELIGIBLE_RECOMMENDATIONS if is_eligible else INELIGIBLE_RECOMMENDATIONS),
    )


def summarize_programs(
    evaluations: Sequence[RuleEvaluation],
    programs: Sequence[ProgramDefinition] = PROGRAMS,
) -> Dict[str, QualificationSummary]:
    """One summary per program, keyed by program key (e.g. "rd_credit")."""
    return {p.key: build_qualification_summary(p, evaluations) for p in programs}
