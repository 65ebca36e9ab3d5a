# creditscan/features/risk.py
"""
Risk indicators found independently of the rule catalog.

These are signals about documentation or classification risk, not credit
evidence. They never change a rule's value.
"""

from __future__ import annotations

import re

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Sequence

from creditscan.rules.constants import HIGH_RISK_WARNING_COUNT, MEDIUM_RISK_WARNING_COUNT


class RiskSeverity(str, Enum):
    WARNING = "warning"
    CAUTION = "caution"
    INFO = "info"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class RiskPattern:
    pattern: Pattern
    severity: RiskSeverity
    category: str
    description: str
    recommendation: str


@dataclass(frozen=True)
class RiskIndicator:
    indicator_id: str
    type: RiskSeverity
    category: str
    description: str
    evidence: str
    position: Optional[int]
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "indicator_id": self.indicator_id,
            "type": self.type.value,
            "category": self.category,
            "description": self.description,
            "evidence": self.evidence,
            "position": self.position,
            "recommendation": self.recommendation,
        }


RISK_PATTERNS: List[RiskPattern] = [
    RiskPattern(
        pattern=re.compile(r"\b(estimated|approximately|about|roughly)\s+\$[\d,]+", re.I),
        severity=RiskSeverity.CAUTION,
        category="financial_uncertainty",
        description="Estimated financial figures detected",
        recommendation="Request supporting documentation",
    ),
    RiskPattern(
        pattern=re.compile(r"\b(verbal|oral|informal)\s+(agreement|contract)", re.I),
        severity=RiskSeverity.WARNING,
        category="documentation_gap",
        description="Informal agreement referenced",
        recommendation="Obtain written documentation",
    ),
    RiskPattern(
        pattern=re.compile(r"\b(independent contractor|1099|freelance)", re.I),
        severity=RiskSeverity.INFO,
        category="worker_classification",
        description="Independent contractor reference detected",
        recommendation="Verify proper worker classification",
    ),
]


def detect_risk_indicators(
    text: str,
    *,
    patterns: Sequence[RiskPattern] = RISK_PATTERNS,
) -> List[RiskIndicator]:
    """
    Apply every risk pattern to the full text.

    Indicator ids are RISK-<pattern number>-<running index>, e.g. RISK-002-3.
    """
    indicators: List[RiskIndicator] = []
    if not text:
        return indicators

    for idx, rp in enumerate(patterns, 1):
        for m in rp.pattern.finditer(text):
            indicators.append(
                RiskIndicator(
                    indicator_id=f"RISK-{idx:03d}-{len(indicators)}",
                    type=rp.severity,
                    category=rp.category,
                    description=rp.description,
                    evidence=m.group(0),
                    position=m.start(),
                    recommendation=rp.recommendation,
                )
            )

    return indicators


def overall_risk_level(indicators: Sequence[RiskIndicator]) -> RiskLevel:
    """
    Only warning-tier indicators count; caution and info never raise the level.
    """
    warnings = sum(1 for i in indicators if i.type == RiskSeverity.WARNING)
    if warnings >= HIGH_RISK_WARNING_COUNT:
        return RiskLevel.HIGH
    if warnings >= MEDIUM_RISK_WARNING_COUNT:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
