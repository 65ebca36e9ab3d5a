# creditscan/rules/constants.py
"""
Scoring constants.

These are tuning values, not derived quantities. They are kept here so the
evaluator and aggregator read them by name instead of embedding literals.
"""

from __future__ import annotations

from typing import Dict

ANALYSIS_VERSION = "5.0.0"

# Characters shown on each side of a keyword match
CONTEXT_RADIUS = 50

# Confidence is exact for literal matches (no fuzzy matching)
EXACT_MATCH_CONFIDENCE = 1.0

# Confidence = coverage * w + density * w + threshold margin * w
CONFIDENCE_WEIGHTS: Dict[str, float] = {
    "coverage": 0.4,
    "density": 0.4,
    "threshold": 0.2,
}

# Match count at which the density signal saturates
DENSITY_SATURATION = 10

# Threshold margin saturates at this multiple of the rule's minimum
THRESHOLD_MARGIN_MULTIPLIER = 2

# Evidence strength: (min matches, min keyword coverage)
EVIDENCE_THRESHOLDS: Dict[str, Dict[str, float]] = {
    "strong": {"min_matches": 5, "min_coverage": 0.5},
    "moderate": {"min_matches": 3, "min_coverage": 0.3},
    "weak": {"min_matches": 1, "min_coverage": 0.0},
}

# Presentation band around a program's estimated value (+/- 30%)
VALUE_RANGE_BAND = 0.3

# Statistics
TOP_WORDS_LIMIT = 20
MIN_TOP_WORD_LENGTH = 3

# Overall risk level by number of warning-tier indicators
HIGH_RISK_WARNING_COUNT = 2
MEDIUM_RISK_WARNING_COUNT = 1
