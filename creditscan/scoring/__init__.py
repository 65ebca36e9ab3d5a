# creditscan/scoring/__init__.py

from creditscan.scoring.aggregator import QualificationSummary, summarize_programs
from creditscan.scoring.evaluator import EvidenceStrength, RuleEvaluation, evaluate_rule

__all__ = [
    "EvidenceStrength",
    "QualificationSummary",
    "RuleEvaluation",
    "evaluate_rule",
    "summarize_programs",
]
