# creditscan/scanner.py
"""
Content scanner: runs the rule catalog over a document's text and assembles
the full analysis result.

This module provides:
1. ContentScanner with injectable clock, timer and random source
2. scan_file_content / quick_eligibility_check convenience functions
3. The AnalyzedResult envelope (identifiers, timing, audit trail)
"""

from __future__ import annotations

import logging
import random
import struct
import time

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from creditscan.features.keywords import KeywordMatch, scan_vocabulary
from creditscan.features.risk import (
    RiskIndicator,
    RiskLevel,
    detect_risk_indicators,
    overall_risk_level,
)
from creditscan.features.statistics import ContentStatistics, calculate_statistics
from creditscan.rules.catalog import (
    GRANT_RULES,
    PROGRAMS,
    CreditCategory,
    GrantRule,
    ProgramDefinition,
    get_vocabulary,
)
from creditscan.rules.constants import ANALYSIS_VERSION, CONTEXT_RADIUS
from creditscan.scoring.aggregator import QualificationSummary, round_half_up, summarize_programs
from creditscan.scoring.evaluator import RuleEvaluation, evaluate_rule

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


# =============================================================================
# RESULT ENVELOPE
# =============================================================================

@dataclass(frozen=True)
class AuditEntry:
    action: str
    timestamp: str
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "timestamp": self.timestamp, "details": self.details}


@dataclass(frozen=True)
class SourceInfo:
    content_length: int
    content_hash: str
    content_type: str = "plain_text"
    language: str = "en"
    encoding: str = "UTF-8"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content_length": self.content_length,
            "content_hash": self.content_hash,
            "content_type": self.content_type,
            "language": self.language,
            "encoding": self.encoding,
        }


@dataclass(frozen=True)
class FinancialSummary:
    total_estimated_value: int
    rd_credit_value: int
    training_credit_value: int
    green_energy_value: int
    other_credits_value: int
    confidence_weighted_value: int
    value_by_category: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_estimated_value": self.total_estimated_value,
            "rd_credit_value": self.rd_credit_value,
            "training_credit_value": self.training_credit_value,
            "green_energy_value": self.green_energy_value,
            "other_credits_value": self.other_credits_value,
            "confidence_weighted_value": self.confidence_weighted_value,
            "value_by_category": dict(self.value_by_category),
        }


@dataclass(frozen=True)
class ProcessingDetails:
    rules_applied: int
    rules_triggered: int
    total_matches_found: int
    unique_keywords_found: int
    scan_coverage: int
    confidence_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rules_applied": self.rules_applied,
            "rules_triggered": self.rules_triggered,
            "total_matches_found": self.total_matches_found,
            "unique_keywords_found": self.unique_keywords_found,
            "scan_coverage": self.scan_coverage,
            "confidence_score": round(self.confidence_score, 4),
        }


@dataclass(frozen=True)
class AnalyzedResult:
    """Complete analysis of one document."""
    analysis_id: str
    analysis_version: str
    timestamp: str
    processing_time_ms: int
    source: SourceInfo

    # Eligibility flags
    is_rd_eligible: bool
    is_training_eligible: bool
    is_green_eligible: bool
    is_erc_eligible: bool
    is_wotc_eligible: bool
    is_179d_eligible: bool

    financial_summary: FinancialSummary
    rule_evaluations: List[RuleEvaluation]
    qualifications: Dict[str, QualificationSummary]
    all_matches: List[KeywordMatch]
    matches_by_category: Dict[str, List[KeywordMatch]]
    statistics: ContentStatistics
    risk_indicators: List[RiskIndicator]
    overall_risk_level: RiskLevel
    processing_details: ProcessingDetails
    audit_log: List[AuditEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis_id": self.analysis_id,
            "analysis_version": self.analysis_version,
            "timestamp": self.timestamp,
            "processing_time_ms": self.processing_time_ms,
            "source": self.source.to_dict(),
            "is_rd_eligible": self.is_rd_eligible,
            "is_training_eligible": self.is_training_eligible,
            "is_green_eligible": self.is_green_eligible,
            "is_erc_eligible": self.is_erc_eligible,
            "is_wotc_eligible": self.is_wotc_eligible,
            "is_179d_eligible": self.is_179d_eligible,
            "financial_summary": self.financial_summary.to_dict(),
            "rule_evaluations": [e.to_dict() for e in self.rule_evaluations],
            "qualifications": {k: q.to_dict() for k, q in self.qualifications.items()},
            "all_matches": [m.to_dict() for m in self.all_matches],
            "matches_by_category": {
                k: [m.to_dict() for m in v] for k, v in self.matches_by_category.items()
            },
            "statistics": self.statistics.to_dict(),
            "risk_indicators": [r.to_dict() for r in self.risk_indicators],
            "overall_risk_level": self.overall_risk_level.value,
            "processing_details": self.processing_details.to_dict(),
            "audit_log": [a.to_dict() for a in self.audit_log],
        }


# =============================================================================
# IDENTIFIERS
# =============================================================================

def content_hash(text: str) -> str:
    """
    32-bit rolling hash (h = h * 31 + c) over UTF-16 code units.

    Identity tag only. Not collision resistant; never use it for integrity
    or security decisions.
    """
    # Lone surrogates are valid JSON string content and hash as their own unit
    data = text.encode("utf-16-le", "surrogatepass")
    h = 0
    for (unit,) in struct.iter_unpack("<H", data):
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(abs(h), "08x")


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    if n < 0:
        return "-" + _to_base36(-n)
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
    return "".join(reversed(digits))


def generate_analysis_id(now: datetime, rng: random.Random) -> str:
    """SCAN-<epoch millis, base36>-<6 random base36 chars>, upper-cased."""
    millis = int(now.timestamp() * 1000)
    suffix = "".join(rng.choice(_BASE36) for _ in range(6))
    return f"SCAN-{_to_base36(millis)}-{suffix}".upper()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# SCANNER
# =============================================================================

class ContentScanner:
    """
    Rule-based content scanner.

    Holds only configuration; every scan builds its own working data, so one
    instance can be shared across threads.

    Args:
        rules: rule catalog to apply
        programs: program definitions for qualification summaries
        clock: returns the current time (timestamps, analysis id)
        timer: monotonic seconds for processing time
        rng: random source for the analysis id suffix
        context_radius: excerpt radius around each match
    """

    def __init__(
        self,
        rules: Sequence[GrantRule] = GRANT_RULES,
        programs: Sequence[ProgramDefinition] = PROGRAMS,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        timer: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        context_radius: int = CONTEXT_RADIUS,
    ):
        self.rules = tuple(rules)
        self.programs = tuple(programs)
        self.clock = clock or _utc_now
        self.timer = timer or time.perf_counter
        self.rng = rng or random.Random()
        self.context_radius = context_radius
        self.vocabulary = get_vocabulary(self.rules)

    def evaluate_rules(self, text: str) -> List[RuleEvaluation]:
        """Evaluate every rule; the deterministic part of a scan."""
        found = scan_vocabulary(text, self.vocabulary, context_radius=self.context_radius)
        return [evaluate_rule(rule, found) for rule in self.rules]

    def scan(self, text: str) -> AnalyzedResult:
        """
        Scan plain text and assemble the full result.

        Raises:
            TypeError: if text is not a str
        """
        if not isinstance(text, str):
            raise TypeError(f"text must be str, got {type(text).__name__}")

        start = self.timer()
        started_at = self.clock()
        analysis_id = generate_analysis_id(started_at, self.rng)

        audit_log: List[AuditEntry] = [
            AuditEntry(
                action="SCAN_INITIATED",
                timestamp=_iso(started_at),
                details=f"Analysis {analysis_id} started, content length: {len(text)} characters",
            )
        ]
        logger.debug("Scan %s started (%d chars)", analysis_id, len(text))

        evaluations = self.evaluate_rules(text)

        all_matches: List[KeywordMatch] = []
        matches_by_category: Dict[str, List[KeywordMatch]] = {}
        for ev in evaluations:
            if ev.matches:
                all_matches.extend(ev.matches)
                matches_by_category.setdefault(ev.category, []).extend(ev.matches)

        audit_log.append(
            AuditEntry(
                action="RULES_PROCESSED",
                timestamp=_iso(self.clock()),
                details=f"Processed {len(self.rules)} rules, found {len(all_matches)} total matches",
            )
        )

        qualifications = summarize_programs(evaluations, self.programs)

        value_by_category = {c.value: 0 for c in CreditCategory}
        for ev in evaluations:
            value_by_category[ev.category] = value_by_category.get(ev.category, 0) + ev.calculated_value

        def _eligible(category: CreditCategory) -> bool:
            return any(e.qualified for e in evaluations if e.category == category.value)

        statistics = calculate_statistics(text, match_count=len(all_matches))
        risk_indicators = detect_risk_indicators(text)

        triggered = [e for e in evaluations if e.qualified]
        confidence_weighted = sum(e.calculated_value * e.confidence for e in evaluations)

        elapsed_ms = round_half_up((self.timer() - start) * 1000)
        finished_at = self.clock()
        audit_log.append(
            AuditEntry(
                action="SCAN_COMPLETE",
                timestamp=_iso(finished_at),
                details=f"Analysis complete in {elapsed_ms}ms",
            )
        )

        is_green = _eligible(CreditCategory.GREEN_ENERGY)
        result = AnalyzedResult(
            analysis_id=analysis_id,
            analysis_version=ANALYSIS_VERSION,
            timestamp=_iso(finished_at),
            processing_time_ms=elapsed_ms,
            source=SourceInfo(content_length=len(text), content_hash=content_hash(text)),
            is_rd_eligible=_eligible(CreditCategory.RD_CREDIT),
            is_training_eligible=_eligible(CreditCategory.TRAINING),
            is_green_eligible=is_green,
            is_erc_eligible=_eligible(CreditCategory.EMPLOYEE_RETENTION),
            is_wotc_eligible=False,
            is_179d_eligible=is_green,
            financial_summary=FinancialSummary(
                total_estimated_value=sum(value_by_category.values()),
                rd_credit_value=value_by_category[CreditCategory.RD_CREDIT.value],
                training_credit_value=value_by_category[CreditCategory.TRAINING.value],
                green_energy_value=value_by_category[CreditCategory.GREEN_ENERGY.value],
                other_credits_value=(
                    value_by_category[CreditCategory.EMPLOYEE_RETENTION.value]
                    + value_by_category[CreditCategory.OTHER.value]
                ),
                confidence_weighted_value=round_half_up(confidence_weighted),
                value_by_category=value_by_category,
            ),
            rule_evaluations=evaluations,
            qualifications=qualifications,
            all_matches=all_matches,
            matches_by_category=matches_by_category,
            statistics=statistics,
            risk_indicators=risk_indicators,
            overall_risk_level=overall_risk_level(risk_indicators),
            processing_details=ProcessingDetails(
                rules_applied=len(self.rules),
                rules_triggered=len(triggered),
                total_matches_found=len(all_matches),
                unique_keywords_found=len({m.keyword for m in all_matches}),
                scan_coverage=100,
                confidence_score=(
                    sum(e.confidence for e in triggered) / len(triggered) if triggered else 0.0
                ),
            ),
            audit_log=audit_log,
        )

        logger.info(
            "Scan %s complete: %d matches, %d/%d rules triggered, risk=%s, %dms",
            analysis_id,
            len(all_matches),
            len(triggered),
            len(self.rules),
            result.overall_risk_level.value,
            elapsed_ms,
        )
        return result


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def scan_file_content(text: str, *, scanner: Optional[ContentScanner] = None) -> AnalyzedResult:
    """Scan text with the default catalog (or a supplied scanner)."""
    return (scanner or ContentScanner()).scan(text)


def quick_eligibility_check(text: str, *, scanner: Optional[ContentScanner] = None) -> Dict[str, Any]:
    """Primary eligibility flags plus the total estimated value."""
    result = scan_file_content(text, scanner=scanner)
    return {
        "is_rd_eligible": result.is_rd_eligible,
        "is_training_eligible": result.is_training_eligible,
        "is_green_eligible": result.is_green_eligible,
        "total_estimated_value": result.financial_summary.total_estimated_value,
    }


def format_currency(value: float) -> str:
    """Whole-dollar USD display, e.g. 15000 -> "$15,000"."""
    amount = round_half_up(abs(value))
    sign = "-" if value < 0 and amount else ""
    return f"{sign}${amount:,}"
