# creditscan/rules/catalog.py
"""
Static rule catalog for tax-credit qualification.

Each rule has:
- keywords: literal terms searched for as whole words (case-insensitive)
- pricing: value per match, flat bonus, optional cap
- requires_min_matches: how many matches are needed before the rule qualifies

Rules carry no behaviour; every rule is evaluated by the same procedure
in creditscan.scoring.evaluator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class CreditCategory(str, Enum):
    RD_CREDIT = "rd_credit"
    TRAINING = "training"
    GREEN_ENERGY = "green_energy"
    EMPLOYEE_RETENTION = "employee_retention"
    OTHER = "other"


@dataclass(frozen=True)
class GrantRule:
    """Definition of a single scoring rule."""
    rule_id: str
    rule_name: str
    category: CreditCategory
    keywords: Tuple[str, ...]
    value_per_match: int
    flat_bonus: int
    max_value: Optional[int]
    requires_min_matches: int
    description: str
    irs_reference: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.keywords:
            raise ValueError(f"Rule {self.rule_id} has no keywords")
        if self.requires_min_matches < 1:
            raise ValueError(
                f"Rule {self.rule_id}: requires_min_matches must be >= 1, "
                f"got {self.requires_min_matches}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "category": self.category.value,
            "keywords": list(self.keywords),
            "value_per_match": self.value_per_match,
            "flat_bonus": self.flat_bonus,
            "max_value": self.max_value,
            "requires_min_matches": self.requires_min_matches,
            "description": self.description,
            "irs_reference": self.irs_reference,
        }


@dataclass(frozen=True)
class ProgramDefinition:
    """A credit program that rolls up every rule of one category."""
    key: str
    program_id: str
    program_name: str
    irs_form: Optional[str]
    category: CreditCategory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "program_id": self.program_id,
            "program_name": self.program_name,
            "irs_form": self.irs_form,
            "category": self.category.value,
        }


# =============================================================================
# RULES
# =============================================================================

GRANT_RULES: Tuple[GrantRule, ...] = (
    # R&D credit
    GrantRule(
        rule_id="RD-001",
        rule_name="R&D Personnel Detection",
        category=CreditCategory.RD_CREDIT,
        keywords=("engineer", "developer", "lab", "research"),
        value_per_match=5000,
        flat_bonus=0,
        max_value=None,
        requires_min_matches=1,
        description="Identifies R&D qualified personnel and activities",
        irs_reference="IRC §41(b)(2)(B)",
    ),
    GrantRule(
        rule_id="RD-002",
        rule_name="R&D Activity Indicators",
        category=CreditCategory.RD_CREDIT,
        keywords=("prototype", "experiment", "testing", "innovation", "patent"),
        value_per_match=3500,
        flat_bonus=0,
        max_value=None,
        requires_min_matches=1,
        description="Identifies specific R&D activities",
        irs_reference="IRC §41(d)",
    ),
    GrantRule(
        rule_id="RD-003",
        rule_name="Technical Uncertainty Indicators",
        category=CreditCategory.RD_CREDIT,
        keywords=("uncertainty", "unknown", "feasibility", "capability", "alternative"),
        value_per_match=2500,
        flat_bonus=0,
        max_value=None,
        requires_min_matches=2,
        description="Identifies technical uncertainty language",
        irs_reference="Treas. Reg. §1.41-4(a)(3)",
    ),

    # Training
    GrantRule(
        rule_id="TRN-001",
        rule_name="Training Program Detection",
        category=CreditCategory.TRAINING,
        keywords=("tuition", "course", "workshop"),
        value_per_match=2000,
        flat_bonus=0,
        max_value=None,
        requires_min_matches=1,
        description="Identifies qualified educational expenses",
        irs_reference="IRC §127",
    ),
    GrantRule(
        rule_id="TRN-002",
        rule_name="Educational Assistance Indicators",
        category=CreditCategory.TRAINING,
        keywords=("certification", "training", "seminar", "education", "learning"),
        value_per_match=1500,
        flat_bonus=0,
        max_value=None,
        requires_min_matches=1,
        description="Identifies educational assistance indicators",
        irs_reference="IRC §127(c)",
    ),

    # Green energy
    GrantRule(
        rule_id="GRN-001",
        rule_name="Green Energy Detection",
        category=CreditCategory.GREEN_ENERGY,
        keywords=("solar", "energy", "retrofit"),
        value_per_match=0,
        flat_bonus=15000,
        max_value=15000,
        requires_min_matches=1,
        description="Identifies energy efficiency improvements",
        irs_reference="IRC §179D",
    ),
    GrantRule(
        rule_id="GRN-002",
        rule_name="Energy Efficiency Indicators",
        category=CreditCategory.GREEN_ENERGY,
        keywords=("hvac", "insulation", "lighting", "efficiency", "sustainable"),
        value_per_match=2500,
        flat_bonus=0,
        max_value=50000,
        requires_min_matches=2,
        description="Identifies specific energy efficiency improvements",
        irs_reference="IRC §179D(c)",
    ),

    # Employee retention
    GrantRule(
        rule_id="ERC-001",
        rule_name="ERC Eligibility Indicators",
        category=CreditCategory.EMPLOYEE_RETENTION,
        keywords=("pandemic", "covid", "shutdown", "suspension", "gross receipts decline"),
        value_per_match=0,
        flat_bonus=25000,
        max_value=25000,
        requires_min_matches=2,
        description="Identifies potential ERC eligibility",
        irs_reference="IRC §3134",
    ),
)


# =============================================================================
# PROGRAMS (one qualification summary each)
# =============================================================================

PROGRAMS: Tuple[ProgramDefinition, ...] = (
    ProgramDefinition(
        key="rd_credit",
        program_id="IRC-41",
        program_name="Federal R&D Tax Credit",
        irs_form="Form 6765",
        category=CreditCategory.RD_CREDIT,
    ),
    ProgramDefinition(
        key="training_grant",
        program_id="TRN-127",
        program_name="Training & Education Grant",
        irs_form="Form W-2",
        category=CreditCategory.TRAINING,
    ),
    ProgramDefinition(
        key="green_energy",
        program_id="SEC-179D",
        program_name="Energy Efficiency Deduction",
        irs_form="Form 7205",
        category=CreditCategory.GREEN_ENERGY,
    ),
    ProgramDefinition(
        key="employee_retention",
        program_id="ERC-3134",
        program_name="Employee Retention Credit",
        irs_form="Form 941-X",
        category=CreditCategory.EMPLOYEE_RETENTION,
    ),
    ProgramDefinition(
        key="other",
        program_id="OTHER",
        program_name="Other Credits",
        irs_form=None,
        category=CreditCategory.OTHER,
    ),
)


def get_rules_by_category(
    category: CreditCategory,
    rules: Tuple[GrantRule, ...] = GRANT_RULES,
) -> List[GrantRule]:
    """Get all rules belonging to a credit category."""
    return [r for r in rules if r.category == category]


def get_vocabulary(rules: Tuple[GrantRule, ...] = GRANT_RULES) -> List[str]:
    """
    Distinct lowercase keywords across the catalog, in first-seen order.
    """
    seen: Dict[str, None] = {}
    for rule in rules:
        for kw in rule.keywords:
            seen.setdefault(kw.lower(), None)
    return list(seen)
