# creditscan/rules/__init__.py

from creditscan.rules.catalog import (
    GRANT_RULES,
    PROGRAMS,
    CreditCategory,
    GrantRule,
    ProgramDefinition,
    get_rules_by_category,
)

__all__ = [
    "GRANT_RULES",
    "PROGRAMS",
    "CreditCategory",
    "GrantRule",
    "ProgramDefinition",
    "get_rules_by_category",
]
