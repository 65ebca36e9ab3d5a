# creditscan/__init__.py
"""
Rule-based tax-credit content scanner.

Takes plain text extracted from a financial document and returns an
evidence-linked assessment of the credit programs it appears to support.
"""

from creditscan.scanner import (
    AnalyzedResult,
    ContentScanner,
    format_currency,
    quick_eligibility_check,
    scan_file_content,
)

__all__ = [
    "AnalyzedResult",
    "ContentScanner",
    "format_currency",
    "quick_eligibility_check",
    "scan_file_content",
]
