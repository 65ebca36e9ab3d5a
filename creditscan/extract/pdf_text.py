# creditscan/extract/pdf_text.py

from __future__ import annotations

import logging
import re

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

_INLINE_WS_RE = re.compile(r"[^\S\n]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


class PdfExtractionError(Exception):
    """
    Raised when a PDF cannot be turned into text.

    code is one of: INVALID_FILE, EMPTY_DOCUMENT, PASSWORD_REQUIRED,
    INCORRECT_PASSWORD, EXTRACTION_FAILED
    """

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


@dataclass
class ExtractedDoc:
    """
    Extracted document text plus minimal metadata.
    `text` is what gets handed to the scanner.
    """
    text: str
    lines: List[str]
    pages: int
    source: str  # always "pdf_text"
    meta: Dict[str, Any]


def normalize_text(text: str) -> str:
    """
    Collapse runs of inline whitespace, cap blank-line runs at one blank line,
    and trim every line.
    """
    text = _INLINE_WS_RE.sub(" ", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return "\n".join(ln.strip() for ln in text.split("\n")).strip()


def _open(pdf_path: str, password: Optional[str]):
    try:
        doc = fitz.open(pdf_path)
    except (RuntimeError, ValueError, OSError) as e:
        raise PdfExtractionError(f"Not a readable PDF document: {e}", "INVALID_FILE") from e

    if doc.needs_pass:
        if not password:
            doc.close()
            raise PdfExtractionError("This PDF is password-protected.", "PASSWORD_REQUIRED")
        if not doc.authenticate(password):
            doc.close()
            raise PdfExtractionError("The provided password is incorrect.", "INCORRECT_PASSWORD")
    return doc


def extract_pdf_text(
    pdf_path: str,
    *,
    max_pages: Optional[int] = None,
    join_pages_with: str = "\n\n",
    normalize_whitespace: bool = True,
    skip_empty_pages: bool = True,
    password: Optional[str] = None,
) -> ExtractedDoc:
    """
    Extract plain text from a PDF using PyMuPDF.

    Notes:
    - Scanned (image-only) PDFs produce little or no text; they are returned
      as-is, there is no OCR fallback.
    - A page that fails to extract is logged and treated as empty.

    Args:
        pdf_path: path to PDF
        max_pages: if set, only extract from the first N pages
        join_pages_with: separator between pages
        normalize_whitespace: collapse whitespace and trim lines
        skip_empty_pages: drop pages without text from the joined output
        password: for encrypted PDFs

    Returns:
        ExtractedDoc

    Raises:
        PdfExtractionError
    """
    doc = _open(pdf_path, password)
    try:
        total_pages = doc.page_count
        if total_pages == 0:
            raise PdfExtractionError("The PDF document has no pages", "EMPTY_DOCUMENT")

        n = total_pages if max_pages is None else min(max_pages, total_pages)

        page_texts: List[str] = []
        all_lines: List[str] = []
        pages_with_text = 0
        failed_pages: List[int] = []

        for i in range(n):
            try:
                t = doc.load_page(i).get_text("text") or ""
            except RuntimeError as e:
                logger.warning("Failed to extract text from page %d of %s: %s", i + 1, pdf_path, e)
                failed_pages.append(i + 1)
                t = ""

            has_text = bool(t.strip())
            if has_text:
                pages_with_text += 1
            if has_text or not skip_empty_pages:
                page_texts.append(t)

            for ln in t.splitlines():
                ln = ln.strip()
                if ln:
                    all_lines.append(ln)

        if n and len(failed_pages) == n:
            raise PdfExtractionError(
                f"Failed to extract text from all {n} pages", "EXTRACTION_FAILED"
            )

        full_text = join_pages_with.join(page_texts)
        full_text = normalize_text(full_text) if normalize_whitespace else full_text.strip()

        return ExtractedDoc(
            text=full_text,
            lines=all_lines,
            pages=total_pages,
            source="pdf_text",
            meta={
                "pdf_path": pdf_path,
                "extracted_pages": n,
                "total_pages": total_pages,
                "pages_with_text": pages_with_text,
                "failed_pages": failed_pages,
                "title": (doc.metadata or {}).get("title") or None,
                "author": (doc.metadata or {}).get("author") or None,
                "engine": "pymupdf",
            },
        )
    finally:
        doc.close()
