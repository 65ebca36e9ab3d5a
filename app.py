# app.py
"""
Credit Scan API - FastAPI application for rule-based tax-credit content scanning.

The API accepts document text (or a PDF, whose text is extracted with PyMuPDF)
and returns the scanner's evidence-linked assessment: rule evaluations,
program qualification summaries, statistics and risk indicators.

Run with: uvicorn app:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import secrets
import tempfile
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from creditscan.extract.pdf_text import PdfExtractionError, extract_pdf_text
from creditscan.rules.catalog import GRANT_RULES, PROGRAMS
from creditscan.rules.constants import ANALYSIS_VERSION
from creditscan.scanner import ContentScanner, quick_eligibility_check

# Load environment variables
load_dotenv()

# =============================================================================
# CONFIGURATION
# =============================================================================

API_VERSION = "1.0.0"

# Caller-side bound on scan input; the scanner itself never truncates
MAX_TEXT_CHARS = int(os.getenv("CREDITSCAN_MAX_TEXT_CHARS", "2000000"))
PDF_MAX_PAGES = int(os.getenv("CREDITSCAN_PDF_MAX_PAGES", "200"))
LOG_LEVEL = os.getenv("CREDITSCAN_LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# =============================================================================
# BASIC AUTH CONFIGURATION
# =============================================================================

AUTH_REALM = 'Basic realm="Credit Scan API"'

AUTH_USERS_STR = os.getenv("CREDITSCAN_AUTH_USERS", "")
AUTH_PASSWORD = os.getenv("CREDITSCAN_AUTH_PASSWORD", "")

# Parse comma-separated usernames
AUTHORIZED_USERS: Dict[str, str] = {}
if AUTH_USERS_STR and AUTH_PASSWORD:
    for username in AUTH_USERS_STR.split(","):
        username = username.strip()
        if username:
            AUTHORIZED_USERS[username] = AUTH_PASSWORD

AUTH_ENABLED = bool(AUTHORIZED_USERS)

# One scanner is enough: it keeps no per-scan state
scanner = ContentScanner()


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class ScanRequest(BaseModel):
    """Plain text to scan."""
    text: str = Field(..., description="Text already extracted from the source document")
    filename: Optional[str] = Field(None, description="Original document name, echoed back")


class ScanResponse(BaseModel):
    """Complete scan response."""
    analysis: Dict[str, Any]
    document_info: Dict[str, Any]
    processing_info: Dict[str, Any]


class QuickCheckResponse(BaseModel):
    is_rd_eligible: bool
    is_training_eligible: bool
    is_green_eligible: bool
    total_estimated_value: int


class AsciiJSONResponse(JSONResponse):
    """
    JSON with non-ASCII characters escaped.
    Scanned text can carry unpaired surrogates, which UTF-8 cannot encode.
    """

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=True,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("ascii")


# =============================================================================
# FASTAPI APP
# =============================================================================

app = FastAPI(
    title="Credit Scan API",
    description="""
    Rule-based scanning of financial document text for tax-credit evidence.

    ## Authentication

    Basic HTTP authentication is enforced when `CREDITSCAN_AUTH_USERS` and
    `CREDITSCAN_AUTH_PASSWORD` are set.

    ## Features

    * **Rule Catalog**: keyword rules for R&D, training, green energy and ERC programs
    * **Evidence**: every match carries line, column and a context excerpt
    * **Qualification Summaries**: per-program eligibility, score and value range
    * **Risk Indicators**: estimated figures, informal agreements, contractor references
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=AsciiJSONResponse,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        headers={"WWW-Authenticate": AUTH_REALM},
        content={"detail": detail},
    )


def check_text_size(text: str) -> None:
    """Reject text larger than the configured bound (413)."""
    if len(text) > MAX_TEXT_CHARS:
        raise HTTPException(
            status_code=413,
            detail=f"Text too large: {len(text)} characters (limit {MAX_TEXT_CHARS})",
        )


def run_scan(text: str, document_info: Dict[str, Any]) -> ScanResponse:
    """
    Scan text and wrap the result for the API.

    Args:
        text: plain text to scan
        document_info: caller-side metadata about the source document

    Returns:
        ScanResponse
    """
    check_text_size(text)

    start_time = time.time()
    result = scanner.scan(text)
    processing_time_ms = (time.time() - start_time) * 1000

    return ScanResponse(
        analysis=result.to_dict(),
        document_info={**document_info, "text_length": len(text)},
        processing_info={
            "processing_time_ms": round(processing_time_ms, 2),
            "analysis_version": ANALYSIS_VERSION,
            "rules_applied": result.processing_details.rules_applied,
        },
    )


def scan_pdf_file(
    pdf_path: str,
    filename: str,
    *,
    max_pages: int,
    password: Optional[str] = None,
) -> ScanResponse:
    """Extract a PDF on disk and scan its text. Blocking; run it off the event loop."""
    doc = extract_pdf_text(pdf_path, max_pages=max_pages, password=password)
    return run_scan(
        doc.text,
        {
            "filename": filename,
            "source": doc.source,
            "pages": doc.pages,
            "extracted_pages": doc.meta.get("extracted_pages"),
            "pages_with_text": doc.meta.get("pages_with_text"),
        },
    )


# =============================================================================
# API ENDPOINTS
# =============================================================================

@app.middleware("http")
async def auth_middleware(request, call_next):
    """
    Global middleware to enforce Basic Auth on all requests.
    Skips auth for OPTIONS requests (CORS preflight).
    """
    if not AUTH_ENABLED:
        return await call_next(request)

    if request.method == "OPTIONS":
        return await call_next(request)

    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Basic "):
        return _unauthorized("Authentication required")

    try:
        encoded_credentials = auth_header.split(" ", 1)[1]
        decoded = base64.b64decode(encoded_credentials).decode("utf-8")
        username, password = decoded.split(":", 1)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return _unauthorized("Invalid authentication format")

    stored_password = AUTHORIZED_USERS.get(username)
    if stored_password is None or not secrets.compare_digest(password, stored_password):
        return _unauthorized("Invalid credentials")

    request.state.username = username
    return await call_next(request)


@app.get("/")
async def root(request: Request):
    """Root endpoint with API info."""
    username = getattr(request.state, "username", "anonymous")
    return {
        "name": "Credit Scan API",
        "version": API_VERSION,
        "analysis_version": ANALYSIS_VERSION,
        "authenticated_user": username,
        "auth_enabled": AUTH_ENABLED,
        "features": ["text_scan", "pdf_scan", "quick_check", "rule_catalog"],
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health(request: Request):
    """Health check endpoint."""
    username = getattr(request.state, "username", "anonymous")
    return {
        "status": "ok",
        "version": API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "authenticated_user": username,
        "auth_enabled": AUTH_ENABLED,
        "rules_loaded": len(scanner.rules),
        "limits": {
            "max_text_chars": MAX_TEXT_CHARS,
            "pdf_max_pages": PDF_MAX_PAGES,
        },
    }


@app.get("/rules")
async def list_rules(request: Request):
    """List the rule catalog and program definitions."""
    return {
        "rules": [r.to_dict() for r in GRANT_RULES],
        "programs": [p.to_dict() for p in PROGRAMS],
        "total": len(GRANT_RULES),
    }


@app.post("/scan", response_model=ScanResponse)
def scan_endpoint(payload: ScanRequest):
    """Scan plain text."""
    try:
        return run_scan(
            payload.text,
            {"filename": payload.filename, "source": "plain_text"},
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Scan failed")
        raise HTTPException(status_code=500, detail=f"Scan failed: {str(e)}")


@app.post("/scan/quick", response_model=QuickCheckResponse)
def quick_scan_endpoint(payload: ScanRequest):
    """Eligibility flags and total value only."""
    try:
        check_text_size(payload.text)
        return QuickCheckResponse(**quick_eligibility_check(payload.text, scanner=scanner))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Quick scan failed")
        raise HTTPException(status_code=500, detail=f"Scan failed: {str(e)}")


@app.post("/scan/pdf", response_model=ScanResponse)
async def scan_pdf_endpoint(
    file: UploadFile = File(..., description="PDF file to scan"),
    max_pages: int = Query(PDF_MAX_PAGES, ge=1, le=1000),
    password: Optional[str] = Query(None, description="Password for encrypted PDFs"),
):
    """Extract text from a PDF and scan it."""
    filename = file.filename or "unknown.pdf"

    if not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=415, detail="Only PDF files supported")

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Empty file")

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as tmp:
            tmp_path = tmp.name
            tmp.write(contents)

        return await run_in_threadpool(
            scan_pdf_file, tmp_path, filename, max_pages=max_pages, password=password
        )

    except PdfExtractionError as e:
        raise HTTPException(status_code=422, detail={"code": e.code, "message": str(e)})
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("PDF scan failed for %s", filename)
        raise HTTPException(status_code=500, detail=f"Scan failed: {str(e)}")
    finally:
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError as e:
                logger.warning("Could not remove temp file %s: %s", tmp_path, e)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
