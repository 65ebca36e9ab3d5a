"""
Tests for the Credit Scan API.

Covers auth, health, rule listing, text scans and PDF scans.
"""

import base64
import inspect

import fitz
import pytest
from fastapi.testclient import TestClient

import app as app_module
from creditscan.scanner import content_hash

SCENARIO_A = (
    "Our engineer built a prototype. The engineer tested the prototype "
    "with another engineer."
)


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(app_module, "AUTH_ENABLED", False)
    monkeypatch.setattr(app_module, "AUTHORIZED_USERS", {})
    return TestClient(app_module.app)


@pytest.fixture
def auth_client(monkeypatch):
    monkeypatch.setattr(app_module, "AUTH_ENABLED", True)
    monkeypatch.setattr(app_module, "AUTHORIZED_USERS", {"auditor": "s3cret"})
    return TestClient(app_module.app)


def pdf_bytes(text):
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


# =============================================================================
# AUTH
# =============================================================================

def test_no_auth(auth_client):
    """Endpoints reject requests without credentials."""
    resp = auth_client.get("/")
    assert resp.status_code == 401
    assert resp.headers.get("WWW-Authenticate") == 'Basic realm="Credit Scan API"'


def test_wrong_auth(auth_client):
    resp = auth_client.get("/", auth=("auditor", "wrongpassword"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"


def test_malformed_auth_header(auth_client):
    resp = auth_client.get("/", headers={"Authorization": "Basic !!!notbase64"})
    assert resp.status_code == 401


def test_correct_auth(auth_client):
    resp = auth_client.get("/", auth=("auditor", "s3cret"))
    assert resp.status_code == 200
    assert resp.json()["authenticated_user"] == "auditor"

    token = base64.b64encode(b"auditor:s3cret").decode()
    resp = auth_client.get("/health", headers={"Authorization": f"Basic {token}"})
    assert resp.status_code == 200


# =============================================================================
# INFO ENDPOINTS
# =============================================================================

def test_root(client):
    data = client.get("/").json()
    assert data["name"] == "Credit Scan API"
    assert data["auth_enabled"] is False
    assert data["authenticated_user"] == "anonymous"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200

    data = resp.json()
    assert data["status"] == "ok"
    assert data["rules_loaded"] == 8
    assert data["limits"]["max_text_chars"] == app_module.MAX_TEXT_CHARS


def test_rules(client):
    data = client.get("/rules").json()

    assert data["total"] == 8
    assert data["rules"][0]["rule_id"] == "RD-001"
    assert data["rules"][0]["keywords"] == ["engineer", "developer", "lab", "research"]
    assert [p["key"] for p in data["programs"]] == [
        "rd_credit", "training_grant", "green_energy", "employee_retention", "other",
    ]


# =============================================================================
# TEXT SCANS
# =============================================================================

def test_scan_text(client):
    resp = client.post("/scan", json={"text": SCENARIO_A, "filename": "memo.txt"})
    assert resp.status_code == 200

    data = resp.json()
    analysis = data["analysis"]
    assert analysis["is_rd_eligible"] is True
    assert analysis["financial_summary"]["rd_credit_value"] == 22000
    assert analysis["analysis_id"].startswith("SCAN-")
    assert data["document_info"] == {
        "filename": "memo.txt",
        "source": "plain_text",
        "text_length": len(SCENARIO_A),
    }
    assert data["processing_info"]["rules_applied"] == 8


def test_scan_empty_text(client):
    resp = client.post("/scan", json={"text": ""})
    assert resp.status_code == 200

    analysis = resp.json()["analysis"]
    assert analysis["financial_summary"]["total_estimated_value"] == 0
    assert analysis["overall_risk_level"] == "low"


def test_scan_requires_text(client):
    assert client.post("/scan", json={}).status_code == 422


def test_scan_size_limit(client, monkeypatch):
    monkeypatch.setattr(app_module, "MAX_TEXT_CHARS", 10)

    resp = client.post("/scan", json={"text": "x" * 11})
    assert resp.status_code == 413

    resp = client.post("/scan/quick", json={"text": "x" * 11})
    assert resp.status_code == 413


def test_quick_scan(client):
    resp = client.post("/scan/quick", json={"text": "We installed solar panels."})
    assert resp.status_code == 200
    assert resp.json() == {
        "is_rd_eligible": False,
        "is_training_eligible": False,
        "is_green_eligible": True,
        "total_estimated_value": 15000,
    }


def test_scan_text_with_unpaired_surrogate(client):
    resp = client.post(
        "/scan",
        content=b'{"text": "engineer \\ud800"}',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 200

    analysis = resp.json()["analysis"]
    assert analysis["source"]["content_hash"] == content_hash("engineer \ud800")
    assert analysis["all_matches"][0]["keyword"] == "engineer"


def test_quick_scan_unexpected_failure(client, monkeypatch):
    def broken(text, scanner=None):
        raise RuntimeError("rules unavailable")

    monkeypatch.setattr(app_module, "quick_eligibility_check", broken)

    resp = client.post("/scan/quick", json={"text": "solar"})
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Scan failed: rules unavailable"


def test_text_scans_run_in_threadpool():
    # Plain def endpoints are dispatched to the threadpool by FastAPI
    assert not inspect.iscoroutinefunction(app_module.scan_endpoint)
    assert not inspect.iscoroutinefunction(app_module.quick_scan_endpoint)


# =============================================================================
# PDF SCANS
# =============================================================================

def test_scan_pdf(client):
    resp = client.post(
        "/scan/pdf",
        files={"file": ("memo.pdf", pdf_bytes(SCENARIO_A), "application/pdf")},
    )
    assert resp.status_code == 200

    data = resp.json()
    assert data["analysis"]["is_rd_eligible"] is True
    assert data["document_info"]["filename"] == "memo.pdf"
    assert data["document_info"]["source"] == "pdf_text"
    assert data["document_info"]["pages"] == 1


def test_scan_pdf_runs_off_event_loop(client, monkeypatch):
    calls = []

    async def recording(func, *args, **kwargs):
        calls.append(func.__name__)
        return func(*args, **kwargs)

    monkeypatch.setattr(app_module, "run_in_threadpool", recording)

    resp = client.post(
        "/scan/pdf",
        files={"file": ("memo.pdf", pdf_bytes("solar panels"), "application/pdf")},
    )
    assert resp.status_code == 200
    assert calls == ["scan_pdf_file"]


def test_scan_pdf_rejects_other_types(client):
    resp = client.post("/scan/pdf", files={"file": ("memo.txt", b"hello", "text/plain")})
    assert resp.status_code == 415


def test_scan_pdf_rejects_empty_upload(client):
    resp = client.post("/scan/pdf", files={"file": ("memo.pdf", b"", "application/pdf")})
    assert resp.status_code == 400


def test_scan_pdf_invalid_document(client):
    resp = client.post("/scan/pdf", files={"file": ("memo.pdf", b"not a pdf", "application/pdf")})
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "INVALID_FILE"


# =============================================================================
# SERVER LAUNCHER
# =============================================================================

def test_server_command():
    from start_server import build_command

    single = build_command("127.0.0.1", 9000, 1)
    assert single[-5:] == ["--host", "127.0.0.1", "--port", "9000", "--reload"]

    multi = build_command("0.0.0.0", 8000, 4)
    assert multi[-2:] == ["--workers", "4"]
    assert "--reload" not in multi
