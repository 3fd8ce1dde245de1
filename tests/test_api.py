from __future__ import annotations

from fastapi.testclient import TestClient

from auditflow import api
from auditflow.engine.report import ReportGenerationError

client = TestClient(api.app)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_palette_matches_score_tiers():
    body = client.get("/palette").json()
    assert body["thresholds"] == {"Excellent": 90, "Good": 70, "Needs Improvement": 50}
    assert body["colors"]["Excellent"] == "#10B981"
    assert body["colors"]["Poor"] == "#EF4444"


def test_report_returns_pdf(audit_result, brand):
    response = client.post("/report", json={"result": audit_result, "brand": brand})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["x-report-pages"] == "5"
    assert 'filename="acme_digital_audit_client_co_2024-01-05.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_report_with_empty_body_uses_defaults():
    response = client.post("/report", json={})
    assert response.status_code == 200
    assert "auditflow_audit_audit_" in response.headers["content-disposition"]


def test_report_requires_token_when_configured(monkeypatch, audit_result):
    monkeypatch.setattr(api, "API_TOKEN", "secret")
    assert client.post("/report", json={"result": audit_result}).status_code == 401
    response = client.post("/report", json={"result": audit_result}, headers={"X-API-Token": "secret"})
    assert response.status_code == 200


def test_report_rejects_invalid_brand(audit_result):
    response = client.post("/report", json={"result": audit_result, "brand": {"accentColor": "purple"}})
    assert response.status_code == 422


def test_report_generation_failure_is_500(monkeypatch, audit_result):
    async def failing(result, brand):
        raise ReportGenerationError("could not assemble report document")

    monkeypatch.setattr(api, "generate_report_async", failing)
    response = client.post("/report", json={"result": audit_result})
    assert response.status_code == 500
    assert response.json()["detail"] == "could not assemble report document"
