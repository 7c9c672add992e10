"""Tests for the FastAPI application endpoints."""

from __future__ import annotations

from unittest.mock import patch

from conftest import FailingRepository
from fastapi.testclient import TestClient

from rules.exceptions import RuleStoreError


class TestHealthEndpoint:
    """Test the health check endpoint."""

    def test_health_returns_200(self, client: TestClient):
        """Test health endpoint returns 200."""
        response = client.get("/health")

        assert response.status_code == 200

    def test_health_returns_status(self, client: TestClient):
        """Test health endpoint returns status field."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert isinstance(data["rules"], int)

    def test_health_returns_timestamp(self, client: TestClient):
        """Test health endpoint returns timestamp."""
        data = client.get("/health").json()

        assert "timestamp" in data

    def test_health_degraded_when_store_fails(self, client: TestClient):
        with patch("app.get_default_store", side_effect=RuleStoreError("disk full")):
            data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["rules"] is None


class TestSubmissionCheckEndpoint:
    """Test POST /api/claims/submission-check."""

    def test_submission_allowed(self, client: TestClient, rule_payload: dict, coverage_type_id: str):
        client.post("/api/rules", json=rule_payload)
        response = client.post(
            "/api/claims/submission-check",
            json={
                "coverage_type_ids": [coverage_type_id],
                "answers": {"claim_amount": 1500},
                "files": [
                    {"filename": "bill.pdf", "size": 2048, "document_type": "medical_bill"}
                ],
            },
        )

        assert response.status_code == 200
        decision = response.json()["decision"]
        assert decision["can_submit"] is True
        assert decision["reasons"] == []
        assert decision["document_checks"][0]["accepted_files"] == ["bill.pdf"]

    def test_missing_document_refuses_submission(
        self, client: TestClient, rule_payload: dict, coverage_type_id: str
    ):
        client.post("/api/rules", json=rule_payload)
        response = client.post(
            "/api/claims/submission-check",
            json={"coverage_type_ids": [coverage_type_id], "answers": {"claim_amount": 1500}},
        )

        data = response.json()
        assert data["evaluation"]["passed"] is True
        assert data["decision"]["can_submit"] is False
        assert data["decision"]["reasons"] == ["Upload the medical bill"]

    def test_blocked_claim_refused(self, client: TestClient, coverage_type_id: str):
        client.post(
            "/api/rules",
            json={
                "coverage_type_id": coverage_type_id,
                "name": "Minimum delay",
                "rule_type": "eligibility",
                "conditions": [{"field": "delay_duration", "operator": "less_than", "value": 180}],
                "actions": [{"type": "block_submission", "errorMessage": "Delay too short"}],
            },
        )
        response = client.post(
            "/api/claims/submission-check",
            json={"coverage_type_ids": [coverage_type_id], "answers": {"delay_duration": 60}},
        )

        decision = response.json()["decision"]
        assert decision["can_submit"] is False
        assert decision["reasons"] == ["Delay too short"]

    def test_repository_failure_returns_503(self, client: TestClient):
        with patch("routes.claims.get_default_store", return_value=FailingRepository()):
            response = client.post(
                "/api/claims/submission-check", json={"coverage_type_ids": ["ct-any"]}
            )

        assert response.status_code == 503
