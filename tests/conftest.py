"""Pytest configuration and fixtures."""

from __future__ import annotations

import atexit
import os
import sys
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

# Add backend to path for imports
backend_path = str(Path(__file__).parent.parent / "backend")
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)

# Set test database path before importing app
# Use a temp file instead of :memory: since every operation opens its own connection
_temp_db = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_temp_db_path = _temp_db.name
_temp_db.close()
os.environ["DB_PATH"] = _temp_db_path
os.environ.setdefault("EVALUATE_RATE_LIMIT", "10000/minute")


def _cleanup_test_db() -> None:
    """Clean up temporary test database file."""
    if os.path.exists(_temp_db_path):
        try:
            os.unlink(_temp_db_path)
        except OSError:
            pass  # File may already be deleted or locked


# Register cleanup to run at exit
atexit.register(_cleanup_test_db)


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_db() -> None:
    """Pytest fixture to ensure test database cleanup after session."""
    yield
    _cleanup_test_db()


# Fixed evaluation time so relative dates are deterministic
NOW = datetime(2025, 6, 15, 12, 0, 0)


class InMemoryRepository:
    """Rule repository backed by a dict of coverage type id -> rule rows."""

    def __init__(self, rules: dict[str, list[Any]] | None = None):
        self.rules = rules or {}
        self.calls: list[str] = []

    def list_active_rules(self, coverage_type_id: str) -> list[Any]:
        self.calls.append(coverage_type_id)
        return list(self.rules.get(coverage_type_id, []))


class FailingRepository:
    """Rule repository whose backing store is unreachable."""

    def list_active_rules(self, coverage_type_id: str) -> list[Any]:
        raise ConnectionError("database unavailable")


def make_rule(
    rule_id: str = "rule-1",
    conditions: list[dict[str, Any]] | None = None,
    actions: list[dict[str, Any]] | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build a raw rule row as a repository would return it."""
    rule = {
        "id": rule_id,
        "coverage_type_id": "ct-travel",
        "name": f"Rule {rule_id}",
        "rule_type": "conditional",
        "conditions": conditions if conditions is not None else [],
        "actions": actions if actions is not None else [],
        "priority": 0,
        "is_active": True,
    }
    rule.update(fields)
    return rule


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store(tmp_path):
    """A fresh rule store in its own database file."""
    from rules.store import RuleStore

    return RuleStore(tmp_path / "rules.db")


@pytest.fixture
def coverage_type_id() -> str:
    """A coverage type id unique to the test, for tests sharing the app database."""
    return f"ct-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def client():
    """Create test client for the FastAPI app."""
    from fastapi.testclient import TestClient

    from app import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def rule_payload(coverage_type_id: str) -> dict[str, Any]:
    """A valid rule creation payload."""
    return {
        "coverage_type_id": coverage_type_id,
        "name": "Require receipts over 1000",
        "rule_type": "document",
        "conditions": [
            {"field": "claim_amount", "operator": "greater_than", "value": 1000}
        ],
        "actions": [
            {
                "type": "require_document",
                "documentTypes": ["medical_bill"],
                "errorMessage": "Upload the medical bill",
            }
        ],
        "priority": 50,
    }
