"""Tests for backend/templates/__init__.py.

Tests cover:
- get_template_list() - Listing available rule templates
- get_template() - Getting a specific template
- apply_template() - Filling placeholders into a rule payload
- Template YAML file validation
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from conftest import NOW

EXPECTED_TEMPLATES = [
    "filing_deadline_90_days",
    "minimum_delay_duration",
    "require_receipts_high_amount",
    "show_on_amount_threshold",
    "show_question_on_value",
    "validate_amount_range",
    "validate_future_date",
]


class TestGetTemplateList:
    """Tests for get_template_list function."""

    def test_includes_expected_templates(self):
        """Test that the bundled templates are all listed."""
        from templates import get_template_list

        template_ids = [t["id"] for t in get_template_list()]
        for expected_id in EXPECTED_TEMPLATES:
            assert expected_id in template_ids, f"Expected template '{expected_id}' not found"

    def test_templates_have_required_fields(self):
        """Test that each template has required metadata fields."""
        from templates import get_template_list

        for template in get_template_list():
            for key in ("id", "name", "description", "category", "rule_type", "placeholders"):
                assert key in template, f"Template missing '{key}': {template}"

    def test_templates_sorted_by_name(self):
        """Test that templates are sorted alphabetically by name."""
        from templates import get_template_list

        names = [t["name"] for t in get_template_list()]
        assert names == sorted(names)

    def test_handles_empty_directory(self, tmp_path: Path):
        """Test that an empty templates directory lists nothing."""
        import config
        from templates import get_template_list

        with patch.object(config, "RULES_TEMPLATES_DIR", str(tmp_path)):
            assert get_template_list() == []

    def test_skips_malformed_yaml(self, tmp_path: Path):
        """Test that malformed YAML files are skipped."""
        import config
        from templates import get_template_list

        (tmp_path / "malformed.yaml").write_text("not: valid: yaml: {{{{")
        (tmp_path / "valid.yaml").write_text(
            yaml.safe_dump({"name": "Valid Template", "rule_type": "validation"})
        )

        with patch.object(config, "RULES_TEMPLATES_DIR", str(tmp_path)):
            templates = get_template_list()

        assert [t["id"] for t in templates] == ["valid"]
        assert templates[0]["rule_type"] == "validation"


class TestGetTemplate:
    """Tests for get_template function."""

    def test_returns_template(self):
        """Test that get_template returns the full template."""
        from templates import get_template

        template = get_template("validate_amount_range")
        assert template is not None
        assert template["id"] == "validate_amount_range"
        assert template["conditions"][0]["operator"] == "not_between"

    def test_returns_none_for_missing(self):
        from templates import get_template

        assert get_template("nonexistent_template") is None

    @pytest.mark.parametrize("template_id", ["../config", "..", "a/b", "a\\b"])
    def test_handles_path_traversal(self, template_id):
        """Test that path traversal attempts are rejected."""
        from templates import get_template

        assert get_template(template_id) is None


class TestApplyTemplate:
    """Tests for apply_template function."""

    def test_template_without_placeholders(self):
        from templates import apply_template

        payload = apply_template("validate_amount_range")
        assert payload["template_id"] == "validate_amount_range"
        assert payload["rule_type"] == "validation"
        assert payload["priority"] == 75
        assert payload["conditions"][0]["value"] == [100, 50000]

    def test_fills_placeholders(self):
        """Test that placeholder-only values keep the filled value's type."""
        from templates import apply_template

        payload = apply_template(
            "show_question_on_value",
            {"source_field": "trip_type", "expected_value": 2, "target_question": "q-legs"},
        )
        condition = payload["conditions"][0]
        assert condition == {"field": "trip_type", "operator": "equals", "value": 2}
        assert payload["actions"][0]["targetQuestionId"] == "q-legs"

    def test_missing_values(self):
        from rules.exceptions import TemplateError
        from templates import apply_template

        with pytest.raises(TemplateError, match="source_field"):
            apply_template("show_question_on_value", {"target_question": "q1"})

    def test_raises_for_missing_template(self):
        from rules.exceptions import TemplateError
        from templates import apply_template

        with pytest.raises(TemplateError, match="Template not found"):
            apply_template("nonexistent_template")

    def test_template_is_not_mutated(self):
        from templates import apply_template, get_template

        apply_template("validate_future_date", {"date_field": "return_date"})
        assert get_template("validate_future_date")["conditions"][0]["field"] == "{date_field}"

    def test_undeclared_placeholder(self, tmp_path: Path):
        import config
        from rules.exceptions import TemplateError
        from templates import apply_template

        (tmp_path / "sloppy.yaml").write_text(
            yaml.safe_dump(
                {
                    "name": "Sloppy",
                    "placeholders": [],
                    "actions": [{"type": "show_question", "targetQuestionId": "{question}"}],
                }
            )
        )
        with patch.object(config, "RULES_TEMPLATES_DIR", str(tmp_path)):
            with pytest.raises(TemplateError, match="question"):
                apply_template("sloppy")


class TestTemplateFiles:
    """Validation of the bundled template YAML files."""

    @pytest.mark.parametrize("template_id", EXPECTED_TEMPLATES)
    def test_applied_template_is_a_valid_rule(self, template_id):
        from rules.parser import validate_rule_payload
        from templates import apply_template, get_template

        values = {name: f"value_{name}" for name in get_template(template_id)["placeholders"]}
        payload = apply_template(template_id, values)
        payload["coverage_type_id"] = "ct-travel"
        assert validate_rule_payload(payload) == []

    @pytest.mark.parametrize(
        "days_ago,blocked", [(91, True), (90, False), (89, False)]
    )
    def test_filing_deadline(self, days_ago, blocked):
        from datetime import timedelta

        from rules import evaluate_rules
        from templates import apply_template

        rule = {"id": "deadline", **apply_template("filing_deadline_90_days")}
        incident = (NOW - timedelta(days=days_ago)).date().isoformat()
        result = evaluate_rules([rule], {"incident_date": incident}, now=NOW)
        assert result.blocked_submission is blocked

    @pytest.mark.parametrize("minutes,blocked", [(120, True), (180, False), (240, False)])
    def test_minimum_delay(self, minutes, blocked):
        from rules import evaluate_rules
        from templates import apply_template

        rule = {"id": "delay", **apply_template("minimum_delay_duration")}
        result = evaluate_rules([rule], {"delay_duration": minutes}, now=NOW)
        assert result.blocked_submission is blocked

    def test_future_date(self):
        from rules import evaluate_rules
        from templates import apply_template

        rule = {"id": "future", **apply_template("validate_future_date", {"date_field": "return_date"})}
        past = evaluate_rules([rule], {"return_date": "2025-06-01"}, now=NOW)
        future = evaluate_rules([rule], {"return_date": "2025-07-01"}, now=NOW)
        assert past.error_messages == ["Date must be in the future"]
        assert future.passed is True


class TestTemplateEndpoints:
    """Tests for the template API routes."""

    def test_list_templates_endpoint(self, client):
        response = client.get("/api/rules/templates")
        assert response.status_code == 200
        ids = [t["id"] for t in response.json()["templates"]]
        assert "require_receipts_high_amount" in ids

    def test_get_template_endpoint(self, client):
        response = client.get("/api/rules/templates/validate_amount_range")
        assert response.status_code == 200
        assert response.json()["name"] == "Validate Amount Range"

    def test_get_template_not_found(self, client):
        response = client.get("/api/rules/templates/nonexistent")
        assert response.status_code == 404

    def test_apply_template_endpoint(self, client, coverage_type_id):
        response = client.post(
            "/api/rules/templates/show_on_amount_threshold/apply",
            json={"values": {"target_question": "q-itemized"}, "coverage_type_id": coverage_type_id},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["actions"][0]["targetQuestionId"] == "q-itemized"

    def test_apply_template_missing_values(self, client):
        response = client.post("/api/rules/templates/show_on_amount_threshold/apply", json={})
        assert response.status_code == 422

    def test_apply_template_not_found(self, client):
        response = client.post("/api/rules/templates/nonexistent/apply", json={})
        assert response.status_code == 404
