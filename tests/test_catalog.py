"""Tests for the rule editor catalog and priority helpers."""

from __future__ import annotations

import pytest

from rules.catalog import (
    OPERATOR_DISPLAY_NAMES,
    describe_action,
    describe_condition,
    get_catalog,
    operator_display_name,
    operator_requires_array,
    operator_requires_date,
    operator_requires_no_value,
    operators_for_field_type,
)
from rules.models import (
    ActionType,
    CalculateValue,
    Condition,
    RequireDocument,
    RuleOperator,
    SetValue,
    ShowQuestion,
    ShowWarning,
    Validate,
)
from rules.priorities import priority_label, suggest_priority
from rules.registry import OperatorRegistry


class TestOperators:
    def test_every_operator_has_a_display_name(self):
        assert set(OPERATOR_DISPLAY_NAMES) == set(RuleOperator)

    def test_unknown_operator_display_name(self):
        assert operator_display_name("sounds_like") == "sounds_like"

    def test_value_shape(self):
        assert operator_requires_array("between")
        assert operator_requires_array(RuleOperator.IN)
        assert not operator_requires_array("equals")
        assert operator_requires_date("date_after")
        assert operator_requires_no_value("is_empty")
        assert not operator_requires_no_value("sounds_like")

    def test_operators_for_field_type(self):
        assert RuleOperator.BETWEEN in operators_for_field_type("number")
        assert operators_for_field_type("file") == [RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY]
        assert operators_for_field_type("unknown") == []


class TestDescriptions:
    @pytest.mark.parametrize(
        "condition,expected",
        [
            (Condition("claim_amount", RuleOperator.GREATER_THAN, 1000), "claim_amount Greater Than 1000"),
            (Condition("claim_amount", RuleOperator.BETWEEN, [100, 500]), "claim_amount Between [100, 500]"),
            (Condition("notes", RuleOperator.IS_EMPTY), "notes Is Empty"),
            (
                Condition("incident_date", RuleOperator.DATE_BEFORE, {"type": "relative", "days": -90}),
                "incident_date Date Before now -90 days",
            ),
        ],
    )
    def test_describe_condition(self, condition, expected):
        assert describe_condition(condition) == expected

    @pytest.mark.parametrize(
        "action,expected",
        [
            (ShowQuestion("q1"), "Show Question: q1"),
            (Validate(), "Validate: Validation failed"),
            (ShowWarning(error_message="Check"), "Show Warning: Check"),
            (RequireDocument(("receipt", "invoice")), "Require Document: receipt, invoice"),
            (SetValue("tier", "gold"), "Set Value: tier = gold"),
            (CalculateValue("total", formula={"+": [1, 2]}), "Calculate Value: total"),
        ],
    )
    def test_describe_action(self, action, expected):
        assert describe_action(action) == expected


class TestCatalog:
    def test_catalog_contents(self):
        catalog = get_catalog()
        assert [o["id"] for o in catalog["operators"]] == [o.value for o in RuleOperator]
        assert [a["id"] for a in catalog["actions"]] == [a.value for a in ActionType]
        assert catalog["priorities"]["critical"] == 100
        between = next(o for o in catalog["operators"] if o["id"] == "between")
        assert between["requires_array"] is True

    def test_catalog_offers_only_registered_operators(self):
        registry = OperatorRegistry()
        registry.register(RuleOperator.REGEX)(lambda value, literal, context: False)
        registry.register(RuleOperator.EQUALS)(lambda value, literal, context: False)
        catalog = get_catalog(registry)
        assert [o["id"] for o in catalog["operators"]] == ["equals", "regex"]


class TestPriorities:
    @pytest.mark.parametrize(
        "priority,label",
        [(150, "Critical"), (100, "Critical"), (80, "High"), (50, "Medium"), (25, "Low"), (0, "Normal"), (-5, "Normal")],
    )
    def test_priority_label(self, priority, label):
        assert priority_label(priority) == label

    def test_suggest_priority(self):
        assert suggest_priority("eligibility") == 100
        assert suggest_priority("calculation") == 10
        assert suggest_priority("unknown") == 0
        assert suggest_priority(None) == 0
