"""Operator and action catalog for the rule editor."""

from __future__ import annotations

from typing import Any

from .models import ActionType, Condition, RuleOperator, action_to_dict
from .operators import default_registry
from .parser import LIST_OPERATORS, NO_VALUE_OPERATORS
from .priorities import RulePriority
from .registry import OperatorRegistry

OPERATOR_DISPLAY_NAMES: dict[RuleOperator, str] = {
    RuleOperator.EQUALS: "Equals",
    RuleOperator.NOT_EQUALS: "Not Equals",
    RuleOperator.CONTAINS: "Contains",
    RuleOperator.NOT_CONTAINS: "Does Not Contain",
    RuleOperator.GREATER_THAN: "Greater Than",
    RuleOperator.GREATER_THAN_OR_EQUAL: "Greater Than or Equal",
    RuleOperator.LESS_THAN: "Less Than",
    RuleOperator.LESS_THAN_OR_EQUAL: "Less Than or Equal",
    RuleOperator.BETWEEN: "Between",
    RuleOperator.NOT_BETWEEN: "Not Between",
    RuleOperator.IN: "Is One Of",
    RuleOperator.NOT_IN: "Is Not One Of",
    RuleOperator.IS_EMPTY: "Is Empty",
    RuleOperator.IS_NOT_EMPTY: "Is Not Empty",
    RuleOperator.REGEX: "Matches Pattern",
    RuleOperator.STARTS_WITH: "Starts With",
    RuleOperator.ENDS_WITH: "Ends With",
    RuleOperator.DATE_BEFORE: "Date Before",
    RuleOperator.DATE_AFTER: "Date After",
    RuleOperator.DATE_BETWEEN: "Date Between",
}

ACTION_DISPLAY_NAMES: dict[ActionType, str] = {
    ActionType.SHOW_QUESTION: "Show Question",
    ActionType.HIDE_QUESTION: "Hide Question",
    ActionType.VALIDATE: "Validate",
    ActionType.BLOCK_SUBMISSION: "Block Submission",
    ActionType.SHOW_WARNING: "Show Warning",
    ActionType.REQUIRE_DOCUMENT: "Require Document",
    ActionType.SET_VALUE: "Set Value",
    ActionType.CALCULATE_VALUE: "Calculate Value",
}

ACTION_DESCRIPTIONS: dict[ActionType, str] = {
    ActionType.SHOW_QUESTION: "Make a question visible",
    ActionType.HIDE_QUESTION: "Hide a question",
    ActionType.VALIDATE: "Add a validation error",
    ActionType.BLOCK_SUBMISSION: "Prevent the claim from being submitted",
    ActionType.SHOW_WARNING: "Display a non-blocking warning",
    ActionType.REQUIRE_DOCUMENT: "Require supporting documents",
    ActionType.SET_VALUE: "Set a field to a fixed value",
    ActionType.CALCULATE_VALUE: "Calculate field values based on formulas",
}

_EMPTY_CHECKS = [RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY]

OPERATORS_BY_FIELD_TYPE: dict[str, list[RuleOperator]] = {
    "text": [
        RuleOperator.EQUALS,
        RuleOperator.NOT_EQUALS,
        RuleOperator.CONTAINS,
        RuleOperator.NOT_CONTAINS,
        RuleOperator.STARTS_WITH,
        RuleOperator.ENDS_WITH,
        RuleOperator.REGEX,
        *_EMPTY_CHECKS,
    ],
    "number": [
        RuleOperator.EQUALS,
        RuleOperator.NOT_EQUALS,
        RuleOperator.GREATER_THAN,
        RuleOperator.GREATER_THAN_OR_EQUAL,
        RuleOperator.LESS_THAN,
        RuleOperator.LESS_THAN_OR_EQUAL,
        RuleOperator.BETWEEN,
        RuleOperator.NOT_BETWEEN,
        *_EMPTY_CHECKS,
    ],
    "date": [
        RuleOperator.EQUALS,
        RuleOperator.NOT_EQUALS,
        RuleOperator.DATE_BEFORE,
        RuleOperator.DATE_AFTER,
        RuleOperator.DATE_BETWEEN,
        *_EMPTY_CHECKS,
    ],
    "select": [
        RuleOperator.EQUALS,
        RuleOperator.NOT_EQUALS,
        RuleOperator.IN,
        RuleOperator.NOT_IN,
        RuleOperator.CONTAINS,
        RuleOperator.NOT_CONTAINS,
        *_EMPTY_CHECKS,
    ],
    "file": list(_EMPTY_CHECKS),
}

DATE_OPERATORS = frozenset(
    {RuleOperator.DATE_BEFORE, RuleOperator.DATE_AFTER, RuleOperator.DATE_BETWEEN}
)


def _as_operator(operator: RuleOperator | str) -> RuleOperator | None:
    try:
        return RuleOperator(operator)
    except ValueError:
        return None


def operator_display_name(operator: RuleOperator | str) -> str:
    known = _as_operator(operator)
    return OPERATOR_DISPLAY_NAMES[known] if known else str(operator)


def action_display_name(action_type: ActionType | str) -> str:
    try:
        return ACTION_DISPLAY_NAMES[ActionType(action_type)]
    except ValueError:
        return str(action_type)


def operators_for_field_type(field_type: str) -> list[RuleOperator]:
    return list(OPERATORS_BY_FIELD_TYPE.get(field_type, []))


def operator_requires_array(operator: RuleOperator | str) -> bool:
    return _as_operator(operator) in LIST_OPERATORS


def operator_requires_date(operator: RuleOperator | str) -> bool:
    return _as_operator(operator) in DATE_OPERATORS


def operator_requires_no_value(operator: RuleOperator | str) -> bool:
    return _as_operator(operator) in NO_VALUE_OPERATORS


def _format_value(value: Any) -> str:
    if isinstance(value, dict) and value.get("type") == "relative":
        parts = [
            f"{value[unit]:+d} {unit}"
            for unit in ("days", "months", "years")
            if isinstance(value.get(unit), int) and value[unit]
        ]
        base = value.get("from") or "now"
        return f"{base} {' '.join(parts)}".strip()
    return str(value)


def describe_condition(condition: Condition) -> str:
    """Human-readable form, e.g. ``claim_amount Greater Than 1000``."""
    operator = operator_display_name(condition.operator)
    if operator_requires_no_value(condition.operator):
        return f"{condition.field} {operator}"
    if isinstance(condition.value, (list, tuple)):
        values = ", ".join(_format_value(v) for v in condition.value)
        return f"{condition.field} {operator} [{values}]"
    return f"{condition.field} {operator} {_format_value(condition.value)}"


def describe_action(action: Any) -> str:
    """Human-readable form of a parsed action."""
    payload = action_to_dict(action)
    action_type = action.type
    name = ACTION_DISPLAY_NAMES[action_type]
    if action_type in (ActionType.SHOW_QUESTION, ActionType.HIDE_QUESTION):
        return f"{name}: {payload['targetQuestionId']}"
    if action_type is ActionType.VALIDATE:
        return f"{name}: {payload.get('errorMessage') or 'Validation failed'}"
    if action_type is ActionType.BLOCK_SUBMISSION:
        return f"{name}: {payload.get('errorMessage') or 'Submission blocked'}"
    if action_type is ActionType.SHOW_WARNING:
        message = payload.get("warningMessage") or payload.get("errorMessage") or "Warning"
        return f"{name}: {message}"
    if action_type is ActionType.REQUIRE_DOCUMENT:
        return f"{name}: {', '.join(payload['documentTypes'])}"
    if action_type is ActionType.SET_VALUE:
        return f"{name}: {payload['targetField']} = {payload.get('value')}"
    return f"{name}: {payload['targetField']}"


def get_catalog(registry: OperatorRegistry = default_registry) -> dict[str, Any]:
    """Everything the rule editor needs to build conditions and actions.

    Only operators implemented by ``registry`` are offered.
    """
    order = list(RuleOperator)
    return {
        "operators": [
            {
                "id": operator.value,
                "name": OPERATOR_DISPLAY_NAMES[operator],
                "requires_array": operator_requires_array(operator),
                "requires_date": operator_requires_date(operator),
                "requires_no_value": operator_requires_no_value(operator),
            }
            for operator in sorted(registry.operators(), key=order.index)
        ],
        "actions": [
            {
                "id": action_type.value,
                "name": ACTION_DISPLAY_NAMES[action_type],
                "description": ACTION_DESCRIPTIONS[action_type],
            }
            for action_type in ActionType
        ],
        "field_types": {
            field_type: [operator.value for operator in operators]
            for field_type, operators in OPERATORS_BY_FIELD_TYPE.items()
        },
        "priorities": {level.name.lower(): int(level) for level in RulePriority},
    }
