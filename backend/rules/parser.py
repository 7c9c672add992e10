"""Boundary parsing of persisted rules into typed definitions.

Rules are stored as opaque JSON (``conditions`` and ``actions`` columns) and
may have been written by older versions of the admin UI. Everything is
validated here, once, so the evaluator only ever sees ``RuleDefinition``
instances.

Two modes are offered:

- ``parse_rule`` is lenient: problems that can be contained (an unknown
  action type, an invalid logical operator) are reported as diagnostics and
  the rest of the rule survives. A malformed condition list makes the whole
  rule unparseable, since dropping one condition would widen what the rule
  matches.
- ``validate_rule_payload`` is strict and returns every problem found, for
  the admin API to reject a payload before it is stored.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from .exceptions import RuleValidationError
from .models import (
    DEFAULT_ALLOWED_FORMATS,
    DEFAULT_MAX_FILES,
    DEFAULT_MIN_FILES,
    Action,
    ActionType,
    BlockSubmission,
    CalculateValue,
    Condition,
    Diagnostic,
    HideQuestion,
    LogicalOperator,
    RequireDocument,
    RuleDefinition,
    RuleOperator,
    RuleRecord,
    RuleType,
    SetValue,
    ShowQuestion,
    ShowWarning,
    Validate,
)
from .operators import compile_pattern

logger = logging.getLogger(__name__)

LEGACY_DOCUMENT_ACTION = "request_documents"
LEGACY_DOCUMENT_TYPE = "supporting_document"

# Operators whose literal must be a list, and the list length when fixed.
LIST_OPERATORS: dict[RuleOperator, int | None] = {
    RuleOperator.IN: None,
    RuleOperator.NOT_IN: None,
    RuleOperator.BETWEEN: 2,
    RuleOperator.NOT_BETWEEN: 2,
    RuleOperator.DATE_BETWEEN: 2,
}
NO_VALUE_OPERATORS = frozenset({RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY})


class EntryError(ValueError):
    """A single condition or action entry that cannot be used."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


def _get(entry: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key among camelCase/snake_case spellings."""
    for key in keys:
        if key in entry and entry[key] is not None:
            return entry[key]
    return default


def load_json_list(raw: Any, path: str) -> list[Any]:
    """Decode a conditions/actions column: list, JSON text, or None."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as e:
            raise EntryError(path, f"invalid JSON ({e.msg})") from e
        if decoded is None:
            return []
        if isinstance(decoded, list):
            return decoded
        raise EntryError(path, f"expected a JSON array, got {type(decoded).__name__}")
    raise EntryError(path, f"expected a list, got {type(raw).__name__}")


def _to_int(value: Any, path: str, default: int | None) -> int | None:
    if value is None:
        return default
    if isinstance(value, bool):
        raise EntryError(path, "expected an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise EntryError(path, "expected an integer")


def _to_str_list(value: Any, path: str) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not value:
        raise EntryError(path, "expected a non-empty list of strings")
    items = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise EntryError(path, "expected a non-empty list of strings")
        items.append(item.strip())
    return tuple(items)


def _required_str(entry: Mapping[str, Any], path: str, *keys: str) -> str:
    value = _get(entry, *keys)
    if not isinstance(value, str) or not value.strip():
        raise EntryError(f"{path}.{keys[0]}", "is required")
    return value.strip()


def _message(entry: Mapping[str, Any]) -> str | None:
    value = _get(entry, "errorMessage", "error_message", "message")
    return value if isinstance(value, str) and value else None


# Conditions


def parse_logical_operator(value: Any, path: str) -> LogicalOperator:
    if value is None:
        return LogicalOperator.AND
    if isinstance(value, str):
        try:
            return LogicalOperator(value.strip().upper())
        except ValueError:
            pass
    raise EntryError(path, f"invalid logical operator {value!r}")


def parse_condition(
    entry: Any, index: int, warnings: list[EntryError]
) -> Condition:
    """Parse one condition; soft problems are appended to ``warnings``."""
    path = f"conditions[{index}]"
    if not isinstance(entry, Mapping):
        raise EntryError(path, "expected an object")

    field_name = entry.get("field")
    if not isinstance(field_name, str) or not field_name:
        raise EntryError(f"{path}.field", "must be a non-empty string")
    operator_name = entry.get("operator")
    if not isinstance(operator_name, str) or not operator_name:
        raise EntryError(f"{path}.operator", "must be a non-empty string")

    try:
        operator: RuleOperator | str = RuleOperator(operator_name)
    except ValueError:
        # Kept raw so evaluation reports it and treats the condition as false.
        operator = operator_name
        warnings.append(EntryError(f"{path}.operator", f"unknown operator '{operator_name}'"))

    try:
        logical = parse_logical_operator(
            _get(entry, "logicalOperator", "logical_operator"), f"{path}.logicalOperator"
        )
    except EntryError as e:
        warnings.append(e)
        logical = LogicalOperator.AND

    return Condition(
        field=field_name,
        operator=operator,
        value=entry.get("value"),
        logical_operator=logical,
    )


def parse_conditions(raw: Any) -> tuple[tuple[Condition, ...], list[EntryError]]:
    """Parse a conditions column.

    Raises:
        EntryError: if the column or any entry is malformed.
    """
    warnings: list[EntryError] = []
    entries = load_json_list(raw, "conditions")
    conditions = tuple(
        parse_condition(entry, index, warnings) for index, entry in enumerate(entries)
    )
    return conditions, warnings


# Actions


def _parse_require_document(entry: Mapping[str, Any], path: str) -> RequireDocument:
    document_types = _to_str_list(
        _get(entry, "documentTypes", "document_types"), f"{path}.documentTypes"
    )
    min_files = _to_int(_get(entry, "minFiles", "min_files"), f"{path}.minFiles", DEFAULT_MIN_FILES)
    max_files = _to_int(_get(entry, "maxFiles", "max_files"), f"{path}.maxFiles", DEFAULT_MAX_FILES)
    if min_files < 0:
        raise EntryError(f"{path}.minFiles", "must not be negative")
    if max_files < 1:
        raise EntryError(f"{path}.maxFiles", "must be at least 1")
    if min_files > max_files:
        raise EntryError(path, "minFiles must not exceed maxFiles")

    raw_formats = _get(entry, "allowedFormats", "allowed_formats")
    if raw_formats is None:
        allowed_formats = DEFAULT_ALLOWED_FORMATS
    else:
        allowed_formats = tuple(
            fmt.lower().lstrip(".")
            for fmt in _to_str_list(raw_formats, f"{path}.allowedFormats")
        )

    max_file_size = _to_int(
        _get(entry, "maxFileSize", "max_file_size"), f"{path}.maxFileSize", None
    )
    if max_file_size is not None and max_file_size <= 0:
        raise EntryError(f"{path}.maxFileSize", "must be positive")

    target = _get(entry, "targetQuestionId", "target_question_id")
    return RequireDocument(
        document_types=document_types,
        min_files=min_files,
        max_files=max_files,
        allowed_formats=allowed_formats,
        max_file_size=max_file_size,
        error_message=_message(entry),
        target_question_id=target if isinstance(target, str) and target else None,
    )


def _parse_formula(entry: Mapping[str, Any], path: str) -> Any:
    formula = entry.get("formula")
    if isinstance(formula, str):
        if not formula.strip():
            return None
        try:
            return json.loads(formula)
        except json.JSONDecodeError as e:
            raise EntryError(f"{path}.formula", "must be a JSON Logic expression") from e
    return formula


def parse_action(entry: Any, index: int) -> Action:
    path = f"actions[{index}]"
    if not isinstance(entry, Mapping):
        raise EntryError(path, "expected an object")

    if "type" not in entry and entry.get("action") == LEGACY_DOCUMENT_ACTION:
        return RequireDocument(
            document_types=(LEGACY_DOCUMENT_TYPE,),
            error_message=_message(entry),
        )

    type_name = entry.get("type")
    if not isinstance(type_name, str):
        raise EntryError(f"{path}.type", "is required")
    try:
        action_type = ActionType(type_name)
    except ValueError:
        raise EntryError(f"{path}.type", f"unknown action type '{type_name}'") from None

    if action_type is ActionType.SHOW_QUESTION:
        return ShowQuestion(_required_str(entry, path, "targetQuestionId", "target_question_id"))
    if action_type is ActionType.HIDE_QUESTION:
        return HideQuestion(_required_str(entry, path, "targetQuestionId", "target_question_id"))
    if action_type is ActionType.VALIDATE:
        return Validate(error_message=_message(entry))
    if action_type is ActionType.BLOCK_SUBMISSION:
        return BlockSubmission(error_message=_message(entry))
    if action_type is ActionType.SHOW_WARNING:
        warning = _get(entry, "warningMessage", "warning_message")
        return ShowWarning(
            warning_message=warning if isinstance(warning, str) and warning else None,
            error_message=_message(entry),
        )
    if action_type is ActionType.REQUIRE_DOCUMENT:
        return _parse_require_document(entry, path)
    if action_type is ActionType.SET_VALUE:
        return SetValue(
            target_field=_required_str(entry, path, "targetField", "target_field"),
            value=entry.get("value"),
        )
    # ActionType.CALCULATE_VALUE
    target_field = _required_str(entry, path, "targetField", "target_field")
    formula = _parse_formula(entry, path)
    value = entry.get("value")
    if formula is None and value is None:
        raise EntryError(path, "calculate_value needs a formula or a value")
    return CalculateValue(target_field=target_field, formula=formula, value=value)


def parse_actions(raw: Any) -> tuple[tuple[Action, ...], list[EntryError]]:
    """Parse an actions column, dropping unusable entries.

    Raises:
        EntryError: if the column itself is not a list.
    """
    dropped: list[EntryError] = []
    actions: list[Action] = []
    for index, entry in enumerate(load_json_list(raw, "actions")):
        try:
            actions.append(parse_action(entry, index))
        except EntryError as e:
            dropped.append(e)
    return tuple(actions), dropped


# Rules


def _record_value(record: RuleRecord | Mapping[str, Any], *keys: str) -> Any:
    if isinstance(record, RuleRecord):
        return getattr(record, keys[0], None)
    return _get(record, *keys)


def parse_rule(
    record: RuleRecord | Mapping[str, Any],
) -> tuple[RuleDefinition | None, list[Diagnostic]]:
    """Parse a stored rule. Returns ``(None, diagnostics)`` when unusable."""
    rule_id = _record_value(record, "id")
    rule_id = str(rule_id) if rule_id is not None else None
    diagnostics: list[Diagnostic] = []

    if not rule_id:
        return None, [Diagnostic(None, "Rule without an id skipped")]

    try:
        conditions, condition_warnings = parse_conditions(
            _record_value(record, "conditions")
        )
    except EntryError as e:
        return None, [Diagnostic(rule_id, f"Rule skipped, malformed {e}")]
    diagnostics.extend(Diagnostic(rule_id, str(w)) for w in condition_warnings)

    try:
        actions, dropped = parse_actions(_record_value(record, "actions"))
    except EntryError as e:
        return None, [Diagnostic(rule_id, f"Rule skipped, malformed {e}")]
    diagnostics.extend(Diagnostic(rule_id, f"Action dropped, {e}") for e in dropped)

    try:
        priority = _to_int(_record_value(record, "priority"), "priority", 0)
    except EntryError as e:
        diagnostics.append(Diagnostic(rule_id, f"{e}, using 0"))
        priority = 0

    raw_type = _record_value(record, "rule_type", "ruleType")
    try:
        rule_type: RuleType | str = RuleType(raw_type)
    except ValueError:
        rule_type = raw_type if isinstance(raw_type, str) else RuleType.CONDITIONAL

    is_active = _record_value(record, "is_active", "isActive")
    definition = RuleDefinition(
        id=rule_id,
        coverage_type_id=_record_value(record, "coverage_type_id", "coverageTypeId"),
        name=_record_value(record, "name") or "",
        rule_type=rule_type,
        conditions=conditions,
        actions=actions,
        priority=priority,
        is_active=True if is_active is None else bool(is_active),
        question_id=_record_value(record, "question_id", "questionId"),
        description=_record_value(record, "description"),
        error_message=_record_value(record, "error_message", "errorMessage"),
    )
    return definition, diagnostics


def _literal_problems(condition: Condition, path: str) -> list[dict[str, str]]:
    if not isinstance(condition.operator, RuleOperator):
        return []
    operator = condition.operator
    if operator in NO_VALUE_OPERATORS:
        return []
    if operator in LIST_OPERATORS:
        size = LIST_OPERATORS[operator]
        value = condition.value
        if not isinstance(value, (list, tuple)) or (size is not None and len(value) != size):
            expected = f"a list of {size} values" if size else "a list of values"
            return [{"field": f"{path}.value", "message": f"{operator.value} expects {expected}"}]
        return []
    if condition.value is None:
        return [{"field": f"{path}.value", "message": "is required"}]
    if operator is RuleOperator.REGEX:
        if not isinstance(condition.value, str) or compile_pattern(condition.value) is None:
            return [{"field": f"{path}.value", "message": "is not a valid regular expression"}]
    return []


def validate_rule_payload(
    payload: Mapping[str, Any], require_scope: bool = True
) -> list[dict[str, str]]:
    """Strictly validate an authored rule; returns a list of problems.

    Each problem is ``{"field": <path>, "message": <text>}``. An empty list
    means the payload can be stored.
    """
    problems: list[dict[str, str]] = []

    def problem(e: EntryError) -> None:
        problems.append({"field": e.path, "message": e.message})

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        problems.append({"field": "name", "message": "is required"})
    if require_scope:
        scope = _get(payload, "coverage_type_id", "coverageTypeId")
        if not isinstance(scope, str) or not scope.strip():
            problems.append({"field": "coverage_type_id", "message": "is required"})

    rule_type = _get(payload, "rule_type", "ruleType")
    if rule_type is not None and rule_type not in {t.value for t in RuleType}:
        problems.append({"field": "rule_type", "message": f"unknown rule type {rule_type!r}"})
    try:
        _to_int(payload.get("priority"), "priority", 0)
    except EntryError as e:
        problem(e)

    try:
        entries = load_json_list(payload.get("conditions"), "conditions")
    except EntryError as e:
        problem(e)
        entries = []
    for index, entry in enumerate(entries):
        warnings: list[EntryError] = []
        try:
            condition = parse_condition(entry, index, warnings)
        except EntryError as e:
            problem(e)
            continue
        for warning in warnings:
            problem(warning)
        problems.extend(_literal_problems(condition, f"conditions[{index}]"))

    try:
        actions = load_json_list(payload.get("actions"), "actions")
    except EntryError as e:
        problem(e)
        actions = None
    if actions is not None:
        if not actions:
            problems.append({"field": "actions", "message": "at least one action is required"})
        for index, entry in enumerate(actions):
            try:
                parse_action(entry, index)
            except EntryError as e:
                problem(e)

    return problems


def ensure_valid_rule_payload(
    payload: Mapping[str, Any], require_scope: bool = True
) -> None:
    """Raise ``RuleValidationError`` when ``validate_rule_payload`` finds problems."""
    problems = validate_rule_payload(payload, require_scope=require_scope)
    if problems:
        logger.info(f"Rejected rule payload with {len(problems)} problem(s)")
        raise RuleValidationError("Invalid rule payload", problems)
