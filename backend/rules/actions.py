"""Action execution for triggered rules.

Handlers only mutate the pass-local accumulator; they perform no I/O.
Messages always come from the rule author: the action's own message, then
the rule's error message, then the rule name, then its id.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from json_logic import jsonLogic

from .models import (
    Action,
    ActionType,
    BlockSubmission,
    CalculateValue,
    DocumentRequirement,
    EvaluationAccumulator,
    EvaluationContext,
    HideQuestion,
    RequireDocument,
    RuleDefinition,
    RuleMessage,
    SetValue,
    ShowQuestion,
    ShowWarning,
    Validate,
)

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Any, RuleDefinition, EvaluationAccumulator, EvaluationContext], None]


def resolve_message(rule: RuleDefinition, *candidates: str | None) -> str:
    for candidate in candidates:
        if candidate:
            return candidate
    return rule.fallback_message()


def _show_question(
    action: ShowQuestion,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    accumulator.show_question(action.target_question_id)


def _hide_question(
    action: HideQuestion,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    accumulator.hide_question(action.target_question_id)


def _validate(
    action: Validate,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    message = resolve_message(rule, action.error_message)
    accumulator.add_error(RuleMessage(rule.id, message, rule.question_id))


def _block_submission(
    action: BlockSubmission,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    message = resolve_message(rule, action.error_message)
    accumulator.add_error(RuleMessage(rule.id, message, rule.question_id))
    accumulator.block(message)


def _show_warning(
    action: ShowWarning,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    message = resolve_message(rule, action.warning_message, action.error_message)
    accumulator.add_warning(RuleMessage(rule.id, message, rule.question_id))


def _require_document(
    action: RequireDocument,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    requirement = DocumentRequirement(
        rule_id=rule.id,
        question_id=action.target_question_id or rule.question_id,
        document_types=action.document_types,
        min_files=action.min_files,
        max_files=action.max_files,
        allowed_formats=action.allowed_formats,
        max_file_size=action.max_file_size,
        message=resolve_message(rule, action.error_message),
    )
    accumulator.add_document_requirement(requirement)


def _set_value(
    action: SetValue,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    accumulator.set_field_value(action.target_field, action.value)


def calculate(formula: Any, data: dict[str, Any]) -> Any:
    """Evaluate a JSON Logic formula against ``data``."""
    if isinstance(formula, str):
        raise ValueError("formula must be a JSON Logic expression, not a string")
    return jsonLogic(formula, data)


def _calculate_value(
    action: CalculateValue,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    if action.formula is None:
        value = action.value
    else:
        data = {**context.answers, **accumulator.field_values}
        try:
            value = calculate(action.formula, data)
        except Exception as e:
            accumulator.add_diagnostic(
                rule.id, f"Formula for '{action.target_field}' failed: {e}"
            )
            return
    if value is None:
        accumulator.add_diagnostic(
            rule.id, f"Formula for '{action.target_field}' produced no value"
        )
        return
    accumulator.set_field_value(action.target_field, value)


ACTION_HANDLERS: dict[ActionType, ActionHandler] = {
    ActionType.SHOW_QUESTION: _show_question,
    ActionType.HIDE_QUESTION: _hide_question,
    ActionType.VALIDATE: _validate,
    ActionType.BLOCK_SUBMISSION: _block_submission,
    ActionType.SHOW_WARNING: _show_warning,
    ActionType.REQUIRE_DOCUMENT: _require_document,
    ActionType.SET_VALUE: _set_value,
    ActionType.CALCULATE_VALUE: _calculate_value,
}


def apply_action(
    action: Action,
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> None:
    handler = ACTION_HANDLERS.get(getattr(action, "type", None))
    if handler is None:
        accumulator.add_diagnostic(rule.id, f"Unsupported action: {action!r}")
        return
    handler(action, rule, accumulator, context)


def apply_actions(
    rule: RuleDefinition,
    accumulator: EvaluationAccumulator,
    context: EvaluationContext,
) -> EvaluationAccumulator:
    """Apply every action of a triggered rule, in declaration order."""
    for action in rule.actions:
        apply_action(action, rule, accumulator, context)
    return accumulator
