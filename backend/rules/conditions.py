"""Condition evaluation.

Conditions combine strictly left to right: the first condition sets the
result and every later condition joins it with its own logical operator,
so ``A AND B OR C`` reads as ``(A AND B) OR C``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .models import Condition, EvaluationAccumulator, EvaluationContext, LogicalOperator
from .operators import apply_operator
from .registry import OperatorRegistry, default_registry

logger = logging.getLogger(__name__)


def evaluate_condition(
    condition: Condition,
    context: EvaluationContext,
    accumulator: EvaluationAccumulator | None = None,
    rule_id: str | None = None,
    registry: OperatorRegistry = default_registry,
) -> bool:
    func = registry.resolve(condition.operator)
    if func is None:
        message = f"Unknown operator '{condition.operator_name}' on field '{condition.field}'"
        if accumulator is not None:
            accumulator.add_diagnostic(rule_id, message)
        else:
            logger.warning(message)
        return False
    value = context.answers.get(condition.field)
    return apply_operator(func, value, condition.value, context)


def evaluate_conditions(
    conditions: Sequence[Condition],
    context: EvaluationContext,
    accumulator: EvaluationAccumulator | None = None,
    rule_id: str | None = None,
    registry: OperatorRegistry = default_registry,
) -> bool:
    """Evaluate a rule's conditions; an empty sequence is always true.

    Every condition is evaluated, even once the outcome is settled, so that
    diagnostics (unknown operators) are complete for the pass.
    """
    result = True
    for index, condition in enumerate(conditions):
        outcome = evaluate_condition(condition, context, accumulator, rule_id, registry)
        if index == 0:
            result = outcome
        elif condition.logical_operator is LogicalOperator.OR:
            result = result or outcome
        else:
            result = result and outcome
    return result


def referenced_fields(conditions: Iterable[Condition]) -> list[str]:
    """Answer fields a set of conditions depends on, in first-use order."""
    fields: list[str] = []
    for condition in conditions:
        if condition.field not in fields:
            fields.append(condition.field)
    return fields
