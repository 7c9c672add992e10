"""Comparison operators for rule conditions.

Every operator takes ``(field_value, literal, context)`` and returns a bool.
Operators are total: values that cannot be coerced make the comparison
false instead of raising.
"""

from __future__ import annotations

import functools
import logging
import re
from decimal import Decimal
from typing import Any

from .coercion import fold_text, resolve_date_literal, to_date, to_number
from .models import EvaluationContext, RuleOperator
from .registry import OperatorFunc, OperatorRegistry, default_registry

logger = logging.getLogger(__name__)

register = default_registry.register


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion ("1500" is not 1500)."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            strict_equals(a, b) for a, b in zip(left, right)
        )
    if type(left) is not type(right):
        return False
    return left == right


def _pair(literal: Any) -> tuple[Any, Any] | None:
    if isinstance(literal, (list, tuple)) and len(literal) == 2:
        return literal[0], literal[1]
    return None


# Equality


@register(RuleOperator.EQUALS)
def equals(value: Any, literal: Any, context: EvaluationContext) -> bool:
    return strict_equals(value, literal)


@register(RuleOperator.NOT_EQUALS)
def not_equals(value: Any, literal: Any, context: EvaluationContext) -> bool:
    return not strict_equals(value, literal)


# Containment


def _contains(value: Any, literal: Any) -> bool | None:
    """True/False for a pair of strings, None for any other pair."""
    haystack, needle = fold_text(value), fold_text(literal)
    if haystack is None or needle is None:
        return None
    return needle in haystack


@register(RuleOperator.CONTAINS)
def contains(value: Any, literal: Any, context: EvaluationContext) -> bool:
    return _contains(value, literal) is True


@register(RuleOperator.NOT_CONTAINS)
def not_contains(value: Any, literal: Any, context: EvaluationContext) -> bool:
    return _contains(value, literal) is False


# Numeric comparisons


def _numbers(value: Any, literal: Any) -> tuple[float, float] | None:
    left = to_number(value)
    right = to_number(literal)
    if left is None or right is None:
        return None
    return left, right


@register(RuleOperator.GREATER_THAN)
def greater_than(value: Any, literal: Any, context: EvaluationContext) -> bool:
    pair = _numbers(value, literal)
    return pair is not None and pair[0] > pair[1]


@register(RuleOperator.GREATER_THAN_OR_EQUAL)
def greater_than_or_equal(value: Any, literal: Any, context: EvaluationContext) -> bool:
    pair = _numbers(value, literal)
    return pair is not None and pair[0] >= pair[1]


@register(RuleOperator.LESS_THAN)
def less_than(value: Any, literal: Any, context: EvaluationContext) -> bool:
    pair = _numbers(value, literal)
    return pair is not None and pair[0] < pair[1]


@register(RuleOperator.LESS_THAN_OR_EQUAL)
def less_than_or_equal(value: Any, literal: Any, context: EvaluationContext) -> bool:
    pair = _numbers(value, literal)
    return pair is not None and pair[0] <= pair[1]


def _within(value: Any, literal: Any) -> bool | None:
    bounds = _pair(literal)
    if bounds is None:
        return None
    number = to_number(value)
    low = to_number(bounds[0])
    high = to_number(bounds[1])
    if number is None or low is None or high is None:
        return None
    return low <= number <= high


@register(RuleOperator.BETWEEN)
def between(value: Any, literal: Any, context: EvaluationContext) -> bool:
    return _within(value, literal) is True


@register(RuleOperator.NOT_BETWEEN)
def not_between(value: Any, literal: Any, context: EvaluationContext) -> bool:
    return _within(value, literal) is False


# Membership


@register(RuleOperator.IN)
def in_list(value: Any, literal: Any, context: EvaluationContext) -> bool:
    if not isinstance(literal, (list, tuple)):
        return False
    return any(strict_equals(value, item) for item in literal)


@register(RuleOperator.NOT_IN)
def not_in_list(value: Any, literal: Any, context: EvaluationContext) -> bool:
    if not isinstance(literal, (list, tuple)):
        return False
    return not any(strict_equals(value, item) for item in literal)


# Presence


@register(RuleOperator.IS_EMPTY)
def is_empty(value: Any, literal: Any, context: EvaluationContext) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


@register(RuleOperator.IS_NOT_EMPTY)
def is_not_empty(value: Any, literal: Any, context: EvaluationContext) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return True


# Text patterns


@functools.lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile a rule pattern; None when it cannot be compiled."""
    try:
        return re.compile(pattern)
    except (re.error, RecursionError, OverflowError) as e:
        logger.warning(f"Invalid regex pattern {pattern[:80]!r}: {e}")
        return None


@register(RuleOperator.REGEX)
def regex(value: Any, literal: Any, context: EvaluationContext) -> bool:
    if not isinstance(literal, str):
        return False
    if _is_number(value):
        value = str(value)
    if not isinstance(value, str):
        return False
    pattern = compile_pattern(literal)
    return pattern is not None and pattern.search(value) is not None


@register(RuleOperator.STARTS_WITH)
def starts_with(value: Any, literal: Any, context: EvaluationContext) -> bool:
    if not isinstance(value, str) or not isinstance(literal, str):
        return False
    return value.casefold().startswith(literal.casefold())


@register(RuleOperator.ENDS_WITH)
def ends_with(value: Any, literal: Any, context: EvaluationContext) -> bool:
    if not isinstance(value, str) or not isinstance(literal, str):
        return False
    return value.casefold().endswith(literal.casefold())


# Dates


@register(RuleOperator.DATE_BEFORE)
def date_before(value: Any, literal: Any, context: EvaluationContext) -> bool:
    field_date = to_date(value)
    boundary = resolve_date_literal(literal, context)
    return field_date is not None and boundary is not None and field_date < boundary


@register(RuleOperator.DATE_AFTER)
def date_after(value: Any, literal: Any, context: EvaluationContext) -> bool:
    field_date = to_date(value)
    boundary = resolve_date_literal(literal, context)
    return field_date is not None and boundary is not None and field_date > boundary


@register(RuleOperator.DATE_BETWEEN)
def date_between(value: Any, literal: Any, context: EvaluationContext) -> bool:
    bounds = _pair(literal)
    if bounds is None:
        return False
    field_date = to_date(value)
    start = resolve_date_literal(bounds[0], context)
    end = resolve_date_literal(bounds[1], context)
    if field_date is None or start is None or end is None:
        return False
    return start <= field_date <= end


def apply_operator(
    func: OperatorFunc, value: Any, literal: Any, context: EvaluationContext
) -> bool:
    """Run an operator, converting unexpected coercion failures to False."""
    try:
        return bool(func(value, literal, context))
    except (TypeError, ValueError, OverflowError, RecursionError) as e:
        logger.warning(f"Operator {getattr(func, '__name__', func)} failed: {e}")
        return False


def get_operator(
    name: RuleOperator | str, registry: OperatorRegistry = default_registry
) -> OperatorFunc | None:
    return registry.resolve(name)
