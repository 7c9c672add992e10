"""Operator registry used by the condition evaluator."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from .models import EvaluationContext, RuleOperator

OperatorFunc = Callable[[Any, Any, EvaluationContext], bool]


class OperatorRegistry:
    def __init__(self) -> None:
        self._operators: dict[RuleOperator, OperatorFunc] = {}

    def register(self, operator: RuleOperator) -> Callable[[OperatorFunc], OperatorFunc]:
        """Decorator registering ``func`` as the implementation of ``operator``."""

        def decorator(func: OperatorFunc) -> OperatorFunc:
            self._operators[operator] = func
            return func

        return decorator

    def resolve(self, name: RuleOperator | str) -> OperatorFunc | None:
        """Look up an operator by enum member or raw name; None when unknown."""
        if isinstance(name, RuleOperator):
            return self._operators.get(name)
        try:
            return self._operators.get(RuleOperator(name))
        except ValueError:
            return None

    def operators(self) -> Iterable[RuleOperator]:
        return tuple(self._operators)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, (RuleOperator, str)):
            return False
        return self.resolve(name) is not None


default_registry = OperatorRegistry()
