"""Core rules evaluation engine."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from functools import partial, reduce
from typing import Any, Union

from utils.date_parser import to_naive_utc

from .actions import apply_actions
from .conditions import evaluate_conditions, referenced_fields
from .exceptions import RuleRepositoryError
from .models import (
    Action,
    EvaluationAccumulator,
    EvaluationContext,
    EvaluationResult,
    RuleDefinition,
    RuleRecord,
    action_to_dict,
    utc_now,
)
from .parser import parse_rule
from .store import RuleRepository, get_default_store

logger = logging.getLogger(__name__)

RuleInput = Union[RuleDefinition, RuleRecord, Mapping[str, Any]]


@dataclass(frozen=True)
class RuleTestOutcome:
    """Result of running a single rule against sample answers."""

    triggered: bool
    actions: tuple[Action, ...]
    result: EvaluationResult
    referenced_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "triggered": self.triggered,
            "actions": [action_to_dict(action) for action in self.actions],
            "referenced_fields": list(self.referenced_fields),
            "result": self.result.to_dict(),
        }


def build_context(
    answers: Mapping[str, Any] | None,
    metadata: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> EvaluationContext:
    return EvaluationContext(
        answers=dict(answers or {}),
        metadata=dict(metadata or {}),
        now=to_naive_utc(now) if now is not None else utc_now(),
    )


def prepare_rules(
    rules: Iterable[RuleInput], accumulator: EvaluationAccumulator
) -> list[RuleDefinition]:
    """Parse, filter and order rules for one pass.

    Unparseable rules are skipped with a diagnostic, inactive rules and
    repeated ids are dropped, and the rest are stably sorted by priority
    (highest first, ties keep their incoming order).
    """
    prepared: list[RuleDefinition] = []
    seen: set[str] = set()
    for raw in rules:
        if isinstance(raw, RuleDefinition):
            definition = raw
        else:
            definition, diagnostics = parse_rule(raw)
            for diagnostic in diagnostics:
                accumulator.add_diagnostic(diagnostic.rule_id, diagnostic.message)
        if definition is None or not definition.is_active:
            continue
        if definition.id in seen:
            continue
        seen.add(definition.id)
        prepared.append(definition)
    return sorted(prepared, key=lambda rule: rule.priority, reverse=True)


def apply_rule(
    accumulator: EvaluationAccumulator,
    rule: RuleDefinition,
    context: EvaluationContext,
) -> EvaluationAccumulator:
    """Fold step: apply ``rule``'s actions when its conditions hold."""
    if evaluate_conditions(rule.conditions, context, accumulator, rule.id):
        accumulator.record_trigger(rule.id)
        apply_actions(rule, accumulator, context)
    return accumulator


def evaluate_rules(
    rules: Iterable[RuleInput],
    answers: Mapping[str, Any] | None,
    metadata: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> EvaluationResult:
    """Evaluate already-loaded rules against a snapshot of answers."""
    context = build_context(answers, metadata, now)
    accumulator = EvaluationAccumulator()
    ordered = prepare_rules(rules, accumulator)
    accumulator = reduce(partial(apply_rule, context=context), ordered, accumulator)
    result = accumulator.freeze()
    logger.debug(
        f"Evaluated {len(ordered)} rules: {len(result.triggered_rule_ids)} triggered, "
        f"status={result.eligibility_status.value}"
    )
    return result


def test_rule(
    rule: RuleInput,
    answers: Mapping[str, Any] | None,
    metadata: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> RuleTestOutcome:
    """Run one rule, active or not, against sample answers."""
    accumulator = EvaluationAccumulator()
    if isinstance(rule, RuleDefinition):
        definition: RuleDefinition | None = rule
    else:
        definition, diagnostics = parse_rule(rule)
        for diagnostic in diagnostics:
            accumulator.add_diagnostic(diagnostic.rule_id, diagnostic.message)
    if definition is None:
        return RuleTestOutcome(triggered=False, actions=(), result=accumulator.freeze())

    context = build_context(answers, metadata, now)
    apply_rule(accumulator, definition, context)
    triggered = definition.id in accumulator.triggered_rule_ids
    return RuleTestOutcome(
        triggered=triggered,
        actions=definition.actions if triggered else (),
        result=accumulator.freeze(),
        referenced_fields=tuple(referenced_fields(definition.conditions)),
    )


# Not a pytest test despite the name.
test_rule.__test__ = False  # type: ignore[attr-defined]


class RuleEngine:
    """Evaluates the active rules of one or more coverage types."""

    def __init__(self, repository: RuleRepository):
        self.repository = repository

    def load_rules(self, coverage_type_ids: Sequence[str]) -> list[RuleRecord]:
        records: list[RuleRecord] = []
        for coverage_type_id in dict.fromkeys(coverage_type_ids):
            try:
                records.extend(self.repository.list_active_rules(coverage_type_id))
            except Exception as e:
                logger.error(
                    f"Failed to load rules for coverage type {coverage_type_id}: {e}",
                    exc_info=True,
                )
                raise RuleRepositoryError(
                    f"Failed to load rules for coverage type {coverage_type_id}: {e}",
                    coverage_type_id=coverage_type_id,
                ) from e
        return records

    def evaluate(
        self,
        coverage_type_ids: Sequence[str],
        answers: Mapping[str, Any] | None,
        metadata: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> EvaluationResult:
        """Evaluate all active rules of ``coverage_type_ids`` against ``answers``.

        Raises:
            RuleRepositoryError: if rules cannot be loaded. Callers must not
                treat this as an empty rule set.
        """
        if not coverage_type_ids:
            return EvaluationAccumulator().freeze()
        records = self.load_rules(coverage_type_ids)
        return evaluate_rules(records, answers, metadata, now)


def evaluate(
    coverage_type_ids: Sequence[str],
    answers: Mapping[str, Any] | None,
    metadata: Mapping[str, Any] | None = None,
    now: datetime | None = None,
    repository: RuleRepository | None = None,
) -> EvaluationResult:
    """Evaluate against ``repository`` (the configured rule store by default)."""
    if not coverage_type_ids:
        return EvaluationAccumulator().freeze()
    engine = RuleEngine(repository if repository is not None else get_default_store())
    return engine.evaluate(coverage_type_ids, answers, metadata, now)
