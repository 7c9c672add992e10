"""Exceptions raised by the rules engine and rule store."""

from __future__ import annotations

from typing import Any


class RulesError(Exception):
    """Base class for rules engine errors."""


class RuleRepositoryError(RulesError):
    """Raised when active rules cannot be fetched for an evaluation.

    Callers must treat this as "cannot verify eligibility", never as an
    empty rule set.
    """

    def __init__(self, message: str, coverage_type_id: str | None = None):
        super().__init__(message)
        self.coverage_type_id = coverage_type_id


class RuleStoreError(RulesError):
    """Raised when the rule store fails to read or write."""


class RuleNotFoundError(RuleStoreError):
    """Raised when a rule id does not exist in the store."""

    def __init__(self, rule_id: str):
        super().__init__(f"Rule not found: {rule_id}")
        self.rule_id = rule_id


class RuleValidationError(RulesError):
    """Raised when an authored rule payload fails strict validation."""

    def __init__(self, message: str, problems: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.problems = problems or []


class TemplateError(RulesError):
    """Raised when a rule template cannot be applied."""
