"""Rule evaluation engine for claim questionnaires."""

from .engine import RuleEngine, RuleTestOutcome, evaluate, evaluate_rules, test_rule
from .exceptions import (
    RuleNotFoundError,
    RuleRepositoryError,
    RulesError,
    RuleStoreError,
    RuleValidationError,
    TemplateError,
)
from .models import (
    ActionType,
    Condition,
    DocumentRequirement,
    EligibilityStatus,
    EvaluationResult,
    LogicalOperator,
    RuleDefinition,
    RuleOperator,
    RuleRecord,
    RuleType,
)
from .parser import ensure_valid_rule_payload, parse_rule, validate_rule_payload
from .store import RuleRepository, RuleStore, get_default_store

__all__ = [
    "ActionType",
    "Condition",
    "DocumentRequirement",
    "EligibilityStatus",
    "EvaluationResult",
    "LogicalOperator",
    "RuleDefinition",
    "RuleEngine",
    "RuleNotFoundError",
    "RuleOperator",
    "RuleRecord",
    "RuleRepository",
    "RuleRepositoryError",
    "RuleStore",
    "RuleStoreError",
    "RuleTestOutcome",
    "RuleType",
    "RuleValidationError",
    "RulesError",
    "TemplateError",
    "ensure_valid_rule_payload",
    "evaluate",
    "evaluate_rules",
    "get_default_store",
    "parse_rule",
    "test_rule",
    "validate_rule_payload",
]
