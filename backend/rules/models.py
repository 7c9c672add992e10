"""Data models for the rules engine."""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Union

logger = logging.getLogger(__name__)


class RuleType(str, Enum):
    """Grouping of rules for the admin UI; does not change evaluation."""

    CONDITIONAL = "conditional"
    VALIDATION = "validation"
    DOCUMENT = "document"
    ELIGIBILITY = "eligibility"
    CALCULATION = "calculation"


class RuleOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    BETWEEN = "between"
    NOT_BETWEEN = "not_between"
    IN = "in"
    NOT_IN = "not_in"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    REGEX = "regex"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    DATE_BEFORE = "date_before"
    DATE_AFTER = "date_after"
    DATE_BETWEEN = "date_between"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class ActionType(str, Enum):
    SHOW_QUESTION = "show_question"
    HIDE_QUESTION = "hide_question"
    VALIDATE = "validate"
    BLOCK_SUBMISSION = "block_submission"
    SHOW_WARNING = "show_warning"
    REQUIRE_DOCUMENT = "require_document"
    SET_VALUE = "set_value"
    CALCULATE_VALUE = "calculate_value"


class EligibilityStatus(str, Enum):
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"


DEFAULT_MIN_FILES = 1
DEFAULT_MAX_FILES = 10
DEFAULT_ALLOWED_FORMATS: tuple[str, ...] = ("pdf", "jpg", "jpeg", "png")


@dataclass(frozen=True)
class Condition:
    """A single predicate over one answer field."""

    field: str
    operator: RuleOperator | str
    value: Any = None
    logical_operator: LogicalOperator = LogicalOperator.AND

    @property
    def operator_name(self) -> str:
        if isinstance(self.operator, RuleOperator):
            return self.operator.value
        return str(self.operator)

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "operator": self.operator_name,
            "value": self.value,
            "logicalOperator": self.logical_operator.value,
        }


# Action variants. Each carries its ActionType as a class attribute so the
# executor can dispatch on ``action.type``.


@dataclass(frozen=True)
class ShowQuestion:
    target_question_id: str
    type: ClassVar[ActionType] = ActionType.SHOW_QUESTION


@dataclass(frozen=True)
class HideQuestion:
    target_question_id: str
    type: ClassVar[ActionType] = ActionType.HIDE_QUESTION


@dataclass(frozen=True)
class Validate:
    error_message: str | None = None
    type: ClassVar[ActionType] = ActionType.VALIDATE


@dataclass(frozen=True)
class BlockSubmission:
    error_message: str | None = None
    type: ClassVar[ActionType] = ActionType.BLOCK_SUBMISSION


@dataclass(frozen=True)
class ShowWarning:
    warning_message: str | None = None
    error_message: str | None = None
    type: ClassVar[ActionType] = ActionType.SHOW_WARNING


@dataclass(frozen=True)
class RequireDocument:
    document_types: tuple[str, ...]
    min_files: int = DEFAULT_MIN_FILES
    max_files: int = DEFAULT_MAX_FILES
    allowed_formats: tuple[str, ...] = DEFAULT_ALLOWED_FORMATS
    max_file_size: int | None = None
    error_message: str | None = None
    target_question_id: str | None = None
    type: ClassVar[ActionType] = ActionType.REQUIRE_DOCUMENT


@dataclass(frozen=True)
class SetValue:
    target_field: str
    value: Any = None
    type: ClassVar[ActionType] = ActionType.SET_VALUE


@dataclass(frozen=True)
class CalculateValue:
    """Computes ``target_field`` from a JSON Logic ``formula``.

    ``value`` is used verbatim when no formula is given.
    """

    target_field: str
    formula: Any = None
    value: Any = None
    type: ClassVar[ActionType] = ActionType.CALCULATE_VALUE


Action = Union[
    ShowQuestion,
    HideQuestion,
    Validate,
    BlockSubmission,
    ShowWarning,
    RequireDocument,
    SetValue,
    CalculateValue,
]


def action_to_dict(action: Action) -> dict[str, Any]:
    """Serialize an action back to its persisted camelCase form."""
    payload: dict[str, Any] = {"type": action.type.value}
    if isinstance(action, (ShowQuestion, HideQuestion)):
        payload["targetQuestionId"] = action.target_question_id
    elif isinstance(action, (Validate, BlockSubmission)):
        payload["errorMessage"] = action.error_message
    elif isinstance(action, ShowWarning):
        payload["warningMessage"] = action.warning_message
        payload["errorMessage"] = action.error_message
    elif isinstance(action, RequireDocument):
        payload.update(
            {
                "documentTypes": list(action.document_types),
                "minFiles": action.min_files,
                "maxFiles": action.max_files,
                "allowedFormats": list(action.allowed_formats),
                "maxFileSize": action.max_file_size,
                "errorMessage": action.error_message,
                "targetQuestionId": action.target_question_id,
            }
        )
    elif isinstance(action, SetValue):
        payload["targetField"] = action.target_field
        payload["value"] = action.value
    elif isinstance(action, CalculateValue):
        payload["targetField"] = action.target_field
        payload["formula"] = action.formula
        payload["value"] = action.value
    return {key: value for key, value in payload.items() if value is not None}


@dataclass
class RuleRecord:
    """A rule row as handed over by a repository.

    ``conditions`` and ``actions`` are opaque JSON (decoded lists or raw
    JSON text) and are only trusted after ``parser.parse_rule``.
    """

    id: str
    coverage_type_id: str | None = None
    name: str = ""
    rule_type: str = RuleType.CONDITIONAL.value
    conditions: Any = None
    actions: Any = None
    priority: int = 0
    is_active: bool = True
    question_id: str | None = None
    description: str | None = None
    error_message: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "coverage_type_id": self.coverage_type_id,
            "question_id": self.question_id,
            "rule_type": self.rule_type,
            "name": self.name,
            "description": self.description,
            "conditions": self.conditions,
            "actions": self.actions,
            "priority": self.priority,
            "is_active": self.is_active,
            "error_message": self.error_message,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class RuleDefinition:
    """A parsed, typed rule ready for evaluation."""

    id: str
    coverage_type_id: str | None = None
    name: str = ""
    rule_type: RuleType | str = RuleType.CONDITIONAL
    conditions: tuple[Condition, ...] = ()
    actions: tuple[Action, ...] = ()
    priority: int = 0
    is_active: bool = True
    question_id: str | None = None
    description: str | None = None
    error_message: str | None = None

    def fallback_message(self) -> str:
        """Author-supplied text used when an action carries no message."""
        return self.error_message or self.name or self.id


@dataclass(frozen=True)
class DocumentRequirement:
    rule_id: str
    document_types: tuple[str, ...]
    question_id: str | None = None
    min_files: int = DEFAULT_MIN_FILES
    max_files: int = DEFAULT_MAX_FILES
    allowed_formats: tuple[str, ...] = DEFAULT_ALLOWED_FORMATS
    max_file_size: int | None = None
    message: str | None = None

    @property
    def signature(self) -> tuple[str, ...]:
        return tuple(sorted(set(self.document_types)))

    @property
    def is_optional(self) -> bool:
        return self.min_files == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "question_id": self.question_id,
            "document_types": list(self.document_types),
            "min_files": self.min_files,
            "max_files": self.max_files,
            "allowed_formats": list(self.allowed_formats),
            "max_file_size": self.max_file_size,
            "message": self.message,
        }


@dataclass(frozen=True)
class RuleMessage:
    """A validation error or warning attributed to the rule that raised it."""

    rule_id: str
    message: str
    question_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "message": self.message,
            "question_id": self.question_id,
        }


@dataclass(frozen=True)
class Diagnostic:
    """A data error that was recovered from during evaluation."""

    rule_id: str | None
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"rule_id": self.rule_id, "message": self.message}


def utc_now() -> datetime:
    """Current time as a naive UTC datetime (the engine's date convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class EvaluationContext:
    """Inputs of one evaluation pass."""

    answers: Mapping[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)
    now: datetime = field(default_factory=utc_now)

    def lookup(self, name: str) -> Any:
        """Resolve a name against answers first, then metadata."""
        if name in self.answers:
            return self.answers[name]
        return self.metadata.get(name)


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of one evaluation pass. Immutable once returned."""

    triggered_rule_ids: tuple[str, ...] = ()
    visible_questions: tuple[str, ...] = ()
    hidden_questions: tuple[str, ...] = ()
    validation_errors: tuple[RuleMessage, ...] = ()
    warnings: tuple[RuleMessage, ...] = ()
    required_documents: tuple[DocumentRequirement, ...] = ()
    eligibility_status: EligibilityStatus = EligibilityStatus.ELIGIBLE
    block_reason: str | None = None
    field_values: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def blocked_submission(self) -> bool:
        return self.eligibility_status is EligibilityStatus.INELIGIBLE

    @property
    def passed(self) -> bool:
        return not self.validation_errors and not self.blocked_submission

    @property
    def error_messages(self) -> list[str]:
        return [error.message for error in self.validation_errors]

    @property
    def warning_messages(self) -> list[str]:
        return [warning.message for warning in self.warnings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "eligibility_status": self.eligibility_status.value,
            "blocked_submission": self.blocked_submission,
            "block_reason": self.block_reason,
            "triggered_rule_ids": list(self.triggered_rule_ids),
            "visible_questions": list(self.visible_questions),
            "hidden_questions": list(self.hidden_questions),
            "validation_errors": [e.to_dict() for e in self.validation_errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "required_documents": [d.to_dict() for d in self.required_documents],
            "field_values": dict(self.field_values),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class EvaluationAccumulator:
    """Mutable state of a single evaluation pass.

    Owned by exactly one ``evaluate`` call and frozen into an
    ``EvaluationResult`` at the end of the pass.
    """

    triggered_rule_ids: list[str] = field(default_factory=list)
    # dicts used as insertion-ordered sets
    shown_questions: dict[str, None] = field(default_factory=dict)
    hidden_questions: dict[str, None] = field(default_factory=dict)
    validation_errors: list[RuleMessage] = field(default_factory=list)
    warnings: list[RuleMessage] = field(default_factory=list)
    required_documents: list[DocumentRequirement] = field(default_factory=list)
    eligibility_status: EligibilityStatus = EligibilityStatus.ELIGIBLE
    block_reason: str | None = None
    field_values: dict[str, Any] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def record_trigger(self, rule_id: str) -> None:
        if rule_id not in self.triggered_rule_ids:
            self.triggered_rule_ids.append(rule_id)

    def show_question(self, question_id: str) -> None:
        self.shown_questions.setdefault(question_id, None)

    def hide_question(self, question_id: str) -> None:
        self.hidden_questions.setdefault(question_id, None)

    def add_error(self, error: RuleMessage) -> None:
        self.validation_errors.append(error)

    def add_warning(self, warning: RuleMessage) -> None:
        self.warnings.append(warning)

    def add_document_requirement(self, requirement: DocumentRequirement) -> bool:
        """Add a requirement unless the same rule already required those types."""
        key = (requirement.signature, requirement.rule_id)
        for existing in self.required_documents:
            if (existing.signature, existing.rule_id) == key:
                return False
        self.required_documents.append(requirement)
        return True

    def block(self, reason: str) -> None:
        # Ineligibility is sticky for the rest of the pass.
        if self.eligibility_status is EligibilityStatus.ELIGIBLE:
            self.block_reason = reason
        self.eligibility_status = EligibilityStatus.INELIGIBLE

    def set_field_value(self, name: str, value: Any) -> None:
        self.field_values[name] = value

    def add_diagnostic(self, rule_id: str | None, message: str) -> None:
        logger.warning(f"Rule {rule_id or '<unknown>'}: {message}")
        self.diagnostics.append(Diagnostic(rule_id=rule_id, message=message))

    def freeze(self) -> EvaluationResult:
        visible = tuple(
            question_id
            for question_id in self.shown_questions
            if question_id not in self.hidden_questions
        )
        return EvaluationResult(
            triggered_rule_ids=tuple(self.triggered_rule_ids),
            visible_questions=visible,
            hidden_questions=tuple(self.hidden_questions),
            validation_errors=tuple(self.validation_errors),
            warnings=tuple(self.warnings),
            required_documents=tuple(self.required_documents),
            eligibility_status=self.eligibility_status,
            block_reason=self.block_reason,
            field_values=MappingProxyType(copy.deepcopy(self.field_values)),
            diagnostics=tuple(self.diagnostics),
        )
