"""Pydantic schemas for rule management and evaluation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator

MAX_COVERAGE_TYPES = 50
MAX_REORDER_ITEMS = 500
MAX_UPLOADED_FILES = 100


class AnswerEntry(BaseModel):
    """A stored questionnaire answer, as the claim intake flow records it."""

    question_id: str
    answer_text: str | None = None
    answer_number: float | None = None
    answer_date: str | None = None

    def value(self) -> Any:
        if self.answer_text:
            return self.answer_text
        if self.answer_number is not None:
            return self.answer_number
        return self.answer_date


def _answer_map(answers: dict[str, Any] | list[AnswerEntry]) -> dict[str, Any]:
    if isinstance(answers, dict):
        return dict(answers)
    return {entry.question_id: entry.value() for entry in answers}


class EvaluationInput(BaseModel):
    answers: dict[str, Any] | list[AnswerEntry] = {}
    metadata: dict[str, Any] = {}
    now: datetime | None = None

    def answer_map(self) -> dict[str, Any]:
        return _answer_map(self.answers)


class EvaluateRequest(EvaluationInput):
    """Request model for evaluating the rules of one or more coverage types."""

    coverage_type_ids: list[str]

    @field_validator("coverage_type_ids")
    @classmethod
    def validate_coverage_type_ids(cls, v: list[str]) -> list[str]:
        if len(v) > MAX_COVERAGE_TYPES:
            raise ValueError(f"Too many coverage types. Maximum {MAX_COVERAGE_TYPES} per request.")
        return v


class RuleTestRequest(EvaluationInput):
    """Request model for running an unsaved rule against sample answers."""

    rule: dict[str, Any]


class RuleCreate(BaseModel):
    """Rule creation payload.

    Field types are deliberately loose: the rule is validated as a whole so
    every problem is reported at once.
    """

    coverage_type_id: str | None = None
    name: str | None = None
    rule_type: str = "conditional"
    question_id: str | None = None
    description: str | None = None
    conditions: Any = None
    actions: Any = None
    priority: int | None = None
    is_active: bool = True
    error_message: str | None = None


class RuleUpdate(BaseModel):
    coverage_type_id: str | None = None
    name: str | None = None
    rule_type: str | None = None
    question_id: str | None = None
    description: str | None = None
    conditions: Any = None
    actions: Any = None
    priority: int | None = None
    is_active: bool | None = None
    error_message: str | None = None


class RuleToggleRequest(BaseModel):
    is_active: bool | None = None


class PriorityUpdate(BaseModel):
    rule_id: str
    priority: int


class ReorderRequest(BaseModel):
    items: list[PriorityUpdate]

    @field_validator("items")
    @classmethod
    def validate_items_length(cls, v: list[PriorityUpdate]) -> list[PriorityUpdate]:
        if not v:
            raise ValueError("At least one priority update is required.")
        if len(v) > MAX_REORDER_ITEMS:
            raise ValueError(f"Too many items. Maximum {MAX_REORDER_ITEMS} per request.")
        return v


class TemplateApplyRequest(BaseModel):
    values: dict[str, Any] = {}
    coverage_type_id: str | None = None
    question_id: str | None = None


class UploadedFileInfo(BaseModel):
    filename: str
    size: int | None = None
    document_type: str | None = None
    question_id: str | None = None


class SubmissionCheckRequest(EvaluateRequest):
    """Request model for the final submission check of a claim."""

    files: list[UploadedFileInfo] = []

    @field_validator("files")
    @classmethod
    def validate_files_length(cls, v: list[UploadedFileInfo]) -> list[UploadedFileInfo]:
        if len(v) > MAX_UPLOADED_FILES:
            raise ValueError(f"Too many files. Maximum {MAX_UPLOADED_FILES} per request.")
        return v
