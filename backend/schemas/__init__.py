"""Shared Pydantic schemas for the claims rules backend.

This module centralizes request/response models used across multiple routers
to prevent drift between duplicate definitions.
"""

from .rules import (
    AnswerEntry,
    EvaluateRequest,
    ReorderRequest,
    RuleCreate,
    RuleTestRequest,
    RuleToggleRequest,
    RuleUpdate,
    SubmissionCheckRequest,
    TemplateApplyRequest,
    UploadedFileInfo,
)

__all__ = [
    "AnswerEntry",
    "EvaluateRequest",
    "ReorderRequest",
    "RuleCreate",
    "RuleTestRequest",
    "RuleToggleRequest",
    "RuleUpdate",
    "SubmissionCheckRequest",
    "TemplateApplyRequest",
    "UploadedFileInfo",
]
