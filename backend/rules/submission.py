"""Final submission gate combining rule results and uploaded documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .documents import DocumentCheck, UploadedFile, check_documents
from .models import EvaluationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionDecision:
    can_submit: bool
    reasons: tuple[str, ...]
    warnings: tuple[str, ...]
    document_checks: tuple[DocumentCheck, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_submit": self.can_submit,
            "reasons": list(self.reasons),
            "warnings": list(self.warnings),
            "document_checks": [check.to_dict() for check in self.document_checks],
        }


def assess_submission(
    result: EvaluationResult, uploaded: Iterable[UploadedFile] = ()
) -> SubmissionDecision:
    """Decide whether a claim may be submitted.

    A claim can be submitted only when it is eligible, has no validation
    errors and every required document is satisfied.
    """
    uploaded = list(uploaded)
    reasons: list[str] = []
    if result.block_reason:
        reasons.append(result.block_reason)
    reasons.extend(result.error_messages)

    checks = tuple(
        check_documents(requirement, uploaded)
        for requirement in result.required_documents
    )
    for check in checks:
        reasons.extend(check.problems)

    # Ordered de-duplication: the block reason is also a validation error.
    reasons = list(dict.fromkeys(reasons))
    can_submit = result.passed and all(check.satisfied for check in checks)
    if not can_submit:
        logger.info(f"Submission refused with {len(reasons)} reason(s)")

    return SubmissionDecision(
        can_submit=can_submit,
        reasons=tuple(reasons),
        warnings=tuple(dict.fromkeys(result.warning_messages)),
        document_checks=checks,
    )
