"""Checks uploaded files against the document requirements of an evaluation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from utils.sanitization import file_extension, sanitize_filename

from .models import DocumentRequirement


@dataclass(frozen=True)
class UploadedFile:
    """Metadata of a file the claimant has uploaded."""

    filename: str
    size: int | None = None
    document_type: str | None = None
    question_id: str | None = None


@dataclass(frozen=True)
class DocumentCheck:
    requirement: DocumentRequirement
    accepted_files: tuple[str, ...]
    problems: tuple[str, ...]

    @property
    def satisfied(self) -> bool:
        return not self.problems

    def to_dict(self) -> dict[str, Any]:
        return {
            "requirement": self.requirement.to_dict(),
            "satisfied": self.satisfied,
            "accepted_files": list(self.accepted_files),
            "problems": list(self.problems),
        }


def files_for_requirement(
    requirement: DocumentRequirement, files: Iterable[UploadedFile]
) -> list[UploadedFile]:
    """Files uploaded for the requirement's question or with one of its types."""
    matched = []
    for upload in files:
        if upload.document_type and upload.document_type in requirement.document_types:
            matched.append(upload)
        elif requirement.question_id and upload.question_id == requirement.question_id:
            matched.append(upload)
    return matched


def check_documents(
    requirement: DocumentRequirement, files: Iterable[UploadedFile]
) -> DocumentCheck:
    problems: list[str] = []
    accepted: list[str] = []
    candidates = files_for_requirement(requirement, files)

    for upload in candidates:
        name = sanitize_filename(upload.filename)
        extension = file_extension(upload.filename)
        if extension not in requirement.allowed_formats:
            problems.append(
                f"{name}: format '{extension or 'none'}' is not allowed "
                f"(allowed: {', '.join(requirement.allowed_formats)})"
            )
            continue
        if (
            requirement.max_file_size is not None
            and upload.size is not None
            and upload.size > requirement.max_file_size
        ):
            problems.append(
                f"{name}: {upload.size} bytes exceeds the limit of "
                f"{requirement.max_file_size} bytes"
            )
            continue
        accepted.append(name)

    if len(accepted) < requirement.min_files:
        problems.append(
            requirement.message
            or f"At least {requirement.min_files} file(s) required: "
            f"{', '.join(requirement.document_types)}"
        )
    if len(candidates) > requirement.max_files:
        problems.append(
            f"At most {requirement.max_files} file(s) allowed for "
            f"{', '.join(requirement.document_types)}, got {len(candidates)}"
        )

    return DocumentCheck(
        requirement=requirement,
        accepted_files=tuple(accepted),
        problems=tuple(problems),
    )
