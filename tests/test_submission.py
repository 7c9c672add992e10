"""Tests for document checks and the submission gate."""

from __future__ import annotations

from rules.documents import UploadedFile, check_documents, files_for_requirement
from rules.models import DocumentRequirement, EligibilityStatus, EvaluationResult, RuleMessage
from rules.submission import assess_submission

RECEIPTS = DocumentRequirement(
    rule_id="receipts",
    document_types=("receipt", "invoice"),
    question_id="q-receipts",
    min_files=1,
    max_files=2,
    allowed_formats=("pdf", "jpg"),
    max_file_size=1000,
    message="Upload your receipts",
)


class TestFilesForRequirement:
    def test_matches_by_type_or_question(self):
        files = [
            UploadedFile("a.pdf", document_type="receipt"),
            UploadedFile("b.pdf", question_id="q-receipts"),
            UploadedFile("c.pdf", document_type="boarding_pass"),
        ]
        matched = files_for_requirement(RECEIPTS, files)
        assert [f.filename for f in matched] == ["a.pdf", "b.pdf"]


class TestCheckDocuments:
    def test_satisfied(self):
        check = check_documents(RECEIPTS, [UploadedFile("Receipt.PDF", 500, "receipt")])
        assert check.satisfied is True
        assert check.accepted_files == ("Receipt.PDF",)

    def test_missing_uses_requirement_message(self):
        check = check_documents(RECEIPTS, [])
        assert check.problems == ("Upload your receipts",)

    def test_missing_default_message(self):
        requirement = DocumentRequirement(rule_id="r", document_types=("receipt",))
        check = check_documents(requirement, [])
        assert check.problems == ("At least 1 file(s) required: receipt",)

    def test_disallowed_format(self):
        check = check_documents(RECEIPTS, [UploadedFile("receipt.docx", 10, "receipt")])
        assert not check.satisfied
        assert check.problems[0] == "receipt.docx: format 'docx' is not allowed (allowed: pdf, jpg)"

    def test_file_too_large(self):
        check = check_documents(RECEIPTS, [UploadedFile("big.pdf", 5000, "receipt")])
        assert "exceeds the limit of 1000 bytes" in check.problems[0]
        assert check.accepted_files == ()

    def test_unknown_size_is_accepted(self):
        check = check_documents(RECEIPTS, [UploadedFile("r.pdf", None, "receipt")])
        assert check.satisfied

    def test_too_many_files(self):
        files = [UploadedFile(f"r{i}.pdf", 10, "receipt") for i in range(3)]
        check = check_documents(RECEIPTS, files)
        assert check.problems == ("At most 2 file(s) allowed for receipt, invoice, got 3",)

    def test_optional_requirement(self):
        optional = DocumentRequirement(rule_id="r", document_types=("photo",), min_files=0)
        assert optional.is_optional
        assert check_documents(optional, []).satisfied

    def test_filename_is_sanitized_in_problems(self):
        check = check_documents(RECEIPTS, [UploadedFile("../../evil\n.exe", 1, "receipt")])
        assert check.problems[0].startswith("evil.exe:")

    def test_double_dot_name_keeps_its_format(self):
        check = check_documents(RECEIPTS, [UploadedFile("bill..pdf", 10, "receipt")])
        assert check.satisfied
        assert check.accepted_files == ("bill..pdf",)


class TestAssessSubmission:
    def test_clean_result(self):
        decision = assess_submission(EvaluationResult())
        assert decision.can_submit is True
        assert decision.reasons == ()

    def test_blocked(self):
        result = EvaluationResult(
            validation_errors=(RuleMessage("deadline", "Too late"),),
            eligibility_status=EligibilityStatus.INELIGIBLE,
            block_reason="Too late",
        )
        decision = assess_submission(result)
        assert decision.can_submit is False
        assert decision.reasons == ("Too late",)

    def test_validation_errors_and_documents(self):
        result = EvaluationResult(
            validation_errors=(RuleMessage("amount", "Amount out of range"),),
            required_documents=(RECEIPTS,),
        )
        decision = assess_submission(result)
        assert decision.can_submit is False
        assert decision.reasons == ("Amount out of range", "Upload your receipts")

    def test_documents_satisfied(self):
        result = EvaluationResult(required_documents=(RECEIPTS,))
        decision = assess_submission(result, [UploadedFile("r.jpg", 100, "invoice")])
        assert decision.can_submit is True
        assert decision.document_checks[0].satisfied

    def test_warnings_do_not_refuse(self):
        result = EvaluationResult(warnings=(RuleMessage("w", "Check dates"),))
        decision = assess_submission(result)
        assert decision.can_submit is True
        assert decision.warnings == ("Check dates",)
        assert decision.to_dict()["warnings"] == ["Check dates"]
