"""Tests for uploaded filename helpers."""

import pytest
from utils.sanitization import file_extension, sanitize_filename, upload_basename


class TestUploadBasename:
    """Tests for upload_basename."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("bill.pdf", "bill.pdf"),
            ("C:\\scans\\bill.pdf", "bill.pdf"),
            ("/tmp/uploads/bill.pdf", "bill.pdf"),
            ("../../etc/passwd", "passwd"),
            ("scans/2025\\march/receipt.jpg", "receipt.jpg"),
        ],
    )
    def test_keeps_last_path_component(self, filename, expected):
        assert upload_basename(filename) == expected

    def test_control_characters_removed(self):
        """Newlines and NUL bytes must not reach log lines."""
        assert upload_basename("receipt\r\n.pdf") == "receipt.pdf"
        assert upload_basename("receipt\x00.pdf") == "receipt.pdf"

    @pytest.mark.parametrize("filename", [None, "", "/", "uploads/..", "."])
    def test_no_name(self, filename):
        assert upload_basename(filename) == ""

    def test_inner_dots_are_kept(self):
        assert upload_basename("bill..final.pdf") == "bill..final.pdf"


class TestSanitizeFilename:
    """Tests for sanitize_filename."""

    def test_plain_names_unchanged(self):
        assert sanitize_filename("boarding pass.pdf") == "boarding pass.pdf"
        assert sanitize_filename("facture-été.jpg") == "facture-été.jpg"

    def test_missing_name(self):
        assert sanitize_filename(None) == "unknown"
        assert sanitize_filename("../") == "unknown"

    def test_long_name_keeps_extension(self):
        result = sanitize_filename("r" * 300 + ".pdf")
        assert len(result) == 120
        assert result.endswith("~.pdf")

    def test_long_name_without_extension(self):
        assert sanitize_filename("r" * 300, max_length=40) == "r" * 40

    def test_long_extension_is_cut(self):
        result = sanitize_filename("scan." + "x" * 60, max_length=30)
        assert result == ("scan." + "x" * 60)[:30]


class TestFileExtension:
    """Tests for file_extension."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("Receipt.PDF", "pdf"),
            ("scan.tar.gz", "gz"),
            ("bill..pdf", "pdf"),
            ("C:\\docs\\bill.jpeg", "jpeg"),
        ],
    )
    def test_extension(self, filename, expected):
        assert file_extension(filename) == expected

    @pytest.mark.parametrize("filename", ["README", "archive.", ".pdf", None, "../../etc.d/passwd"])
    def test_no_extension(self, filename):
        assert file_extension(filename) == ""
