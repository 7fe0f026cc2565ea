"""Tests for attachment loading."""

from unittest.mock import patch

import pytest
from PyPDF2 import PdfWriter

from parsers.pdf_extractor import extract_text_from_pdf, load_attachment_text
from utils.errors import UnsupportedAttachmentError


class TestLoadAttachment:

    def test_text_file(self, tmp_path):
        path = tmp_path / "cv.txt"
        path.write_text("John Smith\nPython", encoding="utf-8")
        assert load_attachment_text(str(path)) == "John Smith\nPython"

    def test_markdown_file_by_file_url(self, tmp_path):
        path = tmp_path / "cv.md"
        path.write_text("# Ana\nDocker", encoding="utf-8")
        assert load_attachment_text(path.as_uri()) == "# Ana\nDocker"

    def test_blank_pdf(self, tmp_path):
        path = tmp_path / "blank.pdf"
        writer = PdfWriter()
        writer.add_blank_page(width=72, height=72)
        with open(path, "wb") as f:
            writer.write(f)

        assert extract_text_from_pdf(path) == ""
        assert load_attachment_text(str(path)) == ""

    @pytest.mark.parametrize("ref", ["cv.docx", "image.png", "noextension", "", "https://example.com/cv.pdf"])
    def test_unsupported_references(self, ref):
        with pytest.raises(UnsupportedAttachmentError):
            load_attachment_text(ref)

    def test_missing_file(self, tmp_path):
        with pytest.raises(UnsupportedAttachmentError):
            load_attachment_text(str(tmp_path / "missing.pdf"))

    def test_corrupt_pdf(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not a pdf")
        with pytest.raises(UnsupportedAttachmentError):
            load_attachment_text(str(path))

    @pytest.mark.parametrize("error", [KeyError("/Root"), TypeError("bad xref"), AttributeError("no pages")])
    def test_malformed_pdf_errors_are_unsupported(self, tmp_path, error):
        path = tmp_path / "malformed.pdf"
        path.write_bytes(b"%PDF-1.4\n%%EOF")
        with patch("parsers.pdf_extractor.PdfReader", side_effect=error):
            with pytest.raises(UnsupportedAttachmentError):
                load_attachment_text(str(path))
