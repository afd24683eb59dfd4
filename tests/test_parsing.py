import io
from unittest.mock import MagicMock, patch

import pytest
from docx import Document
from pdfminer.layout import LTTextBox, LTTextLine

from app.helpers.parsing import (
    DOCX_MIME,
    PDF_MIME,
    TEXT_MIME,
    extract_resume_text,
    normalize_mime_type,
)
from app.utils.exceptions import ExtractionError, UnsupportedFormatError


def _docx_bytes(*paragraphs, table=None) -> bytes:
    doc = Document()
    for p in paragraphs:
        doc.add_paragraph(p)
    if table:
        t = doc.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                t.cell(r, c).text = value
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def _line(text):
    line = MagicMock(spec=LTTextLine)
    line.get_text.return_value = text
    return line


def _box(*lines):
    box = MagicMock(spec=LTTextBox)
    box.__iter__.return_value = iter([_line(t) for t in lines])
    return box


class TestMimeTypes:

    def test_normalize_strips_parameters_and_case(self):
        assert normalize_mime_type("Text/Plain; charset=utf-8") == TEXT_MIME
        assert normalize_mime_type(None) == ""


class TestPlainText:

    def test_decodes_utf8(self):
        text = "Résumé: Senior Python developer"
        assert extract_resume_text(text.encode("utf-8"), TEXT_MIME) == text

    def test_declared_charset_is_accepted(self):
        assert extract_resume_text(b"hello", "text/plain; charset=utf-8") == "hello"

    def test_invalid_bytes_are_dropped(self):
        assert extract_resume_text(b"ok\xff\xfe!", TEXT_MIME) == "ok!"


class TestDocx:

    def test_paragraphs_and_tables(self):
        data = _docx_bytes(
            "Jane Doe",
            "Senior Python developer",
            table=[["Skills", "Docker, AWS"]],
        )
        text = extract_resume_text(data, DOCX_MIME)
        assert "Jane Doe" in text
        assert "Senior Python developer" in text
        assert "Docker, AWS" in text

    def test_corrupt_docx(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_resume_text(b"definitely not a zip archive", DOCX_MIME)
        assert exc_info.value.message == "Failed to extract text from DOCX"
        assert exc_info.value.details


class TestPdf:

    @patch("app.helpers.parsing.extract_pages")
    def test_items_space_joined_pages_newline_joined(self, mock_extract_pages):
        mock_extract_pages.return_value = [
            [_box("Jane Doe ", "Senior Engineer\n"), _line("React")],
            [_box("Node.js")],
        ]

        text = extract_resume_text(b"%PDF-1.4", PDF_MIME)

        assert text == "Jane Doe Senior Engineer React\nNode.js"

    @patch("app.helpers.parsing.extract_pages")
    def test_blank_pages_yield_blank_text(self, mock_extract_pages):
        mock_extract_pages.return_value = [[], [_box("   ")]]

        assert extract_resume_text(b"%PDF-1.4", PDF_MIME) == ""

    def test_content_stream_text(self, build_pdf):
        data = build_pdf(b"BT /F1 12 Tf 72 720 Td (Senior Python engineer) Tj ET")

        assert extract_resume_text(data, PDF_MIME) == "Senior Python engineer"

    def test_text_inside_form_xobject(self, build_pdf):
        data = build_pdf(
            b"q /X1 Do Q",
            form=b"BT /F1 12 Tf 72 720 Td (Senior Python engineer) Tj ET",
        )

        assert extract_resume_text(data, PDF_MIME) == "Senior Python engineer"

    def test_lines_on_one_page_are_space_joined(self, build_pdf):
        data = build_pdf(b"BT /F1 12 Tf 72 720 Td (Jane Doe) Tj 0 -40 Td (Python engineer) Tj ET")

        assert extract_resume_text(data, PDF_MIME) == "Jane Doe Python engineer"

    def test_pages_are_newline_joined(self, build_pdf):
        data = build_pdf(
            b"BT /F1 12 Tf 72 720 Td (Jane Doe) Tj ET",
            b"BT /F1 12 Tf 72 720 Td (React and AWS) Tj ET",
        )

        assert extract_resume_text(data, PDF_MIME) == "Jane Doe\nReact and AWS"

    def test_corrupt_pdf(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_resume_text(b"this is not a pdf", PDF_MIME)
        assert exc_info.value.message == "Failed to extract text from PDF"
        assert exc_info.value.error_code == "EXTRACTION_ERROR"
        assert exc_info.value.details


class TestUnsupported:

    @pytest.mark.parametrize("mime_type", ["image/png", "application/msword", ""])
    def test_unsupported_types(self, mime_type):
        with pytest.raises(UnsupportedFormatError):
            extract_resume_text(b"\x89PNG", mime_type)
