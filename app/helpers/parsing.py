import io
from typing import Callable, Dict, Iterator

from docx import Document
from pdfminer.high_level import extract_pages
from pdfminer.layout import LAParams, LTContainer, LTTextLine

from app.utils.exceptions import ExtractionError, UnsupportedFormatError

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"


def normalize_mime_type(mime_type: str) -> str:
    """'Text/Plain; charset=utf-8' -> 'text/plain'"""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def read_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


def read_docx(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    lines = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            lines.extend(cell.text for cell in row.cells)
    return "\n".join(lines)


def _text_lines(container) -> Iterator[str]:
    """Yield every text line in a layout tree, including lines nested in figures (form XObjects)."""
    for element in container:
        if isinstance(element, LTTextLine):
            text = element.get_text().strip()
            if text:
                yield text
        elif isinstance(element, LTContainer):
            yield from _text_lines(element)


def read_pdf(data: bytes) -> str:
    # items within a page are space-joined, pages are newline-joined
    laparams = LAParams(all_texts=True)
    pages = [" ".join(_text_lines(page)) for page in extract_pages(io.BytesIO(data), laparams=laparams)]
    return "\n".join(pages).strip()


READERS: Dict[str, Callable[[bytes], str]] = {
    PDF_MIME: read_pdf,
    DOCX_MIME: read_docx,
    TEXT_MIME: read_txt,
}

FORMAT_NAMES = {
    PDF_MIME: "PDF",
    DOCX_MIME: "DOCX",
    TEXT_MIME: "text",
}


def extract_resume_text(data: bytes, mime_type: str) -> str:
    """
    Convert uploaded bytes into plain text, dispatching on the declared MIME type.

    Raises UnsupportedFormatError for unknown types and ExtractionError when the
    parser for a supported type fails. Blank output is returned unchanged; the
    caller decides whether that is acceptable.
    """
    normalized = normalize_mime_type(mime_type)
    reader = READERS.get(normalized)
    if reader is None:
        raise UnsupportedFormatError(mime_type or "unknown")

    try:
        return reader(data)
    except Exception as e:
        name = FORMAT_NAMES[normalized]
        raise ExtractionError(
            f"Failed to extract text from {name}",
            document_type=name,
            details=str(e) or e.__class__.__name__,
            cause=e,
        ) from e
