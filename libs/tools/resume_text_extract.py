from __future__ import annotations

import io
import re
from dataclasses import dataclass

from docx import Document
from pypdf import PdfReader

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MIN_EXTRACTED_CHARS = 50

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MSWORD_MIME = "application/msword"
ALLOWED_MIME_TYPES = (PDF_MIME, DOCX_MIME, MSWORD_MIME)


class ResumeFileError(ValueError):
    pass


@dataclass
class UploadedFile:
    original_name: str
    size: int
    mime_type: str
    content: str


def validate_upload(filename: str, content_type: str, data: bytes) -> None:
    if not data:
        raise ResumeFileError("No file provided or file is empty")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ResumeFileError("File size exceeds 10MB limit")
    if _resolve_kind(filename, content_type) is None:
        raise ResumeFileError("Invalid file type. Only PDF and DOCX files are allowed.")


def extract_text(filename: str, content_type: str, data: bytes) -> UploadedFile:
    validate_upload(filename, content_type, data)
    kind = _resolve_kind(filename, content_type)
    try:
        raw = _pdf_text(data) if kind == "pdf" else _docx_text(data)
    except Exception as exc:  # noqa: BLE001
        raise ResumeFileError(f"Failed to process file: {exc}") from exc

    cleaned = normalize_whitespace(raw)
    if len(cleaned) < MIN_EXTRACTED_CHARS:
        raise ResumeFileError(
            "Insufficient text content extracted from file. "
            "Please ensure the file contains readable text."
        )
    return UploadedFile(
        original_name=filename,
        size=len(data),
        mime_type=PDF_MIME if kind == "pdf" else (content_type or DOCX_MIME),
        content=cleaned,
    )


def normalize_whitespace(text: str) -> str:
    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = re.sub(r"[ \t]+", " ", cleaned)
    cleaned = re.sub(r"\n[ \t]+", "\n", cleaned)
    cleaned = re.sub(r"[ \t]+\n", "\n", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def _resolve_kind(filename: str, content_type: str) -> str | None:
    mime = (content_type or "").split(";")[0].strip().lower()
    name = (filename or "").lower()
    if mime == PDF_MIME or (mime in ("", "application/octet-stream") and name.endswith(".pdf")):
        return "pdf"
    if mime in (DOCX_MIME, MSWORD_MIME) or (
        mime in ("", "application/octet-stream") and name.endswith(".docx")
    ):
        return "docx"
    return None


def _pdf_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _docx_text(data: bytes) -> str:
    document = Document(io.BytesIO(data))
    lines = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            lines.append(" | ".join(cell.text for cell in row.cells))
    return "\n".join(lines)
