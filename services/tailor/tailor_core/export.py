from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from libs.core import logging as core_logging
from libs.core.models import ResumeData, TemplateId, new_id
from libs.tools.resume_docx import DOCX_MEDIA_TYPE, render_docx
from libs.tools.resume_pdf import PDF_MEDIA_TYPE, render_pdf

from .errors import RenderError

LOGGER = core_logging.get_logger("tailor")


@dataclass
class ExportedDocument:
    content: bytes
    media_type: str
    filename: str


_RENDERERS: Dict[str, tuple[Callable[[ResumeData, Any], bytes], str, str]] = {
    "pdf": (render_pdf, PDF_MEDIA_TYPE, "pdf"),
    "docx": (render_docx, DOCX_MEDIA_TYPE, "docx"),
}


def export_resume(
    resume: ResumeData, fmt: str, template_id: Optional[Any] = None
) -> ExportedDocument:
    if fmt not in _RENDERERS:
        raise RenderError(f"unsupported_export_format:{fmt}")
    renderer, media_type, extension = _RENDERERS[fmt]
    try:
        content = renderer(resume, template_id)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("resume_export_failed", format=fmt, error=str(exc))
        raise RenderError(f"Failed to generate {fmt.upper()}: {exc}") from exc
    return ExportedDocument(
        content=content,
        media_type=media_type,
        filename=f"{_safe_filename(resume.personal_info.full_name)}_Resume.{extension}",
    )


def coerce_export_payload(body: Any) -> ResumeData:
    """Build a renderable resume from a loosely-shaped request body.

    Every field is defaulted independently so a partially filled form still
    exports.
    """
    data = body if isinstance(body, dict) else {}
    info = data.get("personalInfo") if isinstance(data.get("personalInfo"), dict) else {}
    template = data.get("template")
    return ResumeData.model_validate(
        {
            "personalInfo": {
                "fullName": _text(info.get("fullName")) or "Resume",
                "email": _text(info.get("email")),
                "phone": _text(info.get("phone")),
                "location": _text(info.get("location")),
                "website": _text(info.get("website")) or None,
                "linkedin": _text(info.get("linkedin")) or None,
                "github": _text(info.get("github")) or None,
            },
            "summary": _text(data.get("summary")),
            "workExperience": [
                {
                    "id": _text(item.get("id")) or new_id(),
                    "company": _text(item.get("company")),
                    "position": _text(item.get("position")),
                    "startDate": _text(item.get("startDate")),
                    "endDate": _text(item.get("endDate")) or None,
                    "current": bool(item.get("current")),
                    "description": _texts(item.get("description")),
                    "location": _text(item.get("location")) or None,
                }
                for item in _dicts(data.get("workExperience"))
            ],
            "education": [
                {
                    "id": _text(item.get("id")) or new_id(),
                    "institution": _text(item.get("institution")),
                    "degree": _text(item.get("degree")),
                    "field": _text(item.get("field")),
                    "startDate": _text(item.get("startDate")),
                    "endDate": _text(item.get("endDate")) or None,
                    "gpa": _text(item.get("gpa")) or None,
                    "achievements": _texts(item.get("achievements")) or None,
                }
                for item in _dicts(data.get("education"))
            ],
            "skills": _texts(data.get("skills")),
            "projects": [
                {
                    "id": _text(item.get("id")) or new_id(),
                    "name": _text(item.get("name")),
                    "description": _text(item.get("description")),
                    "technologies": _texts(item.get("technologies")),
                    "url": _text(item.get("url")) or None,
                    "github": _text(item.get("github")) or None,
                    "startDate": _text(item.get("startDate")) or None,
                    "endDate": _text(item.get("endDate")) or None,
                }
                for item in _dicts(data.get("projects"))
            ],
            "template": template if template in {t.value for t in TemplateId} else "modern",
        }
    )


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _texts(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_text(item) for item in value) if text]


def _dicts(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _safe_filename(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name or "").strip("_")
    return cleaned or "Resume"
