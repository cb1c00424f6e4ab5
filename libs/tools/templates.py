from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from libs.core.models import ResumeData, TemplateId


@dataclass(frozen=True)
class TemplateStyle:
    template_id: TemplateId
    display_name: str
    docx_font: str
    pdf_font: str
    pdf_bold_font: str
    pdf_italic_font: str
    accent_hex: str
    name_size: float
    heading_size: float
    body_size: float
    center_header: bool = True
    uppercase_headings: bool = True
    section_rule: bool = True
    skill_separator: str = " • "

    @property
    def accent_rgb(self) -> tuple[int, int, int]:
        value = self.accent_hex.lstrip("#")
        return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


TEMPLATE_STYLES: Dict[TemplateId, TemplateStyle] = {
    TemplateId.modern: TemplateStyle(
        template_id=TemplateId.modern,
        display_name="Modern Professional",
        docx_font="Calibri",
        pdf_font="Helvetica",
        pdf_bold_font="Helvetica-Bold",
        pdf_italic_font="Helvetica-Oblique",
        accent_hex="#3B82F6",
        name_size=22,
        heading_size=12,
        body_size=10.5,
    ),
    TemplateId.classic: TemplateStyle(
        template_id=TemplateId.classic,
        display_name="Classic",
        docx_font="Times New Roman",
        pdf_font="Times-Roman",
        pdf_bold_font="Times-Bold",
        pdf_italic_font="Times-Italic",
        accent_hex="#000000",
        name_size=20,
        heading_size=12,
        body_size=11,
    ),
    TemplateId.creative: TemplateStyle(
        template_id=TemplateId.creative,
        display_name="Creative Edge",
        docx_font="Calibri",
        pdf_font="Helvetica",
        pdf_bold_font="Helvetica-Bold",
        pdf_italic_font="Helvetica-Oblique",
        accent_hex="#7C3AED",
        name_size=24,
        heading_size=13,
        body_size=10.5,
        center_header=False,
        uppercase_headings=False,
        skill_separator=" | ",
    ),
    TemplateId.minimalist: TemplateStyle(
        template_id=TemplateId.minimalist,
        display_name="Minimalist",
        docx_font="Arial",
        pdf_font="Helvetica",
        pdf_bold_font="Helvetica-Bold",
        pdf_italic_font="Helvetica-Oblique",
        accent_hex="#374151",
        name_size=18,
        heading_size=11,
        body_size=10,
        center_header=False,
        section_rule=False,
        skill_separator=", ",
    ),
    TemplateId.executive: TemplateStyle(
        template_id=TemplateId.executive,
        display_name="Executive Classic",
        docx_font="Georgia",
        pdf_font="Times-Roman",
        pdf_bold_font="Times-Bold",
        pdf_italic_font="Times-Italic",
        accent_hex="#1E3A5F",
        name_size=24,
        heading_size=13,
        body_size=11,
    ),
}


def resolve_template(template_id: Any) -> TemplateStyle:
    try:
        return TEMPLATE_STYLES[TemplateId(template_id)]
    except ValueError:
        return TEMPLATE_STYLES[TemplateId.modern]


def date_range(start: str | None, end: str | None, current: bool = False) -> str:
    start_text = (start or "").strip()
    end_text = "Present" if current else (end or "").strip()
    if start_text and end_text:
        return f"{start_text} - {end_text}"
    return start_text or end_text


def contact_line(resume: ResumeData) -> str:
    info = resume.personal_info
    parts = [
        info.email,
        info.phone,
        info.location,
        info.website,
        info.linkedin,
        info.github,
    ]
    return " | ".join(part.strip() for part in parts if isinstance(part, str) and part.strip())


def section_title(style: TemplateStyle, title: str) -> str:
    return title.upper() if style.uppercase_headings else title.title()
