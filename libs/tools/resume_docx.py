from __future__ import annotations

import io
from typing import Any, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_TAB_ALIGNMENT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches, Pt, RGBColor
from docx.text.paragraph import Paragraph

from libs.core.models import ResumeData

from .templates import TemplateStyle, contact_line, date_range, resolve_template, section_title

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def render_docx(resume: ResumeData, template_id: Optional[Any] = None) -> bytes:
    style = resolve_template(template_id if template_id is not None else resume.template)
    document = Document()
    _apply_theme(document, style)

    name = document.add_paragraph()
    name_run = name.add_run(resume.personal_info.full_name)
    name_run.bold = True
    name_run.font.size = Pt(style.name_size)
    name.paragraph_format.space_after = Pt(2)
    contact = document.add_paragraph(contact_line(resume))
    contact.paragraph_format.space_after = Pt(10)
    if style.center_header:
        name.alignment = WD_ALIGN_PARAGRAPH.CENTER
        contact.alignment = WD_ALIGN_PARAGRAPH.CENTER

    if resume.summary.strip():
        _add_section_heading(document, style, "Professional Summary")
        document.add_paragraph(resume.summary.strip())

    if resume.work_experience:
        _add_section_heading(document, style, "Professional Experience")
        for entry in resume.work_experience:
            _add_role_header(
                document,
                f"{entry.position} | {entry.company}",
                date_range(entry.start_date, entry.end_date, entry.current),
            )
            if entry.location:
                meta = document.add_paragraph()
                meta_run = meta.add_run(entry.location)
                meta_run.italic = True
                meta.paragraph_format.space_after = Pt(2)
            for bullet in entry.description:
                _add_bullet(document, bullet)

    if resume.education:
        _add_section_heading(document, style, "Education")
        for edu in resume.education:
            degree = f"{edu.degree} in {edu.field}" if edu.field else edu.degree
            _add_role_header(document, degree, date_range(edu.start_date, edu.end_date))
            institution = document.add_paragraph(edu.institution)
            institution.paragraph_format.space_after = Pt(2)
            if edu.gpa:
                document.add_paragraph(f"GPA: {edu.gpa}")
            for achievement in edu.achievements or []:
                _add_bullet(document, achievement)

    if resume.skills:
        _add_section_heading(document, style, "Skills")
        document.add_paragraph(style.skill_separator.join(resume.skills))

    if resume.projects:
        _add_section_heading(document, style, "Projects")
        for project in resume.projects:
            _add_role_header(
                document, project.name, date_range(project.start_date, project.end_date)
            )
            links = " | ".join(link for link in (project.url, project.github) if link)
            if links:
                document.add_paragraph(links)
            document.add_paragraph(project.description)
            if project.technologies:
                tech = document.add_paragraph()
                label = tech.add_run("Technologies: ")
                label.bold = True
                tech.add_run(", ".join(project.technologies))

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _apply_theme(document: Document, style: TemplateStyle) -> None:
    normal_style = document.styles["Normal"]
    normal_style.font.name = style.docx_font
    normal_style.font.size = Pt(style.body_size)
    normal_style.paragraph_format.space_after = Pt(4)
    section = document.sections[0]
    for attr in ("top_margin", "bottom_margin", "left_margin", "right_margin"):
        setattr(section, attr, Inches(0.6))


def _add_section_heading(document: Document, style: TemplateStyle, title: str) -> Paragraph:
    paragraph = document.add_paragraph()
    run = paragraph.add_run(section_title(style, title))
    run.bold = True
    run.font.size = Pt(style.heading_size)
    run.font.color.rgb = RGBColor(*style.accent_rgb)
    paragraph.paragraph_format.space_before = Pt(12)
    paragraph.paragraph_format.space_after = Pt(4)
    paragraph.paragraph_format.keep_with_next = True
    if style.section_rule:
        _set_paragraph_bottom_border(paragraph, style.accent_hex.lstrip("#"))
    return paragraph


def _add_role_header(document: Document, left: str, right: str) -> Paragraph:
    paragraph = document.add_paragraph()
    section = document.sections[0]
    usable_width = section.page_width - section.left_margin - section.right_margin
    paragraph.paragraph_format.tab_stops.add_tab_stop(
        usable_width, alignment=WD_TAB_ALIGNMENT.RIGHT
    )
    left_run = paragraph.add_run(left)
    left_run.bold = True
    if right:
        paragraph.add_run("\t")
        paragraph.add_run(right)
    paragraph.paragraph_format.space_before = Pt(6)
    paragraph.paragraph_format.space_after = Pt(1)
    paragraph.paragraph_format.keep_with_next = True
    return paragraph


def _add_bullet(document: Document, text: str) -> Paragraph:
    paragraph = document.add_paragraph(style="List Bullet")
    paragraph.add_run(text)
    paragraph.paragraph_format.space_after = Pt(2)
    return paragraph


def _set_paragraph_bottom_border(paragraph: Paragraph, color: str) -> None:
    p_pr = paragraph._p.get_or_add_pPr()
    p_bdr = p_pr.find(qn("w:pBdr"))
    if p_bdr is None:
        p_bdr = OxmlElement("w:pBdr")
        p_pr.append(p_bdr)
    bottom = OxmlElement("w:bottom")
    bottom.set(qn("w:val"), "single")
    bottom.set(qn("w:sz"), "6")
    bottom.set(qn("w:space"), "1")
    bottom.set(qn("w:color"), color)
    p_bdr.append(bottom)
