from __future__ import annotations

from io import BytesIO
from typing import Any, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from libs.core.models import ResumeData

from .templates import contact_line, date_range, resolve_template, section_title

PDF_MEDIA_TYPE = "application/pdf"


def render_pdf(resume: ResumeData, template_id: Optional[Any] = None) -> bytes:
    style = resolve_template(template_id if template_id is not None else resume.template)
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"{resume.personal_info.full_name} Resume")
    width, height = A4

    margin = 0.5 * inch
    max_width = width - 2 * margin
    body_size = style.body_size
    leading = body_size * 1.35
    accent = tuple(channel / 255 for channel in style.accent_rgb)

    y = height - margin

    def new_page() -> None:
        nonlocal y
        c.showPage()
        y = height - margin

    def ensure_space(lines_needed: float = 1) -> None:
        if y - (leading * lines_needed) <= margin:
            new_page()

    def wrap_text(text: str, font: str, size: float, avail_width: float) -> list[str]:
        words = text.split()
        if not words:
            return [""]
        lines: list[str] = []
        cur = words[0]
        for w in words[1:]:
            test = cur + " " + w
            if c.stringWidth(test, font, size) <= avail_width:
                cur = test
            else:
                lines.append(cur)
                cur = w
        lines.append(cur)
        return lines

    def draw_text(
        text: str,
        font: str = style.pdf_font,
        size: float = body_size,
        x: float = margin,
        avail_width: float = max_width,
        centered: bool = False,
    ) -> None:
        nonlocal y
        c.setFont(font, size)
        for line in wrap_text(text, font, size, avail_width):
            ensure_space(1)
            if centered:
                c.drawCentredString(width / 2, y, line)
            else:
                c.drawString(x, y, line)
            y -= max(leading, size * 1.25)

    def draw_bullet(text: str) -> None:
        nonlocal y
        indent = 12
        c.setFont(style.pdf_font, body_size)
        lines = wrap_text(text, style.pdf_font, body_size, max_width - indent)
        for idx, line in enumerate(lines):
            ensure_space(1)
            if idx == 0:
                c.drawString(margin + 2, y, "•")
            c.drawString(margin + indent, y, line)
            y -= leading

    def draw_row(left: str, right: str) -> None:
        nonlocal y
        ensure_space(1)
        right_width = c.stringWidth(right, style.pdf_font, body_size) if right else 0
        left_lines = wrap_text(left, style.pdf_bold_font, body_size, max_width - right_width - 12)
        c.setFont(style.pdf_bold_font, body_size)
        c.drawString(margin, y, left_lines[0])
        if right:
            c.setFont(style.pdf_font, body_size)
            c.drawRightString(width - margin, y, right)
        y -= leading
        for extra in left_lines[1:]:
            draw_text(extra, font=style.pdf_bold_font)

    def draw_heading(title: str) -> None:
        nonlocal y
        y -= leading * 0.5
        ensure_space(2)
        c.setFillColorRGB(*accent)
        c.setFont(style.pdf_bold_font, style.heading_size)
        c.drawString(margin, y, section_title(style, title))
        if style.section_rule:
            c.setStrokeColorRGB(*accent)
            c.setLineWidth(1)
            c.line(margin, y - 3, width - margin, y - 3)
        c.setFillColorRGB(0, 0, 0)
        y -= leading * 1.2

    draw_text(
        resume.personal_info.full_name,
        font=style.pdf_bold_font,
        size=style.name_size,
        centered=style.center_header,
    )
    draw_text(contact_line(resume), size=body_size - 1, centered=style.center_header)

    if resume.summary.strip():
        draw_heading("Professional Summary")
        draw_text(resume.summary.strip())

    if resume.work_experience:
        draw_heading("Professional Experience")
        for entry in resume.work_experience:
            draw_row(
                f"{entry.position} | {entry.company}",
                date_range(entry.start_date, entry.end_date, entry.current),
            )
            if entry.location:
                draw_text(entry.location, font=style.pdf_italic_font)
            for bullet in entry.description:
                draw_bullet(bullet)
            y -= leading * 0.3

    if resume.education:
        draw_heading("Education")
        for edu in resume.education:
            degree = f"{edu.degree} in {edu.field}" if edu.field else edu.degree
            draw_row(degree, date_range(edu.start_date, edu.end_date))
            draw_text(edu.institution, font=style.pdf_italic_font)
            if edu.gpa:
                draw_text(f"GPA: {edu.gpa}")
            for achievement in edu.achievements or []:
                draw_bullet(achievement)

    if resume.skills:
        draw_heading("Skills")
        draw_text(style.skill_separator.join(resume.skills))

    if resume.projects:
        draw_heading("Projects")
        for project in resume.projects:
            draw_row(project.name, date_range(project.start_date, project.end_date))
            links = " | ".join(link for link in (project.url, project.github) if link)
            if links:
                draw_text(links, size=body_size - 1)
            draw_text(project.description)
            if project.technologies:
                draw_text(f"Technologies: {', '.join(project.technologies)}")

    c.save()
    return buf.getvalue()
