from __future__ import annotations

import json
from typing import Any

from .models import ATSAnalysis, ResumeData

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert resume optimizer and career counselor. Return ONLY valid JSON "
    "without any markdown formatting, comments, or explanations. Provide detailed, "
    "actionable feedback in the requested JSON format."
)

_JSON_ONLY = (
    "IMPORTANT: Return ONLY the JSON object with no explanations, markdown formatting, "
    "or additional text."
)


def numbered_work_history(resume: ResumeData) -> str:
    jobs: list[str] = []
    for idx, entry in enumerate(resume.work_experience, start=1):
        bullets = "\n".join(
            f"{bullet_idx}. {bullet}"
            for bullet_idx, bullet in enumerate(entry.description, start=1)
        )
        header = (
            f"JOB {idx} - {entry.position} at {entry.company} "
            f"({len(entry.description)} bullet points):"
        )
        jobs.append(f"{header}\n{bullets}" if bullets else header)
    return "\n\n".join(jobs)


def job_analysis_prompt(job_description: str, resume: ResumeData) -> str:
    total_bullets = resume.total_bullets()
    return (
        "Analyze the following job description and resume to provide optimization "
        "recommendations.\n\n"
        f"JOB DESCRIPTION:\n{job_description}\n\n"
        "CURRENT RESUME DATA:\n"
        f"Name: {resume.personal_info.full_name}\n"
        f"Summary: {resume.summary}\n"
        f"Skills: {', '.join(resume.skills)}\n"
        f"Experience: {numbered_work_history(resume)}\n\n"
        f"TOTAL BULLET POINTS TO OPTIMIZE: {total_bullets}\n\n"
        "CRITICAL OPTIMIZATION GUIDELINES:\n"
        "- NEVER remove or delete any existing content from the resume\n"
        "- PRESERVE ALL original job descriptions, bullet points, and accomplishments\n"
        "- ONLY enhance and reframe existing content to emphasize transferable skills\n"
        "- ADD relevant keywords and industry terminology while keeping original meaning\n"
        "- AMPLIFY existing achievements by highlighting their relevance to the target role\n"
        "- MAINTAIN the exact same number of bullet points for each job\n"
        "- KEEP all original dates, company names, and position titles unchanged\n\n"
        "Please analyze and provide a JSON response with the following structure:\n"
        "{\n"
        '  "matchedSkills": ["array of skills from resume that match job requirements"],\n'
        '  "missingSkills": ["array of important skills mentioned in job but missing from resume"],\n'
        '  "keyRequirements": ["array of 5-7 most important requirements from the job"],\n'
        '  "originalMatchScore": number between 0-100 representing how well current resume matches job,\n'
        '  "optimizedMatchScore": number between 0-100 representing predicted match score after optimization,\n'
        '  "suggestions": ["array of specific suggestions to amplify transferable skills"],\n'
        '  "enhancedSummary": "rewritten professional summary emphasizing transferable skills relevant to this job",\n'
        f'  "optimizedBullets": ["array of exactly {total_bullets} enhanced bullet points, '
        'one per original bullet, in the original order (job 1 first)"],\n'
        '  "improvementAreas": ["array of specific existing skills/experiences that should be emphasized more"]\n'
        "}\n\n"
        "Focus on ATS optimization, keyword matching, and actionable improvements.\n\n"
        f"{_JSON_ONLY}\n"
    )


def resume_plain_text(resume: ResumeData) -> str:
    lines = [
        f"Name: {resume.personal_info.full_name}",
        f"Summary: {resume.summary}",
        f"Skills: {', '.join(resume.skills)}",
        "Experience:",
    ]
    for entry in resume.work_experience:
        lines.append(f"{entry.position} at {entry.company}")
        lines.extend(f"- {bullet}" for bullet in entry.description)
    return "\n".join(lines)


def ats_scan_prompt(resume: ResumeData) -> str:
    return (
        "You are an Applicant Tracking System (ATS) compatibility reviewer. Score the "
        "resume below for how reliably ATS software would parse and rank it.\n\n"
        f"RESUME:\n{resume_plain_text(resume)}\n\n"
        "SCORING RUBRIC:\n"
        "- Keyword coverage and density of role-relevant terms\n"
        "- Standard section headings and simple single-column structure\n"
        "- Quantified, action-led bullet points\n"
        "- Consistent date formats and complete contact details\n"
        "Be realistic: most resumes score between 45 and 85. Avoid extreme scores "
        "unless the resume is exceptionally strong or weak.\n\n"
        "Return a JSON object with the following structure:\n"
        "{\n"
        '  "overallScore": number between 0-100,\n'
        '  "issues": ["array of concrete ATS problems found"],\n'
        '  "recommendations": ["array of specific fixes"],\n'
        '  "keywordDensity": number between 0-100,\n'
        '  "formatCompliance": ["array of format checks that passed or failed"]\n'
        "}\n\n"
        f"{_JSON_ONLY}\n"
    )


def ats_enhance_prompt(resume: ResumeData, analysis: ATSAnalysis) -> str:
    resume_json = json.dumps(resume.to_wire(), ensure_ascii=False, indent=2)
    analysis_json = json.dumps(analysis.to_wire(), ensure_ascii=False, indent=2)
    return (
        "Improve the resume below for ATS compatibility using the scan results.\n\n"
        f"ATS SCAN RESULTS:\n{analysis_json}\n\n"
        f"CURRENT RESUME (JSON):\n{resume_json}\n\n"
        "RULES:\n"
        "- NEVER remove existing content; only add keywords and strengthen wording\n"
        "- Keep every id, company, position, institution and date exactly as given\n"
        "- Keep the same number of bullet points for each job\n"
        "- Return the COMPLETE resume using exactly the same JSON shape and field names\n\n"
        f"{_JSON_ONLY}\n"
    )


def resume_parse_prompt(content: str) -> str:
    schema: dict[str, Any] = {
        "personalInfo": {
            "fullName": "string",
            "email": "string",
            "phone": "string",
            "location": "string",
            "website": "string (optional)",
            "linkedin": "string (optional)",
            "github": "string (optional)",
        },
        "summary": "string - professional summary/objective",
        "skills": ["array of skills"],
        "workExperience": [
            {
                "company": "string",
                "position": "string",
                "startDate": "string (MM/YYYY)",
                "endDate": "string (MM/YYYY or empty if current)",
                "current": "boolean",
                "description": ["array of bullet points"],
                "location": "string (optional)",
            }
        ],
        "education": [
            {
                "institution": "string",
                "degree": "string",
                "field": "string",
                "startDate": "string (MM/YYYY)",
                "endDate": "string (MM/YYYY)",
                "gpa": "string (optional)",
                "achievements": ["array (optional)"],
            }
        ],
        "projects": [
            {
                "name": "string",
                "description": "string",
                "technologies": ["array of technologies"],
                "url": "string (optional)",
                "github": "string (optional)",
            }
        ],
    }
    return (
        "Parse the following resume content and extract structured information.\n\n"
        f"RESUME CONTENT:\n{content}\n\n"
        "Please extract and structure the information into JSON format:\n"
        f"{json.dumps(schema, indent=2)}\n\n"
        f"{_JSON_ONLY} If a field is not found, omit it or use empty arrays/strings as "
        "appropriate. Ensure all dates are in MM/YYYY format.\n"
    )
