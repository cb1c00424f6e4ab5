from __future__ import annotations

import os
from typing import Any, Dict, List

from libs.core import logging as core_logging, prompts
from libs.core.models import dedupe_skills

from .service import call_oracle
from .validation import parse_oracle_json

_DEFAULT_PARSE_MAX_TOKENS = 2048
LOGGER = core_logging.get_logger("tailor")


def _parse_max_tokens() -> int:
    value = os.getenv("TAILOR_PARSE_MAX_TOKENS", "")
    try:
        parsed = int(value)
    except ValueError:
        return _DEFAULT_PARSE_MAX_TOKENS
    return parsed if parsed > 0 else _DEFAULT_PARSE_MAX_TOKENS


def parse_resume_content(content: str, provider: Any) -> Dict[str, Any]:
    """Turn extracted resume text into a partial ResumeData payload (camelCase)."""
    raw = call_oracle(provider, prompts.resume_parse_prompt(content), max_tokens=_parse_max_tokens())
    parsed = parse_oracle_json(raw, label="resume_parse")

    experience = parsed.get("workExperience")
    if isinstance(experience, list):
        parsed["workExperience"] = [
            _normalize_experience(entry, index)
            for index, entry in enumerate(experience)
            if isinstance(entry, dict)
        ]

    education = parsed.get("education")
    if isinstance(education, list):
        parsed["education"] = [
            {**entry, "id": f"edu_{index}"}
            for index, entry in enumerate(education)
            if isinstance(entry, dict)
        ]

    projects = parsed.get("projects")
    if isinstance(projects, list):
        parsed["projects"] = [
            {
                **entry,
                "id": f"proj_{index}",
                "technologies": _string_list(entry.get("technologies")),
            }
            for index, entry in enumerate(projects)
            if isinstance(entry, dict)
        ]

    if "skills" in parsed:
        parsed["skills"] = dedupe_skills(_string_list(parsed.get("skills")))

    LOGGER.info(
        "resume_parsed",
        content_chars=len(content),
        work_experience=len(parsed.get("workExperience") or []),
        education=len(parsed.get("education") or []),
    )
    return parsed


def _normalize_experience(entry: Dict[str, Any], index: int) -> Dict[str, Any]:
    description = entry.get("description")
    if isinstance(description, list):
        bullets = [item for item in description if isinstance(item, str)]
    else:
        bullets = [description if isinstance(description, str) else ""]
    return {
        **entry,
        "id": f"exp_{index}",
        "current": bool(entry.get("current") or False),
        "description": bullets,
    }


def _string_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    if isinstance(value, str) and value.strip():
        return [part.strip() for part in value.split(",") if part.strip()]
    return []
