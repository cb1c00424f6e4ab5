from __future__ import annotations

from typing import Any, List, Optional, Sequence

from libs.core import logging as core_logging
from libs.core.models import JobAnalysis, ResumeData, WorkExperienceEntry

LOGGER = core_logging.get_logger("tailor")


def _usable_slice(candidate: Sequence[Any], expected: int) -> bool:
    if len(candidate) != expected:
        return False
    return all(isinstance(bullet, str) and bullet.strip() for bullet in candidate)


def redistribute_bullets(
    entries: Sequence[WorkExperienceEntry], optimized_bullets: Optional[Sequence[Any]]
) -> List[WorkExperienceEntry]:
    """Map a flat list of optimized bullets back onto each entry's original positions.

    Each entry takes the next ``len(entry.description)`` bullets. An entry whose
    slice is short, long, or contains non-text items keeps its original
    description; a bad slice only affects its own entry. Everything except the
    description is copied from the original entry.
    """
    flat: Sequence[Any] = optimized_bullets if isinstance(optimized_bullets, list) else []
    reconciled: List[WorkExperienceEntry] = []
    bullets_processed = 0
    for index, entry in enumerate(entries):
        expected = len(entry.description)
        candidate = flat[bullets_processed : bullets_processed + expected]
        if _usable_slice(candidate, expected):
            description = [bullet.strip() for bullet in candidate]
        else:
            description = list(entry.description)
            if expected:
                LOGGER.info(
                    "bullet_count_mismatch",
                    entry_index=index,
                    entry_id=entry.id,
                    expected=expected,
                    received=len(candidate),
                )
        reconciled.append(entry.model_copy(update={"description": description}, deep=True))
        bullets_processed += expected
    return reconciled


def build_tailored_resume(resume: ResumeData, analysis: JobAnalysis) -> ResumeData:
    experience = (
        analysis.optimized_experience
        if analysis.optimized_experience is not None
        else resume.work_experience
    )
    return resume.model_copy(
        update={
            "summary": analysis.enhanced_summary or resume.summary,
            "work_experience": [entry.model_copy(deep=True) for entry in experience],
        },
        deep=True,
    )
