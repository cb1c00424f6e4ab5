from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from libs.core import llm_provider, logging as core_logging, prompts
from libs.core.models import (
    ATSAnalysis,
    EducationEntry,
    JobAnalysis,
    PersonalInfo,
    ProjectEntry,
    ResumeData,
    WorkExperienceEntry,
    dedupe_skills,
    new_id,
)

from .errors import OracleUnavailable, ResumeValidationError
from .reconcile import redistribute_bullets
from .validation import (
    ATS_RESPONSE_SCHEMA,
    JOB_ANALYSIS_RESPONSE_SCHEMA,
    clamp_score,
    coerce_optional_string,
    coerce_string_list,
    parse_oracle_json,
)

_DEFAULT_ORACLE_TIMEOUT_S = 30.0
_DEFAULT_ORACLE_MAX_RETRIES = 0
_DEFAULT_ANALYSIS_MAX_TOKENS = 4096
_DEFAULT_ATS_MAX_TOKENS = 1024
_DEFAULT_ENHANCE_MAX_TOKENS = 4096
LOGGER = core_logging.get_logger("tailor")

EntryT = TypeVar("EntryT", bound=BaseModel)


def _parse_optional_float(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _parse_optional_int(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _resolve_float(primary: str | None, fallback: str | None, default: float) -> float:
    parsed_primary = _parse_optional_float(primary)
    if parsed_primary is not None:
        return parsed_primary
    parsed_fallback = _parse_optional_float(fallback)
    if parsed_fallback is not None:
        return parsed_fallback
    return default


def _resolve_int(primary: str | None, fallback: str | None, default: int) -> int:
    parsed_primary = _parse_optional_int(primary)
    if parsed_primary is not None:
        return parsed_primary
    parsed_fallback = _parse_optional_int(fallback)
    if parsed_fallback is not None:
        return parsed_fallback
    return default


def _max_tokens(env_key: str, default: int) -> int:
    configured = _parse_optional_int(os.getenv(env_key))
    if configured is None or configured <= 0:
        return default
    return configured


def _provider_model(provider: Any) -> str:
    model = getattr(provider, "model", None)
    if isinstance(model, str) and model.strip():
        return model.strip()
    return ""


def create_provider_from_env() -> Any:
    provider_name = os.getenv("LLM_PROVIDER", "mock").strip().lower()
    if provider_name == "anthropic":
        api_key = os.getenv("ANTHROPIC_API_KEY", "")
        model = os.getenv("ANTHROPIC_MODEL", llm_provider.DEFAULT_ANTHROPIC_MODEL)
        base_url = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com")
    else:
        api_key = os.getenv("OPENAI_API_KEY", "")
        model = os.getenv("OPENAI_MODEL", "")
        base_url = os.getenv("OPENAI_BASE_URL", "https://api.openai.com")
    return llm_provider.resolve_provider(
        provider_name,
        api_key=api_key,
        model=model,
        base_url=base_url,
        temperature=_parse_optional_float(os.getenv("LLM_TEMPERATURE")),
        timeout_s=_resolve_float(
            os.getenv("TAILOR_ORACLE_TIMEOUT_S"),
            os.getenv("LLM_TIMEOUT_S"),
            _DEFAULT_ORACLE_TIMEOUT_S,
        ),
        max_retries=_resolve_int(
            os.getenv("TAILOR_ORACLE_MAX_RETRIES"),
            os.getenv("LLM_MAX_RETRIES"),
            _DEFAULT_ORACLE_MAX_RETRIES,
        ),
        system_prompt=prompts.ANALYSIS_SYSTEM_PROMPT,
    )


def call_oracle(provider: Any, prompt: str, *, max_tokens: Optional[int] = None) -> str:
    started_at = time.monotonic()
    try:
        response = provider.generate(prompt, max_tokens=max_tokens)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning(
            "llm_generate_failed",
            provider_type=provider.__class__.__name__,
            provider_model=_provider_model(provider),
            prompt_chars=int(len(prompt)),
            timeout_s=getattr(provider, "timeout_s", None),
            duration_ms=int(max(0.0, time.monotonic() - started_at) * 1000),
            error=str(exc),
        )
        raise OracleUnavailable(
            f"oracle_unavailable:{exc}. Please try again in a moment."
        ) from exc
    LOGGER.info(
        "llm_generate_finished",
        provider_type=provider.__class__.__name__,
        provider_model=_provider_model(provider),
        prompt_chars=int(len(prompt)),
        max_tokens=max_tokens,
        duration_ms=int(max(0.0, time.monotonic() - started_at) * 1000),
    )
    content = getattr(response, "content", response)
    return content if isinstance(content, str) else str(content or "")


def analyze_job_description(
    job_description: str, resume: ResumeData, provider: Any
) -> JobAnalysis:
    if not isinstance(job_description, str) or not job_description.strip():
        raise ResumeValidationError("job_description_required")

    total_bullets = resume.total_bullets()
    prompt = prompts.job_analysis_prompt(job_description, resume)
    raw = call_oracle(
        provider,
        prompt,
        max_tokens=_max_tokens("TAILOR_ANALYSIS_MAX_TOKENS", _DEFAULT_ANALYSIS_MAX_TOKENS),
    )
    payload = parse_oracle_json(raw, JOB_ANALYSIS_RESPONSE_SCHEMA, label="job_analysis")

    optimized_experience = redistribute_bullets(
        resume.work_experience, payload.get("optimizedBullets")
    )
    analysis = JobAnalysis(
        matched_skills=coerce_string_list(payload.get("matchedSkills")),
        missing_skills=coerce_string_list(payload.get("missingSkills")),
        key_requirements=coerce_string_list(payload.get("keyRequirements")),
        original_match_score=clamp_score(payload.get("originalMatchScore")),
        optimized_match_score=clamp_score(payload.get("optimizedMatchScore")),
        suggestions=coerce_string_list(payload.get("suggestions")),
        enhanced_summary=coerce_optional_string(payload.get("enhancedSummary")) or resume.summary,
        optimized_experience=optimized_experience,
        improvement_areas=coerce_string_list(payload.get("improvementAreas")),
    )
    core_logging.log_event(
        LOGGER,
        "job_analysis_completed",
        {
            "total_bullets": total_bullets,
            "returned_bullets": len(payload.get("optimizedBullets") or []),
            "original_match_score": analysis.original_match_score,
            "optimized_match_score": analysis.optimized_match_score,
        },
    )
    return analysis


def score_ats_compatibility(resume: ResumeData, provider: Any) -> ATSAnalysis:
    prompt = prompts.ats_scan_prompt(resume)
    raw = call_oracle(
        provider,
        prompt,
        max_tokens=_max_tokens("TAILOR_ATS_MAX_TOKENS", _DEFAULT_ATS_MAX_TOKENS),
    )
    payload = parse_oracle_json(raw, ATS_RESPONSE_SCHEMA, label="ats_scan")
    analysis = ATSAnalysis(
        overall_score=clamp_score(payload.get("overallScore")),
        issues=coerce_string_list(payload.get("issues")),
        recommendations=coerce_string_list(payload.get("recommendations")),
        keyword_density=clamp_score(payload.get("keywordDensity")),
        format_compliance=coerce_string_list(payload.get("formatCompliance")),
    )
    LOGGER.info(
        "ats_scan_completed",
        overall_score=analysis.overall_score,
        keyword_density=analysis.keyword_density,
        issues=len(analysis.issues),
    )
    return analysis


def enhance_for_ats(resume: ResumeData, analysis: ATSAnalysis, provider: Any) -> ResumeData:
    """Ask the oracle for an ATS-improved copy of ``resume``.

    Fallback is per top-level field: a field the oracle omits or returns in an
    unusable shape is taken from the original resume unchanged.
    """
    prompt = prompts.ats_enhance_prompt(resume, analysis)
    raw = call_oracle(
        provider,
        prompt,
        max_tokens=_max_tokens("TAILOR_ENHANCE_MAX_TOKENS", _DEFAULT_ENHANCE_MAX_TOKENS),
    )
    payload = _unwrap_resume_payload(parse_oracle_json(raw, label="ats_enhance"))

    fallbacks: List[str] = []
    personal_info = _merge_personal_info(resume.personal_info, payload.get("personalInfo"))
    if personal_info is resume.personal_info:
        fallbacks.append("personalInfo")

    summary = coerce_optional_string(payload.get("summary"))
    if summary is None:
        summary = resume.summary
        fallbacks.append("summary")

    work_experience = _coerce_entries(
        payload.get("workExperience"), WorkExperienceEntry, resume.work_experience
    )
    if work_experience is None:
        work_experience = list(resume.work_experience)
        fallbacks.append("workExperience")

    education = _coerce_entries(payload.get("education"), EducationEntry, resume.education)
    if education is None:
        education = list(resume.education)
        fallbacks.append("education")

    projects = _coerce_entries(payload.get("projects"), ProjectEntry, resume.projects)
    if projects is None:
        projects = list(resume.projects)
        fallbacks.append("projects")

    skills = dedupe_skills(coerce_string_list(payload.get("skills")))
    if not skills:
        skills = list(resume.skills)
        fallbacks.append("skills")

    if fallbacks:
        LOGGER.info("ats_enhance_field_fallback", fields=fallbacks)
    return ResumeData(
        personal_info=personal_info,
        summary=summary,
        work_experience=work_experience,
        education=education,
        skills=skills,
        projects=projects,
        template=resume.template,
    )


def _unwrap_resume_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    if "personalInfo" in payload or "workExperience" in payload:
        return payload
    for key in ("resume", "enhancedResume", "tailoredResume"):
        nested = payload.get(key)
        if isinstance(nested, dict):
            return nested
    return payload


def _merge_personal_info(original: PersonalInfo, candidate: Any) -> PersonalInfo:
    if not isinstance(candidate, dict):
        return original
    merged = original.to_wire()
    for key, value in candidate.items():
        if isinstance(value, str) and value.strip():
            merged[key] = value.strip()
    try:
        return PersonalInfo.model_validate(merged)
    except ValidationError:
        return original


def _coerce_entries(
    candidate: Any, model: Type[EntryT], originals: List[Any]
) -> Optional[List[EntryT]]:
    if not isinstance(candidate, list):
        return None
    entries: List[EntryT] = []
    for index, item in enumerate(candidate):
        if not isinstance(item, dict):
            return None
        data = dict(item)
        if not isinstance(data.get("id"), str) or not data["id"].strip():
            data["id"] = originals[index].id if index < len(originals) else new_id()
        try:
            entries.append(model.model_validate(data))
        except ValidationError:
            return None
    return entries
