from .errors import (
    NotFoundError,
    OracleResponseMalformed,
    OracleUnavailable,
    RenderError,
    ResumeValidationError,
    TailorError,
)
from .export import ExportedDocument, coerce_export_payload, export_resume
from .importer import parse_resume_content
from .reconcile import build_tailored_resume, redistribute_bullets
from .service import (
    analyze_job_description,
    create_provider_from_env,
    enhance_for_ats,
    score_ats_compatibility,
)

__all__ = [
    "TailorError",
    "ResumeValidationError",
    "NotFoundError",
    "OracleUnavailable",
    "OracleResponseMalformed",
    "RenderError",
    "ExportedDocument",
    "create_provider_from_env",
    "analyze_job_description",
    "score_ats_compatibility",
    "enhance_for_ats",
    "parse_resume_content",
    "redistribute_bullets",
    "build_tailored_resume",
    "coerce_export_payload",
    "export_resume",
]
