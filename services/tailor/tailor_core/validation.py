from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator

from libs.core import logging as core_logging

from .errors import OracleResponseMalformed

LOGGER = core_logging.get_logger("tailor")

DECODE_OK = "ok"
DECODE_PARSE_FAILED = "parse_failed"
DECODE_SCHEMA_MISMATCH = "schema_mismatch"

_LEADING_FENCE = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```\s*$")
# Keeps \t, \n and \r; strings may legitimately contain them.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_STRING_LIST = {"type": "array", "items": {"type": "string"}}
# Numeric strings such as "62" or "88%" are parsed by clamp_score.
_SCORE = {"type": ["number", "string", "null"]}

JOB_ANALYSIS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "matchedSkills": _STRING_LIST,
        "missingSkills": _STRING_LIST,
        "keyRequirements": _STRING_LIST,
        "originalMatchScore": _SCORE,
        "optimizedMatchScore": _SCORE,
        "suggestions": _STRING_LIST,
        "enhancedSummary": {"type": ["string", "null"]},
        # Items are checked per work-experience slice during reconciliation.
        "optimizedBullets": {"type": "array"},
        "improvementAreas": _STRING_LIST,
    },
}

ATS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "overallScore": _SCORE,
        "issues": _STRING_LIST,
        "recommendations": _STRING_LIST,
        "keywordDensity": _SCORE,
        "formatCompliance": _STRING_LIST,
    },
}


@dataclass
class DecodeResult:
    status: str
    payload: Dict[str, Any] = field(default_factory=dict)
    problems: List[str] = field(default_factory=list)
    repaired: bool = False

    @property
    def ok(self) -> bool:
        return self.status == DECODE_OK


def strip_code_fences(text: str) -> str:
    current = text or ""
    while True:
        stripped = _TRAILING_FENCE.sub("", _LEADING_FENCE.sub("", current, count=1), count=1)
        if stripped == current:
            return current
        current = stripped


def sanitize_oracle_text(text: str) -> str:
    return _CONTROL_CHARS.sub("", strip_code_fences(text or "")).strip()


def repair_truncated_json(text: str) -> str:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return ""
    return text[start : end + 1]


def _loads(text: str) -> Any:
    return json.loads(text, strict=False)


def decode_oracle_payload(text: str, schema: Optional[Dict[str, Any]] = None) -> DecodeResult:
    sanitized = sanitize_oracle_text(text)
    repaired = False
    try:
        payload = _loads(sanitized)
    except ValueError as first_exc:
        candidate = repair_truncated_json(sanitized)
        if not candidate or candidate == sanitized:
            return DecodeResult(status=DECODE_PARSE_FAILED, problems=[str(first_exc)])
        try:
            payload = _loads(candidate)
        except ValueError as exc:
            return DecodeResult(status=DECODE_PARSE_FAILED, problems=[str(first_exc), str(exc)])
        repaired = True
        LOGGER.info(
            "oracle_response_repaired",
            original_chars=len(sanitized),
            repaired_chars=len(candidate),
        )

    if not isinstance(payload, dict):
        return DecodeResult(
            status=DECODE_SCHEMA_MISMATCH,
            problems=[f"expected a JSON object, got {type(payload).__name__}"],
            repaired=repaired,
        )
    if schema is None:
        return DecodeResult(status=DECODE_OK, payload=payload, repaired=repaired)

    validator = Draft202012Validator(schema)
    problems: List[str] = []
    cleaned = dict(payload)
    for error in sorted(validator.iter_errors(payload), key=lambda err: list(err.path)):
        location = "/".join(map(str, error.path)) or "<root>"
        problems.append(f"{location}: {error.message}")
        if error.path:
            cleaned.pop(error.path[0], None)
    if problems:
        LOGGER.info("oracle_response_schema_mismatch", problems=problems[:5])
    return DecodeResult(status=DECODE_OK, payload=cleaned, problems=problems, repaired=repaired)


def parse_oracle_json(
    text: str, schema: Optional[Dict[str, Any]] = None, *, label: str = "oracle"
) -> Dict[str, Any]:
    result = decode_oracle_payload(text, schema)
    if not result.ok:
        detail = "; ".join(result.problems[:2]) or result.status
        raise OracleResponseMalformed(f"{label}_response_malformed:{result.status}:{detail}")
    return result.payload


def clamp_score(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return 0.0
    if not isinstance(value, (int, float)):
        return 0.0
    try:
        number = float(value)
    except (OverflowError, ValueError):
        # Integers too large for a float.
        return 100.0 if value > 0 else 0.0
    if math.isnan(number):
        return 0.0
    return max(0.0, min(100.0, number))


def coerce_string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def coerce_optional_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
