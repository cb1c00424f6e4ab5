from __future__ import annotations

from typing import Any, List, Optional


class TailorError(Exception):
    def __init__(self, detail: str, status_code: int = 400) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class ResumeValidationError(TailorError):
    def __init__(self, detail: str, details: Optional[List[Any]] = None) -> None:
        super().__init__(detail, status_code=400)
        self.details = details or []


class NotFoundError(TailorError):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=404)


class OracleUnavailable(TailorError):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=500)


class OracleResponseMalformed(TailorError):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=500)


class RenderError(TailorError):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=500)
