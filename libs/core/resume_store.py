from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from .models import (
    JobAnalysis,
    JobAnalysisRecord,
    Resume,
    ResumeCreate,
    ResumeData,
    ResumeUpdate,
    new_id,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResumeStore(Protocol):
    def get(self, resume_id: str) -> Optional[Resume]: ...

    def put(self, resume_id: str, resume: Resume) -> None: ...

    def delete(self, resume_id: str) -> bool: ...

    def create(self, request: ResumeCreate) -> Resume: ...

    def update(self, resume_id: str, request: ResumeUpdate) -> Optional[Resume]: ...

    def list(self, user_id: Optional[str] = None) -> List[Resume]: ...


class JobAnalysisStore(Protocol):
    def create(
        self,
        resume_id: str,
        job_description: str,
        analysis: JobAnalysis,
        tailored_resume: Optional[ResumeData],
    ) -> JobAnalysisRecord: ...

    def get(self, analysis_id: str) -> Optional[JobAnalysisRecord]: ...

    def list_by_resume(self, resume_id: str) -> List[JobAnalysisRecord]: ...

    def delete(self, analysis_id: str) -> bool: ...


class InMemoryResumeStore:
    """Process-local map of resumes. Read-then-replace, no locking."""

    def __init__(self) -> None:
        self._resumes: Dict[str, Resume] = {}

    def get(self, resume_id: str) -> Optional[Resume]:
        return self._resumes.get(resume_id)

    def put(self, resume_id: str, resume: Resume) -> None:
        self._resumes[resume_id] = resume

    def delete(self, resume_id: str) -> bool:
        return self._resumes.pop(resume_id, None) is not None

    def create(self, request: ResumeCreate) -> Resume:
        now = _utcnow()
        resume = Resume(
            id=new_id(),
            created_at=now,
            updated_at=now,
            **request.model_dump(),
        )
        self.put(resume.id, resume)
        return resume

    def update(self, resume_id: str, request: ResumeUpdate) -> Optional[Resume]:
        existing = self.get(resume_id)
        if existing is None:
            return None
        changes = {
            key: value
            for key, value in request.model_dump(exclude_unset=True).items()
            if value is not None
        }
        merged = existing.model_dump()
        merged.update(changes)
        merged["id"] = existing.id
        merged["created_at"] = existing.created_at
        merged["updated_at"] = _utcnow()
        updated = Resume.model_validate(merged)
        self.put(resume_id, updated)
        return updated

    def list(self, user_id: Optional[str] = None) -> List[Resume]:
        resumes = list(self._resumes.values())
        if user_id:
            return [resume for resume in resumes if resume.user_id == user_id]
        return resumes


class InMemoryJobAnalysisStore:
    def __init__(self) -> None:
        self._records: Dict[str, JobAnalysisRecord] = {}

    def create(
        self,
        resume_id: str,
        job_description: str,
        analysis: JobAnalysis,
        tailored_resume: Optional[ResumeData],
    ) -> JobAnalysisRecord:
        record = JobAnalysisRecord(
            id=new_id(),
            resume_id=resume_id,
            job_description=job_description,
            analysis=analysis,
            tailored_resume=tailored_resume,
            created_at=_utcnow(),
        )
        self._records[record.id] = record
        return record

    def get(self, analysis_id: str) -> Optional[JobAnalysisRecord]:
        return self._records.get(analysis_id)

    def list_by_resume(self, resume_id: str) -> List[JobAnalysisRecord]:
        records = [record for record in self._records.values() if record.resume_id == resume_id]
        return sorted(records, key=lambda record: record.created_at)

    def delete(self, analysis_id: str) -> bool:
        return self._records.pop(analysis_id, None) is not None
