from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return uuid.uuid4().hex


def dedupe_skills(skills: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    deduped: List[str] = []
    for skill in skills:
        if not isinstance(skill, str):
            continue
        cleaned = skill.strip()
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        deduped.append(cleaned)
    return deduped


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class TemplateId(str, Enum):
    modern = "modern"
    classic = "classic"
    creative = "creative"
    minimalist = "minimalist"
    executive = "executive"


class PersonalInfo(CamelModel):
    full_name: str
    email: str
    phone: str
    location: str
    website: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None


class WorkExperienceEntry(CamelModel):
    id: str = Field(default_factory=new_id)
    company: str
    position: str
    start_date: str
    end_date: Optional[str] = None
    current: bool = False
    description: List[str] = Field(default_factory=list)
    location: Optional[str] = None


class EducationEntry(CamelModel):
    id: str = Field(default_factory=new_id)
    institution: str
    degree: str
    field: str
    start_date: str
    end_date: Optional[str] = None
    gpa: Optional[str] = None
    achievements: Optional[List[str]] = None


class ProjectEntry(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str
    technologies: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    github: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ResumeData(CamelModel):
    personal_info: PersonalInfo
    summary: str = ""
    work_experience: List[WorkExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    projects: List[ProjectEntry] = Field(default_factory=list)
    template: TemplateId = TemplateId.modern

    def total_bullets(self) -> int:
        return sum(len(entry.description) for entry in self.work_experience)


class PersonalInfoInput(PersonalInfo):
    full_name: str = Field(min_length=1)
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str = Field(min_length=1)
    location: str = Field(min_length=1)


class ResumeCreate(CamelModel):
    title: str = Field(min_length=1)
    user_id: Optional[str] = None
    personal_info: PersonalInfoInput
    summary: str = ""
    work_experience: List[WorkExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    projects: List[ProjectEntry] = Field(default_factory=list)
    template: TemplateId = TemplateId.modern


class ResumeUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    personal_info: Optional[PersonalInfoInput] = None
    summary: Optional[str] = None
    work_experience: Optional[List[WorkExperienceEntry]] = None
    education: Optional[List[EducationEntry]] = None
    skills: Optional[List[str]] = None
    projects: Optional[List[ProjectEntry]] = None
    template: Optional[TemplateId] = None


class Resume(ResumeData):
    id: str
    title: str
    user_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def to_resume_data(self) -> ResumeData:
        return ResumeData.model_validate(
            self.model_dump(include=set(ResumeData.model_fields.keys()))
        )


class JobAnalysis(CamelModel):
    matched_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    key_requirements: List[str] = Field(default_factory=list)
    original_match_score: float = Field(default=0, ge=0, le=100)
    optimized_match_score: float = Field(default=0, ge=0, le=100)
    suggestions: List[str] = Field(default_factory=list)
    enhanced_summary: Optional[str] = None
    optimized_experience: Optional[List[WorkExperienceEntry]] = None
    improvement_areas: Optional[List[str]] = None


class ATSAnalysis(CamelModel):
    overall_score: float = Field(default=0, ge=0, le=100)
    issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    keyword_density: float = Field(default=0, ge=0, le=100)
    format_compliance: List[str] = Field(default_factory=list)


class JobAnalysisRecord(CamelModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)

    id: str
    resume_id: str
    job_description: str
    analysis: JobAnalysis
    tailored_resume: Optional[ResumeData] = None
    created_at: datetime
