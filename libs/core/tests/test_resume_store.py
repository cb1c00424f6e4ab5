from __future__ import annotations

from libs.core.models import (
    JobAnalysis,
    ResumeCreate,
    ResumeUpdate,
    WorkExperienceEntry,
)
from libs.core.resume_store import InMemoryJobAnalysisStore, InMemoryResumeStore


def _create_request(**overrides) -> ResumeCreate:
    payload = {
        "title": "Backend resume",
        "userId": "user-1",
        "personalInfo": {
            "fullName": "Jane Doe",
            "email": "jane@example.com",
            "phone": "555-0100",
            "location": "Austin, TX",
        },
        "summary": "Backend engineer.",
        "workExperience": [
            {
                "id": "w1",
                "company": "Acme",
                "position": "Engineer",
                "startDate": "2020-01",
                "current": True,
                "description": ["Built APIs", "Ran on-call"],
            }
        ],
        "skills": ["Python"],
    }
    payload.update(overrides)
    return ResumeCreate.model_validate(payload)


def test_create_assigns_id_and_timestamps() -> None:
    store = InMemoryResumeStore()
    resume = store.create(_create_request())
    assert resume.id
    assert resume.created_at == resume.updated_at
    assert store.get(resume.id) == resume
    assert resume.work_experience[0].description == ["Built APIs", "Ran on-call"]


def test_update_merges_only_supplied_fields() -> None:
    store = InMemoryResumeStore()
    resume = store.create(_create_request())

    updated = store.update(
        resume.id, ResumeUpdate.model_validate({"summary": "Platform engineer.", "skills": None})
    )

    assert updated is not None
    assert updated.id == resume.id
    assert updated.created_at == resume.created_at
    assert updated.updated_at >= resume.updated_at
    assert updated.summary == "Platform engineer."
    assert updated.skills == ["Python"]
    assert updated.title == "Backend resume"
    assert updated.work_experience == resume.work_experience


def test_update_replaces_lists_wholesale() -> None:
    store = InMemoryResumeStore()
    resume = store.create(_create_request())
    replacement = WorkExperienceEntry(
        id="w2", company="Globex", position="Lead", start_date="2023-01", description=["Led"]
    )
    updated = store.update(resume.id, ResumeUpdate(work_experience=[replacement]))
    assert updated is not None
    assert [entry.id for entry in updated.work_experience] == ["w2"]


def test_update_and_delete_missing_resume() -> None:
    store = InMemoryResumeStore()
    assert store.update("missing", ResumeUpdate(summary="x")) is None
    assert store.delete("missing") is False


def test_list_filters_by_user() -> None:
    store = InMemoryResumeStore()
    mine = store.create(_create_request())
    store.create(_create_request(userId="user-2"))
    assert len(store.list()) == 2
    assert [resume.id for resume in store.list(user_id="user-1")] == [mine.id]


def test_to_resume_data_drops_record_fields() -> None:
    store = InMemoryResumeStore()
    resume = store.create(_create_request())
    data = resume.to_resume_data()
    wire = data.to_wire()
    assert "id" not in wire
    assert "title" not in wire
    assert wire["personalInfo"]["fullName"] == "Jane Doe"
    assert wire["workExperience"][0]["startDate"] == "2020-01"


def test_job_analysis_store_lists_by_resume_in_creation_order() -> None:
    store = InMemoryJobAnalysisStore()
    first = store.create("r1", "first job", JobAnalysis(original_match_score=40), None)
    second = store.create("r1", "second job", JobAnalysis(original_match_score=60), None)
    store.create("r2", "other", JobAnalysis(), None)

    records = store.list_by_resume("r1")
    assert [record.id for record in records] == [first.id, second.id]
    assert store.get(second.id) == second
    assert store.delete(first.id) is True
    assert [record.id for record in store.list_by_resume("r1")] == [second.id]
