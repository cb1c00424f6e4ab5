from __future__ import annotations

import io
import json
import sys
from pathlib import Path

import pytest
from docx import Document
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[3]
TAILOR_SERVICE_ROOT = ROOT / "services" / "tailor"
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(TAILOR_SERVICE_ROOT))

from libs.tools import resume_text_extract  # noqa: E402
from services.tailor.app import main  # noqa: E402

client = TestClient(main.app)

JOB_DESCRIPTION = (
    "Hiring a senior backend engineer with Python, FastAPI and PostgreSQL "
    "experience to design and operate resilient APIs."
)


class _FakeLLMResponse:
    def __init__(self, content: str) -> None:
        self.content = content


class _FakeProvider:
    def __init__(self, outputs: list[object]) -> None:
        self._outputs = list(outputs)
        self.prompts: list[str] = []

    def generate(self, prompt: str, max_tokens: int | None = None) -> _FakeLLMResponse:
        self.prompts.append(prompt)
        if not self._outputs:
            raise RuntimeError("no_more_outputs")
        next_item = self._outputs.pop(0)
        if isinstance(next_item, Exception):
            raise next_item
        return _FakeLLMResponse(json.dumps(next_item))


@pytest.fixture
def use_provider(monkeypatch):
    def _install(outputs: list[object]) -> _FakeProvider:
        provider = _FakeProvider(outputs)
        monkeypatch.setattr(main.app.state, "tailor_provider", provider)
        return provider

    return _install


def _resume_body(**overrides) -> dict:
    body = {
        "title": "Backend resume",
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
                "endDate": "2023-05",
                "description": ["Built APIs", "Ran on-call", "Mentored juniors"],
            }
        ],
        "skills": ["Python"],
    }
    body.update(overrides)
    return body


def _create_resume(**overrides) -> dict:
    response = client.post("/api/resumes", json=_resume_body(**overrides))
    assert response.status_code == 201
    return response.json()


def test_health() -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_resume_crud_round_trip() -> None:
    created = _create_resume()
    resume_id = created["id"]
    assert created["workExperience"][0]["startDate"] == "2020-01"

    fetched = client.get(f"/api/resumes/{resume_id}")
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Backend resume"

    updated = client.put(f"/api/resumes/{resume_id}", json={"summary": "Platform engineer."})
    assert updated.status_code == 200
    assert updated.json()["summary"] == "Platform engineer."
    assert updated.json()["createdAt"] == created["createdAt"]

    listed = client.get("/api/resumes")
    assert resume_id in [item["id"] for item in listed.json()]

    assert client.delete(f"/api/resumes/{resume_id}").status_code == 204
    missing = client.get(f"/api/resumes/{resume_id}")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Resume not found"}


def test_create_resume_validation_error_shape() -> None:
    response = client.post("/api/resumes", json=_resume_body(title=""))
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation error"
    assert body["details"]


def test_analyze_job_returns_tailored_resume(use_provider) -> None:
    resume_id = _create_resume()["id"]
    use_provider(
        [
            {
                "matchedSkills": ["Python"],
                "missingSkills": ["FastAPI"],
                "keyRequirements": ["APIs"],
                "originalMatchScore": 50,
                "optimizedMatchScore": 140,
                "suggestions": [],
                "enhancedSummary": "Backend engineer building FastAPI services.",
                "optimizedBullets": ["Built FastAPI APIs", "Led on-call", "Mentored 3 engineers"],
                "improvementAreas": [],
            }
        ]
    )

    response = client.post(
        "/api/analyze-job", json={"jobDescription": JOB_DESCRIPTION, "resumeId": resume_id}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["analysis"]["optimizedMatchScore"] == 100
    assert body["tailoredResume"]["summary"] == "Backend engineer building FastAPI services."
    assert body["tailoredResume"]["workExperience"][0]["description"][0] == "Built FastAPI APIs"
    assert body["tailoredResume"]["workExperience"][0]["company"] == "Acme"

    history = client.get(f"/api/resumes/{resume_id}/analyses").json()
    assert [record["id"] for record in history] == [body["analysisId"]]
    assert history[0]["jobDescription"] == JOB_DESCRIPTION


def test_analyze_job_rejects_short_description(use_provider) -> None:
    provider = use_provider([])
    response = client.post(
        "/api/analyze-job", json={"jobDescription": "too short", "resumeId": "anything"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"
    assert provider.prompts == []


def test_analyze_job_unknown_resume(use_provider) -> None:
    use_provider([])
    response = client.post(
        "/api/analyze-job", json={"jobDescription": JOB_DESCRIPTION, "resumeId": "missing"}
    )
    assert response.status_code == 404


def test_analyze_job_oracle_failure_is_500(use_provider) -> None:
    resume_id = _create_resume()["id"]
    use_provider([TimeoutError("read timed out")])
    response = client.post(
        "/api/analyze-job", json={"jobDescription": JOB_DESCRIPTION, "resumeId": resume_id}
    )
    assert response.status_code == 500
    assert response.json()["error"].startswith("oracle_unavailable")
    assert client.get(f"/api/resumes/{resume_id}/analyses").json() == []


def test_ats_scan_and_enhance(use_provider) -> None:
    resume_id = _create_resume()["id"]
    use_provider(
        [
            {"overallScore": 62, "issues": ["No keywords"], "keywordDensity": 30},
            {"summary": "Python backend engineer.", "skills": ["Python", "FastAPI"]},
        ]
    )

    scan = client.post("/api/ats-scan", json={"resumeId": resume_id})
    assert scan.status_code == 200
    assert scan.json()["overallScore"] == 62

    enhanced = client.post(
        "/api/enhance-ats", json={"resumeId": resume_id, "atsAnalysis": scan.json()}
    )
    assert enhanced.status_code == 200
    body = enhanced.json()
    assert body["summary"] == "Python backend engineer."
    assert body["skills"] == ["Python", "FastAPI"]
    assert body["workExperience"][0]["description"] == [
        "Built APIs",
        "Ran on-call",
        "Mentored juniors",
    ]


def test_export_word_returns_attachment() -> None:
    response = client.post("/api/export-word", json=_resume_body(template="executive"))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )
    assert 'filename="Jane_Doe_Resume.docx"' in response.headers["content-disposition"]
    document = Document(io.BytesIO(response.content))
    assert "Jane Doe" in document.paragraphs[0].text


def test_export_pdf_tolerates_partial_payload() -> None:
    response = client.post("/api/export-pdf", json={"summary": "Just a summary."})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="Resume_Resume.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_upload_resume_parses_docx(use_provider) -> None:
    document = Document()
    document.add_paragraph("Jane Doe - jane@example.com")
    document.add_paragraph("Senior Engineer at Acme, built resilient payment APIs in Python.")
    buffer = io.BytesIO()
    document.save(buffer)
    use_provider(
        [
            {
                "personalInfo": {"fullName": "Jane Doe", "email": "jane@example.com"},
                "workExperience": [{"company": "Acme", "position": "Senior Engineer"}],
            }
        ]
    )

    response = client.post(
        "/api/upload-resume",
        files={
            "file": (
                "resume.docx",
                buffer.getvalue(),
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            )
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["fileInfo"]["name"] == "resume.docx"
    assert body["parsedData"]["workExperience"][0]["id"] == "exp_0"


def test_upload_resume_rejects_text_files(use_provider) -> None:
    use_provider([])
    response = client.post(
        "/api/upload-resume", files={"file": ("resume.txt", b"plain text", "text/plain")}
    )
    assert response.status_code == 400
    assert "Only PDF and DOCX" in response.json()["error"]


def test_metrics_endpoint() -> None:
    response = client.get("/metrics/")
    assert response.status_code == 200
    assert "tailor_requests_total" in response.text


def test_upload_resume_rejects_oversized_files(use_provider, monkeypatch) -> None:
    provider = use_provider([])
    monkeypatch.setattr(main, "MAX_UPLOAD_BYTES", 64)
    monkeypatch.setattr(resume_text_extract, "MAX_UPLOAD_BYTES", 64)

    response = client.post(
        "/api/upload-resume",
        files={"file": ("resume.pdf", b"%PDF" + b"0" * 4096, "application/pdf")},
    )

    assert response.status_code == 400
    assert "10MB" in response.json()["error"]
    assert provider.prompts == []
