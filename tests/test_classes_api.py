"""
API tests for classes, material upload and processing, and questions.
"""
import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select, func

from conftest import SAMPLE_REPLY, make_openai_client, run
from app import app
from core.config import LLMConfig
from core.file_utils import LocalObjectStorage
from db_config import AsyncSessionLocal
from models.models import CommuteSession, GeneratedQuestion, SessionResponse, StudyMaterial
from services.llm_client import LLMClient
from services.material_pipeline import MaterialPipeline, get_material_pipeline
from services.question_generator import QuestionGeneratorService

# Create test client
client = TestClient(app)

NOTES = b"Seed, Series A and Series B rounds. Pre-money valuation is the value before investment."


@pytest.fixture
def llm_reply():
    """Route background processing through a fake model; tests may change the reply."""
    state = {"reply": SAMPLE_REPLY}

    def _pipeline():
        llm = LLMClient(LLMConfig(api_key="sk-test"), client=make_openai_client(state["reply"]))
        return MaterialPipeline(QuestionGeneratorService(llm), LocalObjectStorage())

    app.dependency_overrides[get_material_pipeline] = _pipeline
    yield state
    app.dependency_overrides.pop(get_material_pipeline, None)


def create_class(headers, name="Startup finance", **fields):
    response = client.post("/classes", json={"name": name, **fields}, headers=headers)
    assert response.status_code == 201, f"Class creation failed: {response.text}"
    return response.json()


def upload(class_id, headers, content=NOTES, filename="notes.txt", mime="text/plain"):
    return client.post(
        f"/classes/{class_id}/materials",
        files={"file": (filename, content, mime)},
        data={"title": "Lecture notes"},
        headers=headers,
    )


async def count_rows(model, **filters):
    async with AsyncSessionLocal() as db:
        stmt = select(func.count()).select_from(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        return (await db.execute(stmt)).scalar_one()


def test_requests_without_valid_token_are_rejected():
    response = client.get("/classes")
    assert response.status_code == 401
    assert response.json()["error"]["type"] == "AuthenticationException"

    response = client.get("/classes", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_class_crud(auth_headers):
    headers = auth_headers()
    created = create_class(headers, description="Term sheets and rounds")
    assert created["color"] == "#DA70D6"
    assert created["user_id"] == "user-1"

    second = create_class(headers, name="Statistics", color="#112233")
    listed = client.get("/classes", headers=headers).json()
    assert [c["id"] for c in listed] == [second["id"], created["id"]]

    response = client.put(f"/classes/{created['id']}", json={"name": "Venture finance"}, headers=headers)
    assert response.status_code == 200, f"Class update failed: {response.text}"
    assert response.json()["name"] == "Venture finance"
    assert response.json()["description"] == "Term sheets and rounds"

    assert client.get(f"/classes/{created['id']}", headers=headers).json()["name"] == "Venture finance"

    response = client.delete(f"/classes/{second['id']}", headers=headers)
    assert response.status_code == 204
    assert client.get(f"/classes/{second['id']}", headers=headers).status_code == 404


def test_classes_of_other_users_are_invisible(auth_headers):
    owned = create_class(auth_headers("owner"))
    other = auth_headers("someone-else")

    assert client.get("/classes", headers=other).json() == []
    assert client.get(f"/classes/{owned['id']}", headers=other).status_code == 404
    assert client.delete(f"/classes/{owned['id']}", headers=other).status_code == 404
    assert upload(owned["id"], other).status_code == 404


def test_upload_generates_questions_in_background(auth_headers, llm_reply, storage_root):
    headers = auth_headers()
    study_class = create_class(headers)

    response = upload(study_class["id"], headers)
    assert response.status_code == 201, f"Upload failed: {response.text}"
    material = response.json()
    assert material["processing_status"] == "pending"
    assert material["file_type"] == "text/plain"
    assert material["file_size"] == len(NOTES)
    assert material["title"] == "Lecture notes"

    parts = material["file_path"].split("/")
    assert parts[:2] == ["user-1", str(study_class["id"])]
    assert parts[2].endswith(".txt")
    assert os.path.exists(os.path.join(storage_root, material["file_path"]))

    material = client.get(f"/materials/{material['id']}", headers=headers).json()
    assert material["processing_status"] == "completed"
    assert material["processing_error"] is None

    questions = client.get(f"/classes/{study_class['id']}/questions", headers=headers).json()
    assert [q["question_order"] for q in questions] == [0, 1, 3]
    assert [q["difficulty"] for q in questions] == ["easy", "medium", "medium"]
    for question in questions:
        assert question["correct_answer"] in question["options"]

    one = client.get(f"/questions/{questions[1]['id']}", headers=headers).json()
    assert one["correct_answer"] == "Series B"
    assert client.get(f"/questions/{questions[1]['id']}", headers=auth_headers("other")).status_code == 404

    listed = client.get(f"/classes/{study_class['id']}/materials", headers=headers).json()
    assert [m["id"] for m in listed] == [material["id"]]


def test_upload_rejects_bad_files(auth_headers, llm_reply):
    headers = auth_headers()
    study_class = create_class(headers)

    response = upload(study_class["id"], headers, filename="archive.zip", mime="application/zip")
    assert response.status_code == 422
    assert "Unsupported file type" in response.json()["error"]["message"]

    response = upload(study_class["id"], headers, content=b"")
    assert response.status_code == 422


def test_failed_processing_can_be_retried(auth_headers, llm_reply):
    headers = auth_headers()
    study_class = create_class(headers)

    llm_reply["reply"] = "Sorry, no questions."
    material = upload(study_class["id"], headers).json()
    material = client.get(f"/materials/{material['id']}", headers=headers).json()
    assert material["processing_status"] == "failed"
    assert material["processing_error"] == "Failed to parse questions: No JSON array found in response"

    llm_reply["reply"] = SAMPLE_REPLY
    response = client.post(f"/materials/{material['id']}/process", headers=headers)
    assert response.status_code == 202, f"Reprocess failed: {response.text}"

    material = client.get(f"/materials/{material['id']}", headers=headers).json()
    assert material["processing_status"] == "completed"
    assert material["processing_error"] is None

    response = client.post(f"/materials/{material['id']}/process", headers=headers)
    assert response.status_code == 409


def test_deleting_material_removes_questions_and_file(auth_headers, llm_reply, storage_root):
    headers = auth_headers()
    study_class = create_class(headers)
    material = upload(study_class["id"], headers).json()
    assert run(count_rows(GeneratedQuestion, study_material_id=material["id"])) == 3

    response = client.delete(f"/materials/{material['id']}", headers=headers)
    assert response.status_code == 204

    assert client.get(f"/materials/{material['id']}", headers=headers).status_code == 404
    assert run(count_rows(GeneratedQuestion, class_id=study_class["id"])) == 0
    assert not os.path.exists(os.path.join(storage_root, material["file_path"]))


def test_deleting_class_cascades(auth_headers, llm_reply, storage_root):
    headers = auth_headers()
    study_class = create_class(headers)
    material = upload(study_class["id"], headers).json()
    questions = client.get(f"/classes/{study_class['id']}/questions", headers=headers).json()

    session = client.post("/sessions", json={"class_id": study_class["id"], "duration_minutes": 15},
                          headers=headers).json()
    response = client.post(f"/sessions/{session['id']}/responses",
                           json={"question_id": questions[0]["id"], "user_answer": "A tax filing"},
                           headers=headers)
    assert response.status_code == 201, f"Answer failed: {response.text}"

    response = client.delete(f"/classes/{study_class['id']}", headers=headers)
    assert response.status_code == 204

    assert run(count_rows(StudyMaterial, class_id=study_class["id"])) == 0
    assert run(count_rows(GeneratedQuestion, class_id=study_class["id"])) == 0
    assert run(count_rows(CommuteSession, class_id=study_class["id"])) == 0
    assert run(count_rows(SessionResponse, session_id=session["id"])) == 0
    assert not os.path.exists(os.path.join(storage_root, material["file_path"]))


def test_health_and_root():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Request-ID" in response.headers

    assert client.get("/").json()["health"] == "/health"
