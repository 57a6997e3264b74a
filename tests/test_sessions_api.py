"""
API tests for commute sessions, voice answers and class accuracy.
"""
import asyncio
import pytest
from fastapi.testclient import TestClient

from conftest import SAMPLE_QUESTIONS, run
from app import app
from core.exceptions import ProcessingConflictException
from db_config import AsyncSessionLocal
from models.models import DifficultyEnum, GeneratedQuestion
from schemas.session import SessionResponseCreate
from services.session_service import SessionService, estimate_speech_seconds, recommended_question_count

# Create test client
client = TestClient(app)


async def seed_questions(user_id, class_id):
    """Store the two well-formed rounds questions directly on the class."""
    async with AsyncSessionLocal() as db:
        questions = [
            GeneratedQuestion(
                class_id=class_id,
                user_id=user_id,
                question_text=item["question_text"],
                options=item["options"],
                correct_answer=item["correct_answer"],
                difficulty=DifficultyEnum.medium,
                question_order=order,
            )
            for order, item in enumerate(SAMPLE_QUESTIONS[1::2])
        ]
        db.add_all(questions)
        await db.commit()
        return [q.id for q in questions]


def setup_class(headers, user_id="user-1"):
    response = client.post("/classes", json={"name": "Startup finance"}, headers=headers)
    assert response.status_code == 201, f"Class creation failed: {response.text}"
    class_id = response.json()["id"]
    rounds_id, valuation_id = run(seed_questions(user_id, class_id))
    return class_id, rounds_id, valuation_id


def start_session(class_id, headers, duration=20):
    response = client.post("/sessions", json={"class_id": class_id, "duration_minutes": duration},
                           headers=headers)
    assert response.status_code == 201, f"Session start failed: {response.text}"
    return response.json()


def test_start_session(auth_headers):
    headers = auth_headers()
    class_id, _, _ = setup_class(headers)

    session = start_session(class_id, headers)
    assert session["questions_answered"] == 0
    assert session["questions_correct"] == 0
    assert session["completed"] is False
    assert session["ended_at"] is None
    assert session["recommended_question_count"] == 21

    assert start_session(class_id, headers, duration=1)["recommended_question_count"] == 3

    listed = client.get(f"/classes/{class_id}/sessions", headers=headers).json()
    assert len(listed) == 2


def test_start_session_validation(auth_headers):
    headers = auth_headers()
    class_id, _, _ = setup_class(headers)

    response = client.post("/sessions", json={"class_id": class_id, "duration_minutes": 0}, headers=headers)
    assert response.status_code == 422

    response = client.post("/sessions", json={"class_id": class_id, "duration_minutes": 20},
                           headers=auth_headers("intruder"))
    assert response.status_code == 404


def test_recording_answers(auth_headers):
    headers = auth_headers()
    class_id, rounds_id, _ = setup_class(headers)
    session = start_session(class_id, headers)

    response = client.post(f"/sessions/{session['id']}/responses",
                           json={"question_id": rounds_id, "user_answer": "Series B",
                                 "response_time_seconds": 4.5},
                           headers=headers)
    assert response.status_code == 201, f"Answer failed: {response.text}"
    assert response.json()["is_correct"] is True
    assert response.json()["response_time_seconds"] == 4.5

    response = client.post(f"/sessions/{session['id']}/responses",
                           json={"question_id": rounds_id, "user_answer": "Seed"},
                           headers=headers)
    assert response.status_code == 409, "Answering the same question twice should conflict"

    current = client.get(f"/sessions/{session['id']}", headers=headers).json()
    assert current["questions_answered"] == 1
    assert current["questions_correct"] == 1
    assert current["completed"] is False

    responses = client.get(f"/sessions/{session['id']}/responses", headers=headers).json()
    assert [r["user_answer"] for r in responses] == ["Series B"]


def test_answer_must_belong_to_session_class(auth_headers):
    headers = auth_headers()
    class_id, _, _ = setup_class(headers)
    _, other_question, _ = setup_class(headers)
    session = start_session(class_id, headers)

    response = client.post(f"/sessions/{session['id']}/responses",
                           json={"question_id": other_question, "user_answer": "Series B"},
                           headers=headers)
    assert response.status_code == 404

    response = client.get(f"/sessions/{session['id']}", headers=auth_headers("intruder"))
    assert response.status_code == 404


def test_voice_answers(auth_headers):
    headers = auth_headers()
    class_id, rounds_id, valuation_id = setup_class(headers)
    session = start_session(class_id, headers)
    url = f"/sessions/{session['id']}/voice-answer"

    response = client.post(url, json={"question_id": rounds_id, "transcript": "   "}, headers=headers)
    assert response.json() == {"outcome": "no_speech", "option": None, "score": None,
                               "response": None, "correct_answer": None}

    response = client.post(url, json={"question_id": rounds_id, "transcript": "purple elephant"},
                           headers=headers)
    assert response.json()["outcome"] == "no_match"

    response = client.post(url, json={"question_id": rounds_id, "transcript": "can you explain this"},
                           headers=headers)
    assert response.json()["outcome"] == "help_request"

    current = client.get(f"/sessions/{session['id']}", headers=headers).json()
    assert current["questions_answered"] == 0, "Unmatched transcripts must not be recorded"

    response = client.post(url, json={"question_id": rounds_id, "transcript": "I think it's b"},
                           headers=headers)
    body = response.json()
    assert response.status_code == 200, f"Voice answer failed: {response.text}"
    assert body["outcome"] == "matched"
    assert body["option"] == "Series B"
    assert body["correct_answer"] == "Series B"
    assert body["response"]["is_correct"] is True

    response = client.post(url, json={"question_id": valuation_id, "transcript": "total cash raised"},
                           headers=headers)
    body = response.json()
    assert body["option"] == "Total cash raised"
    assert body["response"]["is_correct"] is False
    assert body["correct_answer"] == "Company value before investment"

    finished = client.get(f"/sessions/{session['id']}", headers=headers).json()
    assert finished["questions_answered"] == 2
    assert finished["questions_correct"] == 1
    assert finished["completed"] is True, "Answering every question should finish the session"
    assert finished["ended_at"] is not None

    response = client.post(url, json={"question_id": valuation_id, "transcript": "a"}, headers=headers)
    assert response.status_code == 409


def test_ending_a_session(auth_headers):
    headers = auth_headers()
    class_id, _, _ = setup_class(headers)
    session = start_session(class_id, headers)

    response = client.post(f"/sessions/{session['id']}/end", headers=headers)
    assert response.status_code == 200
    assert response.json()["completed"] is True
    assert response.json()["ended_at"] is not None

    response = client.post(f"/sessions/{session['id']}/end", headers=headers)
    assert response.status_code == 409


def test_class_accuracy(auth_headers):
    headers = auth_headers()
    class_id, rounds_id, valuation_id = setup_class(headers)

    accuracy = client.get(f"/classes/{class_id}/accuracy", headers=headers).json()
    assert accuracy == {"class_id": class_id, "accuracy": None, "sessions_counted": 0}

    first = start_session(class_id, headers)
    client.post(f"/sessions/{first['id']}/responses",
                json={"question_id": rounds_id, "user_answer": "Series B"}, headers=headers)
    client.post(f"/sessions/{first['id']}/responses",
                json={"question_id": valuation_id, "user_answer": "Founder salary"}, headers=headers)

    second = start_session(class_id, headers)
    client.post(f"/sessions/{second['id']}/end", headers=headers)

    # still open, so not counted
    third = start_session(class_id, headers)
    client.post(f"/sessions/{third['id']}/responses",
                json={"question_id": rounds_id, "user_answer": "Seed"}, headers=headers)

    accuracy = client.get(f"/classes/{class_id}/accuracy", headers=headers).json()
    assert accuracy["accuracy"] == 50
    assert accuracy["sessions_counted"] == 2


def test_question_count_fits_the_drive():
    assert recommended_question_count(20) == 21
    assert recommended_question_count(1) == 3, "Short drives still get a minimum"
    assert recommended_question_count(120) == 50, "Long drives are capped"


def test_speech_estimate():
    assert estimate_speech_seconds("one two three") == pytest.approx(1.2)
    assert estimate_speech_seconds("") == 0


def test_concurrent_answers_are_all_counted(auth_headers):
    headers = auth_headers()
    class_id, rounds_id, valuation_id = setup_class(headers)
    session = start_session(class_id, headers)

    async def answer(question_id, user_answer):
        async with AsyncSessionLocal() as db:
            data = SessionResponseCreate(question_id=question_id, user_answer=user_answer)
            return await SessionService(db).record_answer("user-1", session["id"], data)

    async def answer_both():
        return await asyncio.gather(answer(rounds_id, "Series B"), answer(valuation_id, "Founder salary"))

    responses = run(answer_both())
    assert sorted(r.is_correct for r in responses) == [False, True]

    current = client.get(f"/sessions/{session['id']}", headers=headers).json()
    assert current["questions_answered"] == 2, "Each recorded answer should be counted once"
    assert current["questions_correct"] == 1
    assert current["completed"] is True, "The last of the concurrent answers should finish the session"
    stored = client.get(f"/sessions/{session['id']}/responses", headers=headers).json()
    assert len(stored) == current["questions_answered"]


def test_answering_after_the_session_ended_is_refused(auth_headers):
    headers = auth_headers()
    class_id, rounds_id, _ = setup_class(headers)
    session = start_session(class_id, headers)

    async def end_then_answer():
        async with AsyncSessionLocal() as first, AsyncSessionLocal() as second:
            service = SessionService(second)
            loaded = await service.get_session("user-1", session["id"])
            question = await service._get_session_question(loaded, rounds_id)
            await SessionService(first).end_session("user-1", session["id"])
            # ``loaded`` still reads as open, the database does not
            await service._record(loaded, question, "Series B", None)

    with pytest.raises(ProcessingConflictException):
        run(end_then_answer())

    current = client.get(f"/sessions/{session['id']}", headers=headers).json()
    assert current["questions_answered"] == 0
    assert client.get(f"/sessions/{session['id']}/responses", headers=headers).json() == []
