"""
Shared test setup: a throwaway SQLite database and storage directory,
bearer tokens, and a fake OpenAI client.
"""
import os
import sys
import json
import asyncio
import tempfile
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

# Settings are read at import time, so the environment goes first
_TEST_ROOT = tempfile.mkdtemp(prefix="drivelearn-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_ROOT, 'test.db')}"
os.environ["STORAGE_DIRECTORY"] = os.path.join(_TEST_ROOT, "storage")
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["OPENAI_API_KEY"] = ""
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ["GOOGLE_SEARCH_API_KEY"] = ""
os.environ["GOOGLE_SEARCH_ENGINE_ID"] = ""

# Add the parent directory to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

import models  # noqa: F401
from db_config import Base, async_engine
from core.security import create_access_token


SAMPLE_QUESTIONS = [
    {
        "question_text": "What is a term sheet?",
        "options": ["A loan agreement", "A summary of investment terms", "A tax filing", "A payroll record"],
        "correct_answer": "A summary of investment terms",
        "explanation": "It lists the key terms of an investment.",
        "difficulty": "easy",
    },
    {
        "question_text": "Which round usually follows a Series A?",
        "options": ["Seed", "Series B", "IPO", "Bridge"],
        "correct_answer": "Series B",
        "explanation": "Rounds are lettered in order.",
        "difficulty": "medium",
    },
    {
        "question_text": "Which of these is not listed?",
        "options": ["x", "y", "z", "w"],
        "correct_answer": "not an option",
        "difficulty": "hard",
    },
    {
        "question_text": "What does pre-money valuation mean?",
        "options": [
            "Company value before investment",
            "Company value after investment",
            "Total cash raised",
            "Founder salary",
        ],
        "correct_answer": "Company value before investment",
        "difficulty": "extreme",
    },
]

SAMPLE_REPLY = "Here are your questions:\n```json\n" + json.dumps(SAMPLE_QUESTIONS, indent=2) + "\n```"

SEARCH_REPLY = {
    "items": [
        {"title": "Pre-money valuation", "snippet": "Value before the round.", "link": "https://a.example"},
        {"title": "Post-money valuation", "snippet": "Value after the round.", "link": "https://b.example"},
        {"title": "Dilution", "snippet": "Ownership shrinks.", "link": "https://c.example"},
        {"title": "Cap tables", "snippet": "Who owns what.", "link": "https://d.example"},
    ]
}


def run(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def make_openai_client(content=None, error=None):
    """A stand-in for ``openai.AsyncOpenAI`` whose completions return ``content`` or raise ``error``."""
    client = MagicMock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
    else:
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
        client.chat.completions.create = AsyncMock(return_value=response)
    return client


def tool_call_message(arguments, content=None):
    call = SimpleNamespace(id="call_1", type="function",
                           function=SimpleNamespace(name="search_web", arguments=arguments))
    return SimpleNamespace(content=content, tool_calls=[call])


def make_openai_client_with_replies(*messages):
    """Fake ``AsyncOpenAI`` answering successive calls with the given messages."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=[
        SimpleNamespace(choices=[SimpleNamespace(message=m)]) for m in messages
    ])
    return client


@pytest.fixture(autouse=True)
def reset_database():
    async def _reset():
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

    run(_reset())
    yield


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = "user-1"):
        token = create_access_token({"sub": user_id})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def storage_root():
    return os.environ["STORAGE_DIRECTORY"]
