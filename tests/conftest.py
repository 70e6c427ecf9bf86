"""
School portal - test configuration and fixtures
"""
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

# Set testing environment before the app modules read it
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-jwt-secret-for-testing-only"
os.environ["JWT_EXPIRES_IN"] = "1h"

import mongomock
import pytest
from httpx import ASGITransport, AsyncClient

from auth import create_access_token
from database import close_db, connect_db
from main import app
from models import Announcement, Author, Question, Quiz, User, utcnow
from rate_limiter import limiter

TEST_DATABASE_URL = "mongodb://localhost:27017/portal_test"


@pytest.fixture(autouse=True)
def db():
    """Fresh in-memory store for each test"""
    connect_db(host=TEST_DATABASE_URL, mongo_client_class=mongomock.MongoClient)
    limiter.reset()
    yield
    close_db()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def test_user() -> User:
    user = User(name="Test User", email="test@example.com", role="student")
    user.save()
    return user


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    token = create_access_token(str(test_user.id))
    return {"Authorization": f"Bearer {token}"}


def future_iso(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.fixture
def quiz_payload() -> dict:
    return {
        "title": "New Quiz",
        "description": "Covers chapters one and two",
        "course": "Mathematics",
        "subject": "Algebra",
        "topic": "Linear equations",
        "type": "quiz",
        "dueDate": future_iso(),
        "duration": 45,
        "totalPoints": 100,
        "questions": [
            {"question": "2 + 2 = ?", "options": ["3", "4", "5"], "correctAnswer": 1},
            {"question": "Solve x + 1 = 3", "options": ["1", "2"], "correctAnswer": 1},
        ],
    }


@pytest.fixture
def announcement_payload() -> dict:
    return {
        "title": "Exam schedule",
        "content": "The midterm exam has been moved to next Monday.",
        "course": "Mathematics",
        "type": "academic",
        "priority": "high",
        "author": {"name": "Dr. Smith", "role": "teacher"},
    }


def make_announcement(test_user: User, **overrides) -> Announcement:
    fields = {
        "title": "Welcome to Math Class",
        "content": "Welcome to the new semester of Mathematics.",
        "author": Author(name="Dr. Smith", role="teacher"),
        "course": "Mathematics",
        "type": "general",
        "created_by": str(test_user.id),
    }
    fields.update(overrides)
    announcement = Announcement(**fields)
    announcement.save()
    return announcement


def make_quiz(**overrides) -> Quiz:
    fields = {
        "title": "Stored Quiz",
        "description": "A quiz created directly in the store",
        "course": "Mathematics",
        "subject": "Algebra",
        "topic": "Fractions",
        "type": "quiz",
        "due_date": utcnow() + timedelta(days=3),
        "total_points": 50,
        "questions": [Question(question="1/2 + 1/2 = ?", options=["1", "2"], correct_answer=0)],
    }
    fields.update(overrides)
    quiz = Quiz(**fields)
    quiz.save()
    return quiz
