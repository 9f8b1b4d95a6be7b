from __future__ import annotations

import sys
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from portal.api.dependencies import (
    assessment_repo,
    get_clock,
    submission_repo,
    user_repo,
)
from portal.core.clock import FixedClock
from portal.main import app
from portal.models.assessment import AssessmentDraft, Question
from portal.models.user import User
from portal.services import token_service
from portal.services.cache import cache_service

# Ensure repo root is on sys.path so `import portal` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Every test starts at the same instant; move it with clock.advance()/set().
T0 = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)

_INITIAL_USERS = [
    User(id="stu-1", name="Asha Rao", email="asha@campus.edu", class_name="CS-A"),
    User(id="stu-2", name="Ben Okafor", email="ben@campus.edu", class_name="CS-A"),
    User(id="stu-3", name="Chen Li", email="chen@campus.edu", class_name="CS-B"),
    User(id="stu-4", name="Ana Castro", email="ana@campus.edu", class_name="CS-B"),
    User(
        id="prof-1",
        name="Dr. Asher Grant",
        email="grant@campus.edu",
        role="professor",
        department="Computer Science",
    ),
]


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Fresh in-memory repositories for every test."""
    assessment_repo._by_id.clear()
    submission_repo._store.clear()
    user_repo._by_id.clear()
    user_repo._by_id.update({u.id: u for u in _INITIAL_USERS})


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def clock() -> Iterator[FixedClock]:
    fixed = FixedClock(T0)
    app.dependency_overrides[get_clock] = lambda: fixed
    yield fixed
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture
def client(clock: FixedClock) -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "stu-1",
    roles: list[str] | None = None,
    name: str = "",
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles, name=name)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_token() -> str:
    return mint_token(username="stu-1", roles=["student"], name="Asha Rao")


@pytest.fixture
def professor_token() -> str:
    return mint_token(username="prof-1", roles=["professor"], name="Dr. Asher Grant")


@pytest.fixture
def management_token() -> str:
    return mint_token(username="mgmt-1", roles=["management"], name="Dean Moss")


# ---------------------------------------------------------------------------
# Assessment builders
# ---------------------------------------------------------------------------


def make_question(n: int = 1, correct: int = 0) -> Question:
    return Question(
        text=f"Question {n}?",
        options=("alpha", "beta", "gamma", "delta"),
        correct_option_index=correct,
        explanation=f"Because of reason {n}.",
    )


def make_draft(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    questions: int | tuple[Question, ...] = 4,
    assigned_to: tuple[str, ...] = ("stu-1", "stu-2", "stu-3", "stu-4"),
    **overrides,
) -> AssessmentDraft:
    """A valid draft opening one hour after T0 and closing two hours later.

    questions is either a count (question i has correct option i % 4) or
    the questions themselves.
    """
    start = start or T0 + timedelta(hours=1)
    if isinstance(questions, int):
        questions = tuple(make_question(i + 1, i % 4) for i in range(questions))
    values = dict(
        title="Data Structures Quiz",
        description="Trees and heaps",
        start_time=start,
        end_time=end or start + timedelta(hours=2),
        duration_minutes=30,
        questions=questions,
        assigned_to=assigned_to,
    )
    values.update(overrides)
    return AssessmentDraft(**values)


def question_json(n: int = 1, correct: int = 0) -> dict:
    return {
        "text": f"Question {n}?",
        "options": ["alpha", "beta", "gamma", "delta"],
        "correct_option_index": correct,
        "explanation": f"Because of reason {n}.",
    }


def draft_json(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    questions: int = 4,
    assigned_to: list[str] | None = None,
    **overrides,
) -> dict:
    """JSON twin of make_draft()."""
    start = start or T0 + timedelta(hours=1)
    body = {
        "title": "Data Structures Quiz",
        "description": "Trees and heaps",
        "start_time": start.isoformat(),
        "end_time": (end or start + timedelta(hours=2)).isoformat(),
        "duration_minutes": 30,
        "questions": [question_json(i + 1, i % 4) for i in range(questions)],
        "assigned_to": (
            assigned_to
            if assigned_to is not None
            else ["stu-1", "stu-2", "stu-3", "stu-4"]
        ),
    }
    body.update(overrides)
    return body
