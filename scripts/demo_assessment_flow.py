"""Demo: walk one assessment through its lifecycle using FastAPI TestClient.

Time is pinned with a FixedClock and moved between steps, so the whole
upcoming -> active -> completed cycle runs in under a second.

Run with:
    python scripts/demo_assessment_flow.py
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient

from portal.api.dependencies import get_clock, user_repo
from portal.core.clock import FixedClock
from portal.main import app
from portal.models.user import User
from portal.services.token_service import create_access_token

NOW = datetime(2025, 9, 1, 8, 0, tzinfo=UTC)
STUDENTS = [("s-101", "Maya Chen"), ("s-102", "Omar Haddad"), ("s-103", "Lena Vogel")]


def _auth(sub: str, role: str, name: str = "") -> dict[str, str]:
    token = create_access_token(sub=sub, roles=[role], name=name)
    return {"Authorization": f"Bearer {token}"}


def _question(text: str, options: list[str], correct: int) -> dict:
    return {
        "text": text,
        "options": options,
        "correct_option_index": correct,
        "explanation": f"The answer is {options[correct]}.",
    }


def main() -> None:
    clock = FixedClock(NOW)
    app.dependency_overrides[get_clock] = lambda: clock
    client = TestClient(app)
    prof = _auth("p-1", "professor", "Prof. Ines Duarte")

    # ── Seed the directory ─────────────────────────────────────────
    for user_id, name in STUDENTS:
        if user_id not in user_repo._by_id:
            user_repo._by_id[user_id] = User(
                id=user_id, name=name, email=f"{user_id}@campus.edu"
            )

    r = client.get("/v1/users/search", params={"q": "campus"}, headers=prof)
    cohort = [u["id"] for u in r.json()]
    print(f"1. GET   /v1/users/search       -> {r.status_code}  cohort={cohort}")

    # ── Author ─────────────────────────────────────────────────────
    body = {
        "title": "Networks Quiz 1",
        "description": "Layers and addressing",
        "start_time": (NOW + timedelta(hours=1)).isoformat(),
        "end_time": (NOW + timedelta(hours=2)).isoformat(),
        "duration_minutes": 20,
        "questions": [
            _question("Layer of IP?", ["1", "2", "3", "4"], 2),
            _question("Port of HTTPS?", ["80", "443", "22", "25"], 1),
            _question("Bits in IPv4?", ["32", "64", "128", "16"], 0),
        ],
        "assigned_to": cohort,
    }
    r = client.post("/v1/assessments", json={**body, "questions": []}, headers=prof)
    print(f"2. POST  /v1/assessments (bad)  -> {r.status_code}  (no questions)")

    r = client.post("/v1/assessments", json=body, headers=prof)
    assessment = r.json()
    aid = assessment["id"]
    state = assessment["state"]
    print(f"3. POST  /v1/assessments        -> {r.status_code}  state={state}")

    r = client.patch(
        f"/v1/assessments/{aid}", json={"duration_minutes": 25}, headers=prof
    )
    print(f"4. PATCH /v1/assessments/{{id}}   -> {r.status_code}  (still upcoming)")

    # ── Window opens ───────────────────────────────────────────────
    clock.advance(hours=1, minutes=10)
    r = client.patch(f"/v1/assessments/{aid}", json={"title": "late"}, headers=prof)
    print(f"5. PATCH after start            -> {r.status_code}  {r.json()['detail']}")

    answers = [{"0": 2, "1": 1, "2": 0}, {"0": 2, "1": 0}, {"0": 1}]
    for (user_id, name), picked in zip(STUDENTS, answers):
        r = client.post(
            f"/v1/assessments/{aid}/submissions",
            json={"answers": picked},
            headers=_auth(user_id, "student", name),
        )
        result = r.json()
        print(
            f"6. POST  submissions ({user_id})   -> {r.status_code}  "
            f"{result['score']}/{result['total_marks']} {result['grade']}"
        )
        clock.advance(minutes=3)

    r = client.get(f"/v1/assessments/{aid}/insights", headers=prof)
    print(f"7. GET   insights (active)      -> {r.status_code}  {r.json()['detail']}")

    # ── Window closes ──────────────────────────────────────────────
    clock.advance(hours=1)
    r = client.get(f"/v1/assessments/{aid}/insights", headers=prof)
    stats = r.json()
    print(
        f"8. GET   insights               -> {r.status_code}  "
        f"completion={stats['completion_rate']}% avg={stats['average_percentage']}%"
    )
    for band in stats["distribution"]:
        print(f"       {band['range']:>10}  {'#' * band['count']}")

    r = client.get(f"/v1/assessments/{aid}/leaderboard", headers=prof)
    print(f"9. GET   leaderboard            -> {r.status_code}")
    for row in r.json():
        podium = row["podium"] or ""
        print(
            f"       {row['rank']}. {row['student_name']:<12} "
            f"{row['percentage']}%  {podium}"
        )

    app.dependency_overrides.pop(get_clock, None)


if __name__ == "__main__":
    main()
