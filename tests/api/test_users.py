from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth

# ---- 401 / 403 ----


def test_search_rejects_missing_token(client: TestClient) -> None:
    resp = client.get("/v1/users/search", params={"q": "a"})
    assert resp.status_code == 401


def test_search_forbidden_for_student(client: TestClient, student_token: str) -> None:
    resp = client.get(
        "/v1/users/search", params={"q": "a"}, headers=auth(student_token)
    )
    assert resp.status_code == 403


# ---- results ----


def test_search_matches_name_email_or_id(
    client: TestClient, professor_token: str
) -> None:
    resp = client.get(
        "/v1/users/search", params={"q": "AS"}, headers=auth(professor_token)
    )
    assert resp.status_code == 200
    # Professors never show up as assignable, even when their name matches.
    assert [u["id"] for u in resp.json()] == ["stu-4", "stu-1"]

    resp = client.get(
        "/v1/users/search", params={"q": "ben@"}, headers=auth(professor_token)
    )
    assert [u["name"] for u in resp.json()] == ["Ben Okafor"]

    resp = client.get(
        "/v1/users/search", params={"q": "stu-3"}, headers=auth(professor_token)
    )
    assert resp.json() == [
        {
            "id": "stu-3",
            "name": "Chen Li",
            "email": "chen@campus.edu",
            "class_name": "CS-B",
            "department": "",
        }
    ]


def test_search_blank_query_returns_empty(
    client: TestClient, management_token: str
) -> None:
    resp = client.get(
        "/v1/users/search", params={"q": "  "}, headers=auth(management_token)
    )
    assert resp.status_code == 200
    assert resp.json() == []


def test_search_respects_limit(client: TestClient, professor_token: str) -> None:
    resp = client.get(
        "/v1/users/search",
        params={"q": "campus", "limit": 2},
        headers=auth(professor_token),
    )
    assert len(resp.json()) == 2
