"""Tests for Prometheus metrics.

The default registry is process-global and counters only go up, so every
assertion compares a sample before and after the action.
"""

from __future__ import annotations

from datetime import timedelta

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from portal.core.clock import FixedClock
from tests.conftest import T0, auth, draft_json


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    assert _get_sample("http_requests_total", labels) - before >= 1


def test_endpoint_label_uses_route_template(
    client: TestClient, professor_token: str
) -> None:
    labels = {
        "method": "GET",
        "endpoint": "/v1/assessments/{assessment_id}",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.get(
        "/v1/assessments/00000000-0000-0000-0000-000000000000",
        headers=auth(professor_token),
    )
    assert _get_sample("http_requests_total", labels) - before == 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    assert _get_sample("http_request_duration_seconds_count", labels) - before >= 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "submissions_scored_total" in resp.text


def test_domain_counters_follow_operations(
    client: TestClient, clock: FixedClock, professor_token: str, student_token: str
) -> None:
    created = _get_sample("assessments_created_total")
    scored = _get_sample("submissions_scored_total")
    rejected = _get_sample("validation_failures_total", {"operation": "create"})
    conflicts = _get_sample("state_conflicts_total", {"operation": "submit"})

    headers = auth(professor_token)
    client.post("/v1/assessments", json=draft_json(title=""), headers=headers)
    resp = client.post("/v1/assessments", json=draft_json(), headers=headers)
    url = f"/v1/assessments/{resp.json()['id']}/submissions"
    client.post(url, json={"answers": {}}, headers=auth(student_token))
    clock.set(T0 + timedelta(hours=1))
    client.post(url, json={"answers": {"0": 0}}, headers=auth(student_token))

    assert _get_sample("assessments_created_total") - created == 1
    assert (
        _get_sample("validation_failures_total", {"operation": "create"}) - rejected
        == 1
    )
    submit_conflicts = _get_sample("state_conflicts_total", {"operation": "submit"})
    assert submit_conflicts - conflicts == 1
    assert _get_sample("submissions_scored_total") - scored == 1
