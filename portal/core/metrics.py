"""Prometheus metric inventory.

Every metric the portal exposes is defined here; modules import the one
they need and record at the point of action.  HTTP metrics are filled in
by MetricsMiddleware, the rest by the assessment service.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Assessment lifecycle
# ---------------------------------------------------------------------------

ASSESSMENTS_CREATED = Counter(
    "assessments_created_total",
    "Assessments accepted by the validator and persisted",
)

ASSESSMENTS_UPDATED = Counter(
    "assessments_updated_total",
    "Assessment edits applied while still upcoming",
)

VALIDATION_FAILURES = Counter(
    "validation_failures_total",
    "Requests rejected by input validation",
    ["operation"],  # create|update|submit
)

STATE_CONFLICTS = Counter(
    "state_conflicts_total",
    "Operations rejected because the assessment was in the wrong state",
    ["operation"],  # update|submit|insights|leaderboard
)

# ---------------------------------------------------------------------------
# Scoring and results
# ---------------------------------------------------------------------------

SUBMISSIONS_SCORED = Counter(
    "submissions_scored_total",
    "Submissions scored and persisted",
)

SUBMISSION_PERCENTAGE = Histogram(
    "submission_score_percentage",
    "Distribution of submission percentages",
    # Upper edges line up with the grade bands: F < 60 <= C < 70 <= B ...
    buckets=[59.999, 69.999, 79.999, 89.999, 100.0],
)

INSIGHTS_CACHE_OPERATIONS = Counter(
    "insights_cache_operations_total",
    "Insights cache lookups and failures",
    ["operation"],  # hit|miss|error
)
