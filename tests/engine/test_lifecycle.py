from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from portal.engine import lifecycle
from portal.engine.lifecycle import AssessmentState
from portal.models.assessment import Assessment
from tests.conftest import T0, make_draft

START = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)
END = datetime(2024, 1, 2, 0, 0, tzinfo=UTC)


def _assessment(start: datetime = START, end: datetime = END) -> Assessment:
    return Assessment.new(
        draft=make_draft(start=start, end=end), created_by="prof-1", created_at=T0
    )


# ---- state resolution across the window ----


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (datetime(2023, 12, 31, 23, 0, tzinfo=UTC), AssessmentState.UPCOMING),
        (datetime(2024, 1, 1, 12, 0, tzinfo=UTC), AssessmentState.ACTIVE),
        (datetime(2024, 1, 3, 0, 0, tzinfo=UTC), AssessmentState.COMPLETED),
    ],
)
def test_resolve_state_over_window(now: datetime, expected: AssessmentState) -> None:
    assert lifecycle.resolve_state(_assessment(), now) is expected


def test_start_instant_is_active() -> None:
    assert lifecycle.resolve_state(_assessment(), START) is AssessmentState.ACTIVE


def test_end_instant_is_still_active() -> None:
    assert lifecycle.resolve_state(_assessment(), END) is AssessmentState.ACTIVE


def test_first_instant_after_end_is_completed() -> None:
    now = END + timedelta(microseconds=1)
    assert lifecycle.resolve_state(_assessment(), now) is AssessmentState.COMPLETED


def test_one_instant_before_start_is_upcoming() -> None:
    now = START - timedelta(microseconds=1)
    assert lifecycle.resolve_state(_assessment(), now) is AssessmentState.UPCOMING


def test_naive_now_is_read_as_utc() -> None:
    assert (
        lifecycle.resolve_state(_assessment(), datetime(2024, 1, 1, 12, 0))
        is AssessmentState.ACTIVE
    )


def test_other_timezones_compare_by_instant() -> None:
    # 2024-01-01T01:00+02:00 is 2023-12-31T23:00Z
    plus_two = timezone(timedelta(hours=2))
    now = datetime(2024, 1, 1, 1, 0, tzinfo=plus_two)
    assert lifecycle.resolve_state(_assessment(), now) is AssessmentState.UPCOMING


# ---- predicates ----


def test_predicates_are_mutually_exclusive() -> None:
    a = _assessment()
    for now in (START - timedelta(hours=1), START, END, END + timedelta(seconds=1)):
        flags = (
            lifecycle.is_editable(a, now),
            lifecycle.is_accepting_submissions(a, now),
            lifecycle.is_results_viewable(a, now),
        )
        assert sum(flags) == 1


def test_editable_only_while_upcoming() -> None:
    a = _assessment()
    assert lifecycle.is_editable(a, START - timedelta(seconds=1))
    assert not lifecycle.is_editable(a, START)
    assert not lifecycle.is_editable(a, END + timedelta(days=1))


def test_state_value_is_lowercase_label() -> None:
    assert AssessmentState.ACTIVE == "active"
    assert str(AssessmentState.COMPLETED) == "completed"
