"""Assessment lifecycle: the state is computed, never stored.

    now < start_time            UPCOMING   editable, not yet open
    start_time <= now <= end    ACTIVE     locked, accepting submissions
    now > end_time              COMPLETED  locked, results viewable

Rules are evaluated in that order, so now == start_time is ACTIVE and
now == end_time is still ACTIVE; the assessment completes on the first
instant after end_time.  Every caller (authoring, submission, insights)
goes through these functions instead of comparing timestamps itself.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from portal.core.clock import ensure_utc
from portal.models.assessment import Assessment


class AssessmentState(StrEnum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


def resolve_state(assessment: Assessment, now: datetime) -> AssessmentState:
    now = ensure_utc(now)
    if now < ensure_utc(assessment.start_time):
        return AssessmentState.UPCOMING
    if now > ensure_utc(assessment.end_time):
        return AssessmentState.COMPLETED
    return AssessmentState.ACTIVE


def is_editable(assessment: Assessment, now: datetime) -> bool:
    """The single mutability gate, for content, window and cohort alike."""
    return resolve_state(assessment, now) is AssessmentState.UPCOMING


def is_accepting_submissions(assessment: Assessment, now: datetime) -> bool:
    return resolve_state(assessment, now) is AssessmentState.ACTIVE


def is_results_viewable(assessment: Assessment, now: datetime) -> bool:
    return resolve_state(assessment, now) is AssessmentState.COMPLETED
