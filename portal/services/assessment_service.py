"""Assessment operations at the repository boundary.

Each function takes its repositories and a Clock explicitly, runs the
pure engine (validator, lifecycle, scoring, aggregator) and only then
touches the repository.  A rejected operation never reaches a write.

Repository exceptions are not caught here; retry policy belongs to
whoever owns the repository connection.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from redis.exceptions import RedisError

from portal.core.clock import Clock, ensure_utc
from portal.core.errors import (
    AssessmentNotFoundError,
    AssessmentValidationError,
    FieldError,
    NotAssignedError,
    StateConflictError,
)
from portal.core.metrics import (
    ASSESSMENTS_CREATED,
    ASSESSMENTS_UPDATED,
    INSIGHTS_CACHE_OPERATIONS,
    STATE_CONFLICTS,
    SUBMISSION_PERCENTAGE,
    SUBMISSIONS_SCORED,
    VALIDATION_FAILURES,
)
from portal.engine import aggregator, lifecycle, scoring, validator
from portal.engine.aggregator import LeaderboardEntry, Stats
from portal.engine.lifecycle import AssessmentState
from portal.models.assessment import Assessment, AssessmentDraft, AssessmentPatch
from portal.models.submission import Submission
from portal.models.user import User
from portal.repos.assessment_repo import AssessmentRepo
from portal.repos.submission_repo import SubmissionRepo
from portal.repos.user_repo import UserRepo
from portal.services.cache import CacheService, insights_key

logger = logging.getLogger(__name__)

ALREADY_STARTED = "assessment has already started"
NOT_ACTIVE = "assessment not active"
ALREADY_SUBMITTED = "assessment already submitted"
RESULTS_NOT_AVAILABLE = "results are not available until the assessment has completed"


@dataclass(frozen=True, slots=True)
class AssessmentView:
    """An assessment labelled with its state as of one read."""

    assessment: Assessment
    state: AssessmentState

    @property
    def editable(self) -> bool:
        return self.state is AssessmentState.UPCOMING


@dataclass(frozen=True, slots=True)
class Insights:
    assessment_id: UUID
    state: AssessmentState
    stats: Stats
    live: bool


def _ctx(assessment_id: UUID) -> dict[str, str]:
    return {"assessment_id": str(assessment_id)}


async def _require(repo: AssessmentRepo, assessment_id: UUID) -> Assessment:
    assessment = await repo.get(assessment_id)
    if assessment is None:
        raise AssessmentNotFoundError(f"assessment {assessment_id} not found")
    return assessment


def _label(assessments: list[Assessment], clock: Clock) -> list[AssessmentView]:
    now = clock.now()
    return [AssessmentView(a, lifecycle.resolve_state(a, now)) for a in assessments]


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------


async def create_assessment(
    repo: AssessmentRepo,
    draft: AssessmentDraft,
    *,
    created_by: str,
    clock: Clock,
) -> Assessment:
    now = clock.now()
    errors = validator.validate(draft, now)
    if errors:
        VALIDATION_FAILURES.labels(operation="create").inc()
        logger.warning(
            "Rejected assessment draft by user=%s: %d problem(s)",
            created_by,
            len(errors),
        )
        raise AssessmentValidationError(errors)

    assessment = Assessment.new(draft=draft, created_by=created_by, created_at=now)
    await repo.add(assessment)

    ASSESSMENTS_CREATED.inc()
    logger.info(
        "Created assessment id=%s questions=%d assigned=%d by user=%s",
        assessment.id,
        assessment.total_marks,
        len(assessment.assigned_to),
        created_by,
        extra=_ctx(assessment.id),
    )
    return assessment


async def update_assessment(
    repo: AssessmentRepo,
    assessment_id: UUID,
    patch: AssessmentPatch,
    *,
    clock: Clock,
) -> Assessment:
    current = await _require(repo, assessment_id)
    now = clock.now()

    if not lifecycle.is_editable(current, now):
        STATE_CONFLICTS.labels(operation="update").inc()
        logger.warning(
            "Rejected edit of assessment id=%s in state=%s",
            assessment_id,
            lifecycle.resolve_state(current, now),
            extra=_ctx(assessment_id),
        )
        raise StateConflictError(ALREADY_STARTED)

    if patch.is_empty():
        return current

    draft = patch.apply(current.to_draft())
    errors = validator.validate(draft, now)
    if errors:
        VALIDATION_FAILURES.labels(operation="update").inc()
        logger.warning(
            "Rejected edit of assessment id=%s: %d problem(s)",
            assessment_id,
            len(errors),
            extra=_ctx(assessment_id),
        )
        raise AssessmentValidationError(errors)

    updated = await repo.update(current.with_draft(draft))
    if updated is None:
        raise AssessmentNotFoundError(f"assessment {assessment_id} not found")

    ASSESSMENTS_UPDATED.inc()
    logger.info("Updated assessment id=%s", assessment_id, extra=_ctx(assessment_id))
    return updated


async def get_assessment(
    repo: AssessmentRepo, assessment_id: UUID, *, clock: Clock
) -> AssessmentView:
    assessment = await _require(repo, assessment_id)
    return AssessmentView(assessment, lifecycle.resolve_state(assessment, clock.now()))


async def list_all(repo: AssessmentRepo, *, clock: Clock) -> list[AssessmentView]:
    return _label(await repo.list_all(), clock)


async def list_for_author(
    repo: AssessmentRepo, user_id: str, *, clock: Clock
) -> list[AssessmentView]:
    return _label(await repo.list_by_creator(user_id), clock)


async def list_for_student(
    repo: AssessmentRepo, user_id: str, *, clock: Clock
) -> list[AssessmentView]:
    return _label(await repo.list_assigned_to(user_id), clock)


async def search_assignable_users(
    users: UserRepo, query: str, *, limit: int = 10
) -> list[User]:
    if not query or not query.strip():
        return []
    return await users.search(query.strip(), role="student", limit=limit)


# ---------------------------------------------------------------------------
# Taking an assessment
# ---------------------------------------------------------------------------


async def submit_answers(
    assessments: AssessmentRepo,
    submissions: SubmissionRepo,
    assessment_id: UUID,
    *,
    student_id: str,
    student_name: str,
    answers: Mapping[int, int],
    clock: Clock,
    time_taken_seconds: int | None = None,
) -> Submission:
    assessment = await _require(assessments, assessment_id)
    now = clock.now()

    if not lifecycle.is_accepting_submissions(assessment, now):
        STATE_CONFLICTS.labels(operation="submit").inc()
        logger.warning(
            "Rejected submission by student=%s for assessment id=%s in state=%s",
            student_id,
            assessment_id,
            lifecycle.resolve_state(assessment, now),
            extra=_ctx(assessment_id),
        )
        raise StateConflictError(NOT_ACTIVE)

    if student_id not in assessment.assigned_to:
        logger.warning(
            "Rejected submission by unassigned student=%s for assessment id=%s",
            student_id,
            assessment_id,
            extra=_ctx(assessment_id),
        )
        raise NotAssignedError("student is not assigned to this assessment")

    if await submissions.get(assessment_id, student_id) is not None:
        STATE_CONFLICTS.labels(operation="submit").inc()
        logger.warning(
            "Rejected second submission by student=%s for assessment id=%s",
            student_id,
            assessment_id,
            extra=_ctx(assessment_id),
        )
        raise StateConflictError(ALREADY_SUBMITTED)

    errors = scoring.check_answers(assessment, answers)
    if time_taken_seconds is not None and time_taken_seconds < 0:
        errors.append(
            FieldError("time_taken_seconds", "time taken must not be negative")
        )
    if errors:
        VALIDATION_FAILURES.labels(operation="submit").inc()
        logger.warning(
            "Rejected malformed answers by student=%s for assessment id=%s",
            student_id,
            assessment_id,
            extra=_ctx(assessment_id),
        )
        raise AssessmentValidationError(errors)

    if time_taken_seconds is None:
        elapsed = now - ensure_utc(assessment.start_time)
        time_taken_seconds = max(0, int(elapsed.total_seconds()))

    result = scoring.score(assessment, answers)
    submission = Submission(
        assessment_id=assessment_id,
        student_id=student_id,
        student_name=student_name,
        answers=dict(answers),
        score=result.score,
        total_marks=result.total_marks,
        submitted_at=now,
        time_taken_seconds=time_taken_seconds,
    )

    try:
        await submissions.add(submission)
    except ValueError:
        # Lost a race with a concurrent submission for the same pair.
        STATE_CONFLICTS.labels(operation="submit").inc()
        raise StateConflictError(ALREADY_SUBMITTED) from None

    SUBMISSIONS_SCORED.inc()
    SUBMISSION_PERCENTAGE.observe(result.percentage)
    logger.info(
        "Scored submission student=%s assessment id=%s score=%d/%d grade=%s",
        student_id,
        assessment_id,
        result.score,
        result.total_marks,
        result.grade,
        extra=_ctx(assessment_id),
    )
    return submission


async def get_student_result(
    submissions: SubmissionRepo, assessment_id: UUID, student_id: str
) -> Submission | None:
    return await submissions.get(assessment_id, student_id)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def _check_results_access(
    assessment: Assessment, now: datetime, *, live_preview: bool, operation: str
) -> AssessmentState:
    state = lifecycle.resolve_state(assessment, now)
    if lifecycle.is_results_viewable(assessment, now):
        return state
    if live_preview and state is AssessmentState.ACTIVE:
        return state
    STATE_CONFLICTS.labels(operation=operation).inc()
    logger.warning(
        "Rejected %s for assessment id=%s in state=%s (live=%s)",
        operation,
        assessment.id,
        state,
        live_preview,
        extra=_ctx(assessment.id),
    )
    raise StateConflictError(RESULTS_NOT_AVAILABLE)


async def _read_cached_stats(cache: CacheService, key: str) -> Stats | None:
    try:
        cached = await cache.get(key)
    except RedisError:
        INSIGHTS_CACHE_OPERATIONS.labels(operation="error").inc()
        logger.warning("Insights cache read failed for key=%s", key, exc_info=True)
        return None
    if cached is None:
        INSIGHTS_CACHE_OPERATIONS.labels(operation="miss").inc()
        return None
    INSIGHTS_CACHE_OPERATIONS.labels(operation="hit").inc()
    return Stats.from_dict(json.loads(cached))


async def _write_cached_stats(
    cache: CacheService, key: str, stats: Stats, ttl: int
) -> None:
    try:
        await cache.set(key, json.dumps(stats.to_dict()), ttl)
    except RedisError:
        INSIGHTS_CACHE_OPERATIONS.labels(operation="error").inc()
        logger.warning("Insights cache write failed for key=%s", key, exc_info=True)


async def get_insights(
    assessments: AssessmentRepo,
    submissions: SubmissionRepo,
    assessment_id: UUID,
    *,
    clock: Clock,
    live_preview: bool = False,
    cache: CacheService | None = None,
    cache_ttl: int = 300,
) -> Insights:
    """Cohort statistics for one assessment.

    Completed assessments are served through the cache: their submission
    set can no longer change.  Live previews during the window are always
    computed fresh.  An unreachable cache degrades to recomputing.
    """
    assessment = await _require(assessments, assessment_id)
    state = _check_results_access(
        assessment, clock.now(), live_preview=live_preview, operation="insights"
    )
    use_cache = state is AssessmentState.COMPLETED
    key = insights_key(assessment_id)

    if cache is not None and use_cache:
        cached = await _read_cached_stats(cache, key)
        if cached is not None:
            return Insights(assessment_id, state, cached, live=False)

    stats = aggregator.aggregate(
        assessment, await submissions.list_by_assessment(assessment_id)
    )

    if cache is not None and use_cache and cache_ttl > 0:
        await _write_cached_stats(cache, key, stats, cache_ttl)

    return Insights(
        assessment_id=assessment_id,
        state=state,
        stats=stats,
        live=state is AssessmentState.ACTIVE,
    )


async def get_leaderboard(
    assessments: AssessmentRepo,
    submissions: SubmissionRepo,
    assessment_id: UUID,
    *,
    clock: Clock,
    live_preview: bool = False,
    limit: int | None = None,
) -> list[LeaderboardEntry]:
    assessment = await _require(assessments, assessment_id)
    _check_results_access(
        assessment, clock.now(), live_preview=live_preview, operation="leaderboard"
    )
    rows = await submissions.list_by_assessment(assessment_id)
    aggregator.check_submissions(assessment, rows)
    ranked = aggregator.rank(rows)
    return ranked if limit is None else ranked[:limit]
