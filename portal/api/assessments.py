"""Assessment authoring, taking, and results endpoints.

  POST  /v1/assessments                       author creates (validated)
  GET   /v1/assessments                       list, each with derived state
  GET   /v1/assessments/{id}                  detail; answer key hidden from
                                              students until completed
  PATCH /v1/assessments/{id}                  edit, only while upcoming
  POST  /v1/assessments/{id}/submissions      student submits, only while active
  GET   /v1/assessments/{id}/submissions/me   student's own result
  GET   /v1/assessments/{id}/insights         cohort statistics
  GET   /v1/assessments/{id}/leaderboard      ranked results

Business rules live in assessment_service and the engine; this module
only maps HTTP to those calls and domain errors back to status codes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from portal.api.dependencies import (
    Repos,
    get_cache,
    get_clock,
    get_repos,
    require_any_role,
    require_role,
    require_user,
)
from portal.core.clock import Clock, ensure_utc
from portal.core.config import SETTINGS
from portal.core.errors import (
    AssessmentError,
    AssessmentNotFoundError,
    AssessmentValidationError,
    ComputationError,
    NotAssignedError,
    StateConflictError,
)
from portal.engine.aggregator import LeaderboardEntry
from portal.engine import lifecycle
from portal.engine.lifecycle import AssessmentState
from portal.engine.scoring import grade
from portal.models.assessment import (
    Assessment,
    AssessmentDraft,
    AssessmentPatch,
    Question,
)
from portal.models.principal import AUTHOR_ROLES, STUDENT, Principal
from portal.models.submission import Submission
from portal.services import assessment_service
from portal.services.assessment_service import AssessmentView, Insights
from portal.services.cache import CacheService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/assessments", tags=["assessments"])

_require_author = require_any_role(AUTHOR_ROLES)
_require_student = require_role(STUDENT)


# --- Pydantic schemas ---
# Field shapes only; content rules are enforced by the validator so that
# every problem is reported together.


class QuestionIn(BaseModel):
    text: str
    options: list[str]
    correct_option_index: int
    explanation: str

    def to_model(self) -> Question:
        return Question(
            text=self.text,
            options=tuple(self.options),
            correct_option_index=self.correct_option_index,
            explanation=self.explanation,
        )


class AssessmentCreateIn(BaseModel):
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int = 60
    questions: list[QuestionIn] = Field(default_factory=list)
    assigned_to: list[str] = Field(default_factory=list)

    def to_draft(self) -> AssessmentDraft:
        return AssessmentDraft(
            title=self.title,
            description=self.description,
            start_time=ensure_utc(self.start_time),
            end_time=ensure_utc(self.end_time),
            duration_minutes=self.duration_minutes,
            questions=tuple(q.to_model() for q in self.questions),
            assigned_to=tuple(self.assigned_to),
        )


class AssessmentPatchIn(BaseModel):
    title: str | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_minutes: int | None = None
    questions: list[QuestionIn] | None = None
    assigned_to: list[str] | None = None

    def to_patch(self) -> AssessmentPatch:
        return AssessmentPatch(
            title=self.title,
            description=self.description,
            start_time=ensure_utc(self.start_time) if self.start_time else None,
            end_time=ensure_utc(self.end_time) if self.end_time else None,
            duration_minutes=self.duration_minutes,
            questions=(
                tuple(q.to_model() for q in self.questions)
                if self.questions is not None
                else None
            ),
            assigned_to=(
                tuple(self.assigned_to) if self.assigned_to is not None else None
            ),
        )


class QuestionOut(BaseModel):
    text: str
    options: list[str]
    correct_option_index: int | None = None
    explanation: str | None = None


class AssessmentOut(BaseModel):
    id: str
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    total_marks: int
    questions: list[QuestionOut]
    assigned_to: list[str]
    created_by: str
    created_at: datetime
    state: str
    editable: bool


class SubmissionIn(BaseModel):
    # {"0": 2, "1": 0}: question index -> selected option, both 0-based
    answers: dict[int, int] = Field(default_factory=dict)
    time_taken_seconds: int | None = None


class ResultOut(BaseModel):
    id: str
    assessment_id: str
    student_id: str
    student_name: str
    score: int
    total_marks: int
    percentage: float
    grade: str
    submitted_at: datetime
    time_taken_seconds: int


class BandOut(BaseModel):
    range: str
    min: int
    max: int
    count: int


class InsightsOut(BaseModel):
    assessment_id: str
    state: str
    live: bool
    total_assigned: int
    total_completed: int
    completion_rate: float
    average_score: float
    average_percentage: float
    highest_score: int
    lowest_score: int
    distribution: list[BandOut]


class LeaderboardRowOut(ResultOut):
    rank: int
    podium: str | None


# --- Conversions ---


def _assessment_out(view: AssessmentView, *, reveal_answers: bool) -> AssessmentOut:
    a = view.assessment
    return AssessmentOut(
        id=str(a.id),
        title=a.title,
        description=a.description,
        start_time=a.start_time,
        end_time=a.end_time,
        duration_minutes=a.duration_minutes,
        total_marks=a.total_marks,
        questions=[
            QuestionOut(
                text=q.text,
                options=list(q.options),
                correct_option_index=q.correct_option_index if reveal_answers else None,
                explanation=q.explanation if reveal_answers else None,
            )
            for q in a.questions
        ],
        assigned_to=list(a.assigned_to),
        created_by=a.created_by,
        created_at=a.created_at,
        state=view.state.value,
        editable=view.editable,
    )


def _result_out(s: Submission) -> ResultOut:
    return ResultOut(
        id=str(s.id),
        assessment_id=str(s.assessment_id),
        student_id=s.student_id,
        student_name=s.student_name,
        score=s.score,
        total_marks=s.total_marks,
        percentage=round(s.percentage, 1),
        grade=grade(s.percentage),
        submitted_at=s.submitted_at,
        time_taken_seconds=s.time_taken_seconds,
    )


def _leaderboard_row(entry: LeaderboardEntry) -> LeaderboardRowOut:
    return LeaderboardRowOut(
        **_result_out(entry.submission).model_dump(),
        rank=entry.rank,
        podium=entry.podium,
    )


def _insights_out(insights: Insights) -> InsightsOut:
    stats = insights.stats
    return InsightsOut(
        assessment_id=str(insights.assessment_id),
        state=insights.state.value,
        live=insights.live,
        total_assigned=stats.total_assigned,
        total_completed=stats.total_completed,
        completion_rate=round(stats.completion_rate, 1),
        average_score=round(stats.average_score, 2),
        average_percentage=round(stats.average_percentage, 1),
        highest_score=stats.highest_score,
        lowest_score=stats.lowest_score,
        distribution=[
            BandOut(range=b.label, min=b.low, max=b.high, count=b.count)
            for b in stats.distribution
        ],
    )


# --- Error mapping ---


def _to_http(exc: AssessmentError) -> HTTPException:
    if isinstance(exc, AssessmentValidationError):
        return HTTPException(
            status_code=422,
            detail={
                "message": "validation failed",
                "errors": [e.as_dict() for e in exc.errors],
            },
        )
    if isinstance(exc, StateConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, AssessmentNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="assessment not found"
        )
    if isinstance(exc, NotAssignedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, ComputationError):
        logger.exception("Stored assessment data could not be processed")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="stored assessment data is inconsistent",
        )
    logger.error("Unmapped assessment error: %r", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


# --- Access helpers ---


def _can_manage(principal: Principal, assessment: Assessment) -> bool:
    return principal.is_management() or (
        principal.is_author() and assessment.created_by == principal.user_id
    )


def _can_view(principal: Principal, assessment: Assessment) -> bool:
    return _can_manage(principal, assessment) or (
        principal.user_id in assessment.assigned_to
    )


async def _load_view(
    repos: Repos, assessment_id: UUID, clock: Clock
) -> AssessmentView:
    try:
        return await assessment_service.get_assessment(
            repos.assessments, assessment_id, clock=clock
        )
    except AssessmentError as e:
        raise _to_http(e) from None


def _fresh_view(assessment: Assessment, clock: Clock) -> AssessmentView:
    return AssessmentView(assessment, lifecycle.resolve_state(assessment, clock.now()))


def _deny_manage(principal: Principal, assessment_id: UUID) -> HTTPException:
    logger.warning(
        "Access denied: user=%s cannot manage assessment=%s",
        principal.user_id,
        assessment_id,
        extra={"assessment_id": str(assessment_id)},
    )
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Only the assessment's author can do this",
    )


# --- Endpoints ---


@router.post("", response_model=AssessmentOut, status_code=status.HTTP_201_CREATED)
async def create_assessment(
    body: AssessmentCreateIn,
    principal: Annotated[Principal, Depends(_require_author)],
    repos: Annotated[Repos, Depends(get_repos)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AssessmentOut:
    try:
        assessment = await assessment_service.create_assessment(
            repos.assessments,
            body.to_draft(),
            created_by=principal.user_id,
            clock=clock,
        )
    except AssessmentError as e:
        raise _to_http(e) from None

    return _assessment_out(_fresh_view(assessment, clock), reveal_answers=True)


@router.get("", response_model=list[AssessmentOut])
async def list_assessments(
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> list[AssessmentOut]:
    if principal.is_management():
        views = await assessment_service.list_all(repos.assessments, clock=clock)
    elif principal.is_author():
        views = await assessment_service.list_for_author(
            repos.assessments, principal.user_id, clock=clock
        )
    else:
        views = await assessment_service.list_for_student(
            repos.assessments, principal.user_id, clock=clock
        )

    return [
        _assessment_out(
            v,
            reveal_answers=principal.is_author()
            or v.state is AssessmentState.COMPLETED,
        )
        for v in views
    ]


@router.get("/{assessment_id}", response_model=AssessmentOut)
async def get_assessment(
    assessment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AssessmentOut:
    view = await _load_view(repos, assessment_id, clock)
    if not _can_view(principal, view.assessment):
        # Same answer as a missing id: do not confirm the assessment exists.
        raise HTTPException(status_code=404, detail="assessment not found")

    reveal = _can_manage(principal, view.assessment) or (
        view.state is AssessmentState.COMPLETED
    )
    return _assessment_out(view, reveal_answers=reveal)


@router.patch("/{assessment_id}", response_model=AssessmentOut)
async def update_assessment(
    assessment_id: UUID,
    body: AssessmentPatchIn,
    principal: Annotated[Principal, Depends(_require_author)],
    repos: Annotated[Repos, Depends(get_repos)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AssessmentOut:
    view = await _load_view(repos, assessment_id, clock)
    if not _can_manage(principal, view.assessment):
        raise _deny_manage(principal, assessment_id)

    try:
        updated = await assessment_service.update_assessment(
            repos.assessments,
            assessment_id,
            body.to_patch(),
            clock=clock,
        )
    except AssessmentError as e:
        raise _to_http(e) from None

    return _assessment_out(_fresh_view(updated, clock), reveal_answers=True)


@router.post(
    "/{assessment_id}/submissions",
    response_model=ResultOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_answers(
    assessment_id: UUID,
    body: SubmissionIn,
    principal: Annotated[Principal, Depends(_require_student)],
    repos: Annotated[Repos, Depends(get_repos)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ResultOut:
    try:
        submission = await assessment_service.submit_answers(
            repos.assessments,
            repos.submissions,
            assessment_id,
            student_id=principal.user_id,
            student_name=principal.name or principal.user_id,
            answers=body.answers,
            time_taken_seconds=body.time_taken_seconds,
            clock=clock,
        )
    except AssessmentError as e:
        raise _to_http(e) from None
    return _result_out(submission)


@router.get("/{assessment_id}/submissions/me", response_model=ResultOut)
async def get_my_result(
    assessment_id: UUID,
    principal: Annotated[Principal, Depends(_require_student)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> ResultOut:
    submission = await assessment_service.get_student_result(
        repos.submissions, assessment_id, principal.user_id
    )
    if submission is None:
        raise HTTPException(status_code=404, detail="no submission found")
    return _result_out(submission)


@router.get("/{assessment_id}/insights", response_model=InsightsOut)
async def get_insights(
    assessment_id: UUID,
    principal: Annotated[Principal, Depends(_require_author)],
    repos: Annotated[Repos, Depends(get_repos)],
    clock: Annotated[Clock, Depends(get_clock)],
    cache: Annotated[CacheService, Depends(get_cache)],
    live: Annotated[bool, Query(description="partial counts while active")] = False,
) -> InsightsOut:
    view = await _load_view(repos, assessment_id, clock)
    if not _can_manage(principal, view.assessment):
        raise _deny_manage(principal, assessment_id)

    try:
        insights = await assessment_service.get_insights(
            repos.assessments,
            repos.submissions,
            assessment_id,
            clock=clock,
            live_preview=live,
            cache=cache,
            cache_ttl=SETTINGS.insights_cache_ttl,
        )
    except AssessmentError as e:
        raise _to_http(e) from None
    return _insights_out(insights)


@router.get("/{assessment_id}/leaderboard", response_model=list[LeaderboardRowOut])
async def get_leaderboard(
    assessment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
    clock: Annotated[Clock, Depends(get_clock)],
    live: bool = False,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> list[LeaderboardRowOut]:
    view = await _load_view(repos, assessment_id, clock)
    manager = _can_manage(principal, view.assessment)
    if not manager and principal.user_id not in view.assessment.assigned_to:
        raise HTTPException(status_code=404, detail="assessment not found")

    try:
        entries = await assessment_service.get_leaderboard(
            repos.assessments,
            repos.submissions,
            assessment_id,
            clock=clock,
            # Other students' results stay hidden until the window closes.
            live_preview=live and manager,
            limit=limit,
        )
    except AssessmentError as e:
        raise _to_http(e) from None
    return [_leaderboard_row(e) for e in entries]
