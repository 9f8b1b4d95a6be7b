"""Cohort statistics and leaderboard ranking over graded submissions.

An empty submission list is a normal state ("nobody has submitted yet")
and yields zeros.  An assessment without questions, or a submission that
does not belong to the assessment or whose marks disagree with it, is a
data defect and raises ComputationError rather than being skipped.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass

from portal.core.errors import ComputationError
from portal.engine.scoring import grade
from portal.models.assessment import Assessment
from portal.models.submission import Submission


@dataclass(frozen=True, slots=True)
class Band:
    label: str
    low: int
    high: int


# Contiguous integer ranges over floor(percentage), evaluated top-down.
DISTRIBUTION_BANDS: tuple[Band, ...] = (
    Band("90-100%", 90, 100),
    Band("80-89%", 80, 89),
    Band("70-79%", 70, 79),
    Band("60-69%", 60, 69),
    Band("Below 60%", 0, 59),
)

PODIUM = ("first", "second", "third")


@dataclass(frozen=True, slots=True)
class BandCount:
    label: str
    low: int
    high: int
    count: int


@dataclass(frozen=True, slots=True)
class Stats:
    total_assigned: int
    total_completed: int
    completion_rate: float
    average_score: float
    average_percentage: float
    highest_score: int
    lowest_score: int
    distribution: tuple[BandCount, ...]

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> Stats:
        return Stats(
            total_assigned=data["total_assigned"],
            total_completed=data["total_completed"],
            completion_rate=data["completion_rate"],
            average_score=data["average_score"],
            average_percentage=data["average_percentage"],
            highest_score=data["highest_score"],
            lowest_score=data["lowest_score"],
            distribution=tuple(BandCount(**b) for b in data["distribution"]),
        )


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    submission: Submission
    grade: str
    podium: str | None


def band_for(percentage: float) -> Band:
    if math.isnan(percentage) or not 0 <= percentage <= 100:
        raise ComputationError(f"percentage out of range: {percentage!r}")
    floored = math.floor(percentage)
    for band in DISTRIBUTION_BANDS:
        if floored >= band.low:
            return band
    # unreachable: the last band starts at 0
    raise ComputationError(f"no band for percentage {percentage!r}")


def _check_submission(assessment: Assessment, submission: Submission) -> None:
    if submission.assessment_id != assessment.id:
        raise ComputationError(
            f"submission {submission.id} belongs to assessment "
            f"{submission.assessment_id}, not {assessment.id}"
        )
    if submission.total_marks != assessment.total_marks:
        raise ComputationError(
            f"submission {submission.id} was scored out of "
            f"{submission.total_marks}, assessment has {assessment.total_marks}"
        )
    if not 0 <= submission.score <= submission.total_marks:
        raise ComputationError(
            f"submission {submission.id} has score {submission.score} "
            f"outside 0..{submission.total_marks}"
        )


def distribution(submissions: Sequence[Submission]) -> tuple[BandCount, ...]:
    counts = {band.label: 0 for band in DISTRIBUTION_BANDS}
    for s in submissions:
        counts[band_for(s.percentage).label] += 1
    return tuple(
        BandCount(label=b.label, low=b.low, high=b.high, count=counts[b.label])
        for b in DISTRIBUTION_BANDS
    )


def check_submissions(
    assessment: Assessment, submissions: Sequence[Submission]
) -> None:
    if not assessment.questions:
        raise ComputationError(f"assessment {assessment.id} has no questions")
    for s in submissions:
        _check_submission(assessment, s)


def aggregate(assessment: Assessment, submissions: Sequence[Submission]) -> Stats:
    check_submissions(assessment, submissions)

    total_assigned = len(assessment.assigned_to)
    total_completed = len(submissions)
    completion_rate = (
        total_completed / total_assigned * 100 if total_assigned > 0 else 0.0
    )

    if submissions:
        scores = [s.score for s in submissions]
        average_score = sum(scores) / len(scores)
        average_percentage = sum(s.percentage for s in submissions) / len(submissions)
        highest_score = max(scores)
        lowest_score = min(scores)
    else:
        average_score = 0.0
        average_percentage = 0.0
        highest_score = 0
        lowest_score = 0

    return Stats(
        total_assigned=total_assigned,
        total_completed=total_completed,
        completion_rate=completion_rate,
        average_score=average_score,
        average_percentage=average_percentage,
        highest_score=highest_score,
        lowest_score=lowest_score,
        distribution=distribution(submissions),
    )


def rank(submissions: Sequence[Submission]) -> list[LeaderboardEntry]:
    """Order by percentage (high first), then earliest submission.

    student_id is the last tie-breaker so two identical timestamps still
    produce one fixed order and the podium labels never flip.
    """
    ordered = sorted(
        submissions,
        key=lambda s: (-s.percentage, s.submitted_at, s.student_id),
    )
    return [
        LeaderboardEntry(
            rank=position,
            submission=s,
            grade=grade(s.percentage),
            podium=PODIUM[position - 1] if position <= len(PODIUM) else None,
        )
        for position, s in enumerate(ordered, start=1)
    ]
