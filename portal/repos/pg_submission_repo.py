"""PostgreSQL implementation of SubmissionRepo.

The (assessment_id, student_id) unique constraint is what makes
concurrent double submissions impossible; the IntegrityError is mapped
to the same ValueError the in-memory repo raises.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import SubmissionRow
from portal.models.submission import Submission


class PgSubmissionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, assessment_id: UUID, student_id: str) -> Submission | None:
        stmt = select(SubmissionRow).where(
            SubmissionRow.assessment_id == assessment_id,
            SubmissionRow.student_id == student_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_submission(row)

    async def add(self, submission: Submission) -> None:
        row = SubmissionRow(
            id=submission.id,
            assessment_id=submission.assessment_id,
            student_id=submission.student_id,
            student_name=submission.student_name,
            answers={str(k): v for k, v in submission.answers.items()},
            score=submission.score,
            total_marks=submission.total_marks,
            submitted_at=submission.submitted_at,
            time_taken_seconds=submission.time_taken_seconds,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError:
            raise ValueError("submission already exists") from None

    async def list_by_assessment(self, assessment_id: UUID) -> list[Submission]:
        stmt = (
            select(SubmissionRow)
            .where(SubmissionRow.assessment_id == assessment_id)
            .order_by(SubmissionRow.submitted_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_submission(r) for r in rows]


def _row_to_submission(row: SubmissionRow) -> Submission:
    return Submission(
        id=row.id,
        assessment_id=row.assessment_id,
        student_id=row.student_id,
        student_name=row.student_name,
        answers={int(k): int(v) for k, v in (row.answers or {}).items()},
        score=row.score,
        total_marks=row.total_marks,
        submitted_at=row.submitted_at,
        time_taken_seconds=row.time_taken_seconds,
    )
