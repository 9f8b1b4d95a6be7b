"""PostgreSQL implementation of AssessmentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import AssessmentRow
from portal.models.assessment import Assessment, Question


class PgAssessmentRepo:
    """Satisfies the AssessmentRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, assessment_id: UUID) -> Assessment | None:
        row = await self._session.get(AssessmentRow, assessment_id)
        if row is None:
            return None
        return _row_to_assessment(row)

    async def add(self, assessment: Assessment) -> None:
        row = AssessmentRow(id=assessment.id, created_by=assessment.created_by)
        _copy_into(row, assessment)
        row.created_at = assessment.created_at
        self._session.add(row)
        await self._session.flush()

    async def update(self, assessment: Assessment) -> Assessment | None:
        row = await self._session.get(AssessmentRow, assessment.id)
        if row is None:
            return None
        _copy_into(row, assessment)
        await self._session.flush()
        return _row_to_assessment(row)

    async def list_all(self) -> list[Assessment]:
        stmt = select(AssessmentRow).order_by(AssessmentRow.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_assessment(r) for r in rows]

    async def list_by_creator(self, user_id: str) -> list[Assessment]:
        stmt = (
            select(AssessmentRow)
            .where(AssessmentRow.created_by == user_id)
            .order_by(AssessmentRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_assessment(r) for r in rows]

    async def list_assigned_to(self, user_id: str) -> list[Assessment]:
        stmt = (
            select(AssessmentRow)
            .where(AssessmentRow.assigned_to.any(user_id))
            .order_by(AssessmentRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_assessment(r) for r in rows]


def _question_to_json(q: Question) -> dict:
    return {
        "text": q.text,
        "options": list(q.options),
        "correct_option_index": q.correct_option_index,
        "explanation": q.explanation,
    }


def _copy_into(row: AssessmentRow, assessment: Assessment) -> None:
    row.title = assessment.title
    row.description = assessment.description
    row.start_time = assessment.start_time
    row.end_time = assessment.end_time
    row.duration_minutes = assessment.duration_minutes
    row.questions = [_question_to_json(q) for q in assessment.questions]
    row.assigned_to = list(assessment.assigned_to)


def _row_to_assessment(row: AssessmentRow) -> Assessment:
    # Missing keys surface later as ComputationError in the scoring engine.
    questions = tuple(
        Question(
            text=q.get("text", ""),
            options=tuple(q.get("options") or ()),
            correct_option_index=q.get("correct_option_index"),  # type: ignore
            explanation=q.get("explanation", ""),
        )
        for q in row.questions or []
    )
    return Assessment(
        id=row.id,
        title=row.title,
        description=row.description,
        start_time=row.start_time,
        end_time=row.end_time,
        duration_minutes=row.duration_minutes,
        questions=questions,
        assigned_to=tuple(row.assigned_to or ()),
        created_by=row.created_by,
        created_at=row.created_at,
    )
