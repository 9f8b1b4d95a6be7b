from __future__ import annotations

from typing import Protocol
from uuid import UUID

from portal.models.submission import Submission


class SubmissionRepo(Protocol):
    async def get(self, assessment_id: UUID, student_id: str) -> Submission | None: ...
    async def add(self, submission: Submission) -> None: ...
    async def list_by_assessment(self, assessment_id: UUID) -> list[Submission]: ...


class InMemorySubmissionRepo:
    """One submission per (assessment, student); a second add raises."""

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, str], Submission] = {}

    async def get(self, assessment_id: UUID, student_id: str) -> Submission | None:
        return self._store.get((assessment_id, student_id))

    async def add(self, submission: Submission) -> None:
        key = (submission.assessment_id, submission.student_id)
        if key in self._store:
            raise ValueError("submission already exists")
        self._store[key] = submission

    async def list_by_assessment(self, assessment_id: UUID) -> list[Submission]:
        return sorted(
            (s for s in self._store.values() if s.assessment_id == assessment_id),
            key=lambda s: s.submitted_at,
        )
