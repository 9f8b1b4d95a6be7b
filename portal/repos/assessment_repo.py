from __future__ import annotations

from typing import Protocol
from uuid import UUID

from portal.models.assessment import Assessment


class AssessmentRepo(Protocol):
    async def get(self, assessment_id: UUID) -> Assessment | None: ...
    async def add(self, assessment: Assessment) -> None: ...
    async def update(self, assessment: Assessment) -> Assessment | None: ...
    async def list_all(self) -> list[Assessment]: ...
    async def list_by_creator(self, user_id: str) -> list[Assessment]: ...
    async def list_assigned_to(self, user_id: str) -> list[Assessment]: ...


def _newest_first(items: list[Assessment]) -> list[Assessment]:
    return sorted(items, key=lambda a: a.created_at, reverse=True)


class InMemoryAssessmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Assessment] = {}

    async def get(self, assessment_id: UUID) -> Assessment | None:
        return self._by_id.get(assessment_id)

    async def add(self, assessment: Assessment) -> None:
        if assessment.id in self._by_id:
            raise ValueError("assessment already exists")
        self._by_id[assessment.id] = assessment

    async def update(self, assessment: Assessment) -> Assessment | None:
        if assessment.id not in self._by_id:
            return None
        self._by_id[assessment.id] = assessment
        return assessment

    async def list_all(self) -> list[Assessment]:
        return _newest_first(list(self._by_id.values()))

    async def list_by_creator(self, user_id: str) -> list[Assessment]:
        return _newest_first(
            [a for a in self._by_id.values() if a.created_by == user_id]
        )

    async def list_assigned_to(self, user_id: str) -> list[Assessment]:
        return _newest_first(
            [a for a in self._by_id.values() if user_id in a.assigned_to]
        )
