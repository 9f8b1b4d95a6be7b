from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from uuid import UUID, uuid4

OPTIONS_PER_QUESTION = 4


@dataclass(frozen=True, slots=True)
class Question:
    text: str
    options: tuple[str, ...]
    correct_option_index: int
    explanation: str


@dataclass(frozen=True, slots=True)
class AssessmentDraft:
    """Authoring input, before validation and before an id exists."""

    title: str
    description: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    questions: tuple[Question, ...]
    assigned_to: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class AssessmentPatch:
    """Partial edit.  None means "leave unchanged"."""

    title: str | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_minutes: int | None = None
    questions: tuple[Question, ...] | None = None
    assigned_to: tuple[str, ...] | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def apply(self, draft: AssessmentDraft) -> AssessmentDraft:
        changes = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
        return replace(draft, **changes)


@dataclass(frozen=True, slots=True)
class Assessment:
    id: UUID
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    questions: tuple[Question, ...]
    assigned_to: tuple[str, ...]
    created_by: str
    created_at: datetime

    @property
    def total_marks(self) -> int:
        # One mark per question, so it can never drift from the question set.
        return len(self.questions)

    def to_draft(self) -> AssessmentDraft:
        return AssessmentDraft(
            title=self.title,
            description=self.description,
            start_time=self.start_time,
            end_time=self.end_time,
            duration_minutes=self.duration_minutes,
            questions=self.questions,
            assigned_to=self.assigned_to,
        )

    def with_draft(self, draft: AssessmentDraft) -> Assessment:
        """Copy with the editable fields replaced; id and provenance kept."""
        return replace(
            self,
            title=draft.title.strip(),
            description=draft.description.strip(),
            start_time=draft.start_time,
            end_time=draft.end_time,
            duration_minutes=draft.duration_minutes,
            questions=draft.questions,
            assigned_to=draft.assigned_to,
        )

    @staticmethod
    def new(
        *, draft: AssessmentDraft, created_by: str, created_at: datetime
    ) -> Assessment:
        return Assessment(
            id=uuid4(),
            title=draft.title.strip(),
            description=draft.description.strip(),
            start_time=draft.start_time,
            end_time=draft.end_time,
            duration_minutes=draft.duration_minutes,
            questions=draft.questions,
            assigned_to=draft.assigned_to,
            created_by=created_by,
            created_at=created_at,
        )
