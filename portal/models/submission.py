from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Submission:
    """One student's graded attempt at an assessment.

    At most one exists per (assessment_id, student_id); the repository
    enforces that.  total_marks is copied from the assessment when scored,
    which is safe because an assessment cannot change once it has started.
    """

    assessment_id: UUID
    student_id: str
    student_name: str
    answers: dict[int, int]
    score: int
    total_marks: int
    submitted_at: datetime
    time_taken_seconds: int
    id: UUID = field(default_factory=uuid4)

    @property
    def percentage(self) -> float:
        if self.total_marks <= 0:
            return 0.0
        return self.score / self.total_marks * 100
