"""Error taxonomy for the assessment engine and services.

  AssessmentValidationError  malformed authoring/answer input, carries every
                             violation found (never just the first)
  StateConflictError         operation attempted outside its lifecycle state
  ComputationError           stored data the engine cannot score or aggregate;
                             a defect, not a user error
  AssessmentNotFoundError    unknown assessment id
  NotAssignedError           student is not in the assessment's cohort

Repository failures (network, storage) are not wrapped here; they
propagate unchanged to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FieldError:
    """One validation failure.

    question is the 1-based question number when the failure belongs to a
    specific question, so it can be shown to the author as-is.
    """

    field: str
    message: str
    question: int | None = None

    def as_dict(self) -> dict[str, object]:
        out: dict[str, object] = {"field": self.field, "message": self.message}
        if self.question is not None:
            out["question"] = self.question
        return out


class AssessmentError(Exception):
    pass


class AssessmentValidationError(AssessmentError, ValueError):
    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        summary = "; ".join(e.message for e in self.errors) or "invalid input"
        super().__init__(summary)


class StateConflictError(AssessmentError):
    pass


class ComputationError(AssessmentError):
    pass


class AssessmentNotFoundError(AssessmentError, LookupError):
    pass


class NotAssignedError(AssessmentError):
    pass
