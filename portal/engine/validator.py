"""Authoring-input validation.

validate() runs every rule and returns the full list of violations, so an
author sees all problems with a draft at once.  An empty list means the
draft may be persisted.  Question-level messages carry the 1-based
question number.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime

from portal.core.clock import ensure_utc
from portal.core.errors import AssessmentValidationError, FieldError
from portal.models.assessment import OPTIONS_PER_QUESTION, AssessmentDraft, Question

WINDOW_ELAPSED = "assessment window already elapsed"


def _blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def _validate_question(number: int, question: Question) -> list[FieldError]:
    errors: list[FieldError] = []

    if _blank(question.text):
        errors.append(
            FieldError("questions.text", f"Question {number} is empty", number)
        )

    options = tuple(question.options or ())
    if len(options) != OPTIONS_PER_QUESTION:
        errors.append(
            FieldError(
                "questions.options",
                f"Question {number} must have exactly {OPTIONS_PER_QUESTION} "
                f"options (got {len(options)})",
                number,
            )
        )
    elif any(_blank(opt) for opt in options):
        errors.append(
            FieldError(
                "questions.options", f"Question {number} has empty options", number
            )
        )

    index = question.correct_option_index
    # bool is an int subclass; True must not pass as option 1
    if (
        not isinstance(index, int)
        or isinstance(index, bool)
        or not 0 <= index < OPTIONS_PER_QUESTION
    ):
        errors.append(
            FieldError(
                "questions.correct_option_index",
                f"Question {number} needs a correct option between 0 and "
                f"{OPTIONS_PER_QUESTION - 1}",
                number,
            )
        )

    if _blank(question.explanation):
        errors.append(
            FieldError(
                "questions.explanation",
                f"Question {number} needs an explanation",
                number,
            )
        )

    return errors


def validate(draft: AssessmentDraft, now: datetime) -> list[FieldError]:
    errors: list[FieldError] = []

    if _blank(draft.title):
        errors.append(FieldError("title", "title must be non-empty"))
    if _blank(draft.description):
        errors.append(FieldError("description", "description must be non-empty"))

    start = ensure_utc(draft.start_time)
    end = ensure_utc(draft.end_time)
    if start >= end:
        errors.append(FieldError("end_time", "end time must be after start time"))
    elif end < ensure_utc(now):
        errors.append(FieldError("end_time", WINDOW_ELAPSED))

    if draft.duration_minutes < 1:
        errors.append(
            FieldError("duration_minutes", "duration must be at least 1 minute")
        )

    if not draft.questions:
        errors.append(FieldError("questions", "Please add at least one question"))
    for number, question in enumerate(draft.questions, start=1):
        errors.extend(_validate_question(number, question))

    if not draft.assigned_to:
        errors.append(FieldError("assigned_to", "Please assign at least one student"))
    else:
        duplicates = sorted(
            user_id
            for user_id, count in Counter(draft.assigned_to).items()
            if count > 1
        )
        if duplicates:
            errors.append(
                FieldError(
                    "assigned_to",
                    f"duplicate assignees: {', '.join(duplicates)}",
                )
            )

    return errors


def ensure_valid(draft: AssessmentDraft, now: datetime) -> None:
    """Raise AssessmentValidationError carrying every violation, if any."""
    errors = validate(draft, now)
    if errors:
        raise AssessmentValidationError(errors)
