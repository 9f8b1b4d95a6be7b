"""Multiple-choice scoring and letter grades.

Pure functions: same assessment and answers in, same result out, so a
stored submission can be re-scored at any time for audit.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from portal.core.errors import ComputationError, FieldError
from portal.models.assessment import OPTIONS_PER_QUESTION, Assessment, Question

# (lower bound inclusive, grade), checked top-down
GRADE_BANDS: tuple[tuple[float, str], ...] = (
    (90.0, "A+"),
    (80.0, "A"),
    (70.0, "B"),
    (60.0, "C"),
)
FAILING_GRADE = "F"


@dataclass(frozen=True, slots=True)
class ScoreResult:
    score: int
    total_marks: int
    percentage: float
    grade: str
    correct: tuple[bool, ...]

    @property
    def display_percentage(self) -> float:
        return round(self.percentage, 1)


def grade(percentage: float) -> str:
    for lower, letter in GRADE_BANDS:
        if percentage >= lower:
            return letter
    return FAILING_GRADE


def _check_answer_key(number: int, question: Question) -> None:
    index = question.correct_option_index
    if (
        not isinstance(index, int)
        or isinstance(index, bool)
        or not 0 <= index < OPTIONS_PER_QUESTION
    ):
        raise ComputationError(
            f"question {number} has no usable correct option (got {index!r})"
        )
    if len(question.options) != OPTIONS_PER_QUESTION:
        raise ComputationError(
            f"question {number} has {len(question.options)} options, "
            f"expected {OPTIONS_PER_QUESTION}"
        )


def check_answers(
    assessment: Assessment, answers: Mapping[int, int]
) -> list[FieldError]:
    """Report selections that point outside the assessment.

    Missing answers are fine (they score as incorrect); answers to a
    question that does not exist, or naming an option that does not exist,
    are not.
    """
    errors: list[FieldError] = []
    total = len(assessment.questions)
    for index in sorted(answers):
        option = answers[index]
        if not 0 <= index < total:
            errors.append(
                FieldError(
                    "answers",
                    f"answer given for question {index + 1}, but the assessment "
                    f"has {total} questions",
                )
            )
        elif not 0 <= option < OPTIONS_PER_QUESTION:
            errors.append(
                FieldError(
                    "answers",
                    f"Question {index + 1}: option {option} does not exist",
                    index + 1,
                )
            )
    return errors


def score(assessment: Assessment, answers: Mapping[int, int]) -> ScoreResult:
    """Score one set of answers against the assessment's answer key.

    answers maps 0-based question index to the selected 0-based option.
    Raises ComputationError when the stored answer key itself is unusable.
    """
    if not assessment.questions:
        raise ComputationError(f"assessment {assessment.id} has no questions")

    correct: list[bool] = []
    for i, question in enumerate(assessment.questions):
        _check_answer_key(i + 1, question)
        correct.append(answers.get(i) == question.correct_option_index)

    total_marks = assessment.total_marks
    points = sum(correct)
    percentage = points / total_marks * 100
    return ScoreResult(
        score=points,
        total_marks=total_marks,
        percentage=percentage,
        grade=grade(percentage),
        correct=tuple(correct),
    )
