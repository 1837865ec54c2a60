"""Request-boundary validation of incoming questions."""

from typing import Any

from bac_guide.domain.exceptions import QuestionValidationError

MAX_QUESTION_LENGTH = 1000

# Distinguishes an absent "question" key from an explicit null.
MISSING: Any = object()


def validate_question(value: Any = MISSING) -> str:
    """Return the stripped question or raise QuestionValidationError.

    An absent or empty question is "missing"; an explicit null or any
    non-string value "must be text"; more than 1000 characters after
    stripping is "too long".
    """
    if value is MISSING or (isinstance(value, str) and not value.strip()):
        raise QuestionValidationError("question missing")
    if not isinstance(value, str):
        raise QuestionValidationError("question must be text")

    question = value.strip()
    if len(question) > MAX_QUESTION_LENGTH:
        raise QuestionValidationError("question too long")
    return question
