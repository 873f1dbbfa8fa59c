"""Validation and summaries for trainer discussion questions."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .exceptions import InvalidQuestionCountError, InvalidInputError
from .states import QuestionStatus


def normalise_questions(questions: Sequence[str], minimum: int, maximum: int) -> List[str]:
    texts = [text.strip() for text in questions]
    if any(not text for text in texts):
        raise InvalidInputError("Questions must not be empty.")
    if not minimum <= len(texts) <= maximum:
        if minimum == maximum:
            message = f"Exactly {minimum} questions are required per session"
        else:
            message = f"Between {minimum} and {maximum} questions are required per session"
        raise InvalidQuestionCountError(message, minimum=minimum, maximum=maximum, submitted=len(texts))
    return texts


def review_summary(statuses: Iterable[QuestionStatus], min_required: int) -> dict[str, int | bool]:
    values = [QuestionStatus(status) for status in statuses]
    approved = values.count(QuestionStatus.APPROVED)
    needs_revision = values.count(QuestionStatus.NEEDS_REVISION)
    rejected = values.count(QuestionStatus.REJECTED)
    return {
        "total": len(values),
        "approved": approved,
        "pending": values.count(QuestionStatus.PENDING),
        "needs_revision": needs_revision,
        "rejected": rejected,
        "is_complete": bool(values) and approved == len(values) and approved >= min_required,
        "needs_attention": needs_revision > 0 or rejected > 0,
    }
