"""Custom exception hierarchy for the roundtable package."""

from __future__ import annotations

from typing import Any


class RoundTableError(Exception):
    """Base error for all expected, recoverable roundtable conditions."""

    code = "roundtable_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class NotFoundError(RoundTableError):
    """A referenced roundtable, session, topic, trainer or participant is missing."""

    code = "not_found"


class PreconditionFailedError(RoundTableError):
    """A legal operation was attempted in the wrong lifecycle state."""

    code = "precondition_failed"


class InvalidStateError(PreconditionFailedError):
    """The requested status transition is not allowed from the current state."""

    code = "invalid_state"


class InvalidInputError(RoundTableError):
    """Raised when input data cannot be validated."""

    code = "invalid_input"


class InvalidSelectionCountError(InvalidInputError):
    code = "invalid_selection_count"


class InvalidTopicError(InvalidInputError):
    code = "invalid_topic"


class InvalidQuestionCountError(InvalidInputError):
    code = "invalid_question_count"


class InvalidScheduleError(InvalidInputError):
    code = "invalid_schedule"


class NotRegisteredError(RoundTableError):
    """The participant is not registered for the roundtable."""

    code = "not_registered"


class NotAssignedError(RoundTableError):
    """The trainer is not assigned to the session."""

    code = "not_assigned"


class TrainerConflictError(RoundTableError):
    """A trainer assignment collides with other sessions of the same trainer."""

    code = "trainer_conflict"

    def __init__(self, message: str, conflicts: list[dict[str, Any]], **details: Any) -> None:
        super().__init__(message, conflicts=conflicts, **details)
        self.conflicts = conflicts
