"""Storage-free rules of the roundtable programme."""

from .conflicts import TRAINER_CONFLICT_WINDOW, find_conflicts, overlaps
from .core import SELECTION_SIZE, SESSION_COUNT, TOPIC_COUNT, percentage
from .exceptions import (
    InvalidInputError,
    InvalidQuestionCountError,
    InvalidScheduleError,
    InvalidSelectionCountError,
    InvalidStateError,
    InvalidTopicError,
    NotAssignedError,
    NotFoundError,
    NotRegisteredError,
    PreconditionFailedError,
    RoundTableError,
    TrainerConflictError,
)
from .models import Booking, PlannedSession, PreferredTime, ScheduleOptions, SessionFrequency, TopicTally
from .scheduler import adjust_for_weekends, plan_sessions
from .states import (
    ParticipantStatus,
    QuestionsStatus,
    QuestionStatus,
    RoundtableStatus,
    SessionStatus,
    calculate_progress,
    next_questions_status,
    next_roundtable_status,
)
from .voting import can_finalize, rank_topics, split_finalists, validate_selection

__all__ = [
    "Booking",
    "InvalidInputError",
    "InvalidQuestionCountError",
    "InvalidScheduleError",
    "InvalidSelectionCountError",
    "InvalidStateError",
    "InvalidTopicError",
    "NotAssignedError",
    "NotFoundError",
    "NotRegisteredError",
    "ParticipantStatus",
    "PlannedSession",
    "PreconditionFailedError",
    "PreferredTime",
    "QuestionStatus",
    "QuestionsStatus",
    "RoundTableError",
    "RoundtableStatus",
    "SELECTION_SIZE",
    "SESSION_COUNT",
    "ScheduleOptions",
    "SessionFrequency",
    "SessionStatus",
    "TOPIC_COUNT",
    "TRAINER_CONFLICT_WINDOW",
    "TopicTally",
    "TrainerConflictError",
    "adjust_for_weekends",
    "calculate_progress",
    "can_finalize",
    "find_conflicts",
    "next_questions_status",
    "next_roundtable_status",
    "overlaps",
    "percentage",
    "plan_sessions",
    "rank_topics",
    "split_finalists",
    "validate_selection",
]
