"""Status enums and the transition functions that govern them.

Every derived status lives behind exactly one function here.  Callers never
write ``status`` or ``questions_status`` directly; they ask this module for
the next value and persist what it returns.
"""

from __future__ import annotations

import enum
from typing import Iterable, Mapping

from .core import SESSION_COUNT, percentage
from .exceptions import InvalidStateError


class RoundtableStatus(str, enum.Enum):
    SETUP = "SETUP"
    TOPIC_VOTING = "TOPIC_VOTING"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    REMINDER_SENT = "REMINDER_SENT"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FEEDBACK_SENT = "FEEDBACK_SENT"
    CANCELLED = "CANCELLED"


class ParticipantStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DROPPED_OUT = "DROPPED_OUT"
    COMPLETED = "COMPLETED"


class QuestionStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    NEEDS_REVISION = "NEEDS_REVISION"
    REJECTED = "REJECTED"


class QuestionsStatus(str, enum.Enum):
    NOT_SUBMITTED = "NOT_SUBMITTED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    SENT_TO_PARTICIPANTS = "SENT_TO_PARTICIPANTS"
    REQUESTED_FROM_COORDINATOR = "REQUESTED_FROM_COORDINATOR"


TERMINAL_ROUNDTABLE_STATUSES = frozenset({RoundtableStatus.COMPLETED, RoundtableStatus.CANCELLED})
ACTIVE_ROUNDTABLE_STATUSES = frozenset(
    {RoundtableStatus.TOPIC_VOTING, RoundtableStatus.SCHEDULED, RoundtableStatus.IN_PROGRESS}
)
FINISHED_SESSION_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.FEEDBACK_SENT})
STARTED_SESSION_STATUSES = FINISHED_SESSION_STATUSES | {SessionStatus.IN_PROGRESS}
UPCOMING_SESSION_STATUSES = frozenset({SessionStatus.SCHEDULED, SessionStatus.REMINDER_SENT})

ROUNDTABLE_TRANSITIONS: Mapping[RoundtableStatus, frozenset[RoundtableStatus]] = {
    RoundtableStatus.SETUP: frozenset({RoundtableStatus.TOPIC_VOTING, RoundtableStatus.CANCELLED}),
    RoundtableStatus.TOPIC_VOTING: frozenset({RoundtableStatus.SCHEDULED, RoundtableStatus.CANCELLED}),
    RoundtableStatus.SCHEDULED: frozenset({RoundtableStatus.IN_PROGRESS, RoundtableStatus.CANCELLED}),
    RoundtableStatus.IN_PROGRESS: frozenset({RoundtableStatus.COMPLETED, RoundtableStatus.CANCELLED}),
    RoundtableStatus.COMPLETED: frozenset(),
    RoundtableStatus.CANCELLED: frozenset(),
}

SESSION_TRANSITIONS: Mapping[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.SCHEDULED: frozenset(
        {
            SessionStatus.REMINDER_SENT,
            SessionStatus.IN_PROGRESS,
            SessionStatus.COMPLETED,
            SessionStatus.CANCELLED,
        }
    ),
    SessionStatus.REMINDER_SENT: frozenset(
        {SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED, SessionStatus.CANCELLED}
    ),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset({SessionStatus.FEEDBACK_SENT}),
    SessionStatus.FEEDBACK_SENT: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def ensure_roundtable_transition(current: RoundtableStatus, target: RoundtableStatus) -> RoundtableStatus:
    current = RoundtableStatus(current)
    target = RoundtableStatus(target)
    if target not in ROUNDTABLE_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Roundtable cannot move from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )
    return target


def ensure_session_transition(current: SessionStatus, target: SessionStatus) -> SessionStatus:
    current = SessionStatus(current)
    target = SessionStatus(target)
    if target not in SESSION_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Session cannot move from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )
    return target


def next_roundtable_status(
    current: RoundtableStatus, session_statuses: Iterable[SessionStatus]
) -> RoundtableStatus:
    """Derive the roundtable status from the state of its sessions."""

    current = RoundtableStatus(current)
    statuses = [SessionStatus(status) for status in session_statuses]
    if current == RoundtableStatus.SCHEDULED and any(s in STARTED_SESSION_STATUSES for s in statuses):
        current = RoundtableStatus.IN_PROGRESS
    if (
        current == RoundtableStatus.IN_PROGRESS
        and len(statuses) == SESSION_COUNT
        and all(s in FINISHED_SESSION_STATUSES for s in statuses)
    ):
        current = RoundtableStatus.COMPLETED
    return current


def calculate_progress(session_statuses: Iterable[SessionStatus] | None) -> int:
    """Percentage of the fixed ten sessions that are completed or fed back."""

    if not session_statuses:
        return 0
    finished = sum(1 for status in session_statuses if SessionStatus(status) in FINISHED_SESSION_STATUSES)
    return percentage(finished, SESSION_COUNT)


def questions_status_after_submission(current: QuestionsStatus) -> QuestionsStatus:
    current = QuestionsStatus(current)
    if current == QuestionsStatus.SENT_TO_PARTICIPANTS:
        raise InvalidStateError(
            "Questions were already sent to participants",
            current=current.value,
            target=QuestionsStatus.PENDING_APPROVAL.value,
        )
    return QuestionsStatus.PENDING_APPROVAL


def next_questions_status(
    current: QuestionsStatus,
    question_statuses: Iterable[QuestionStatus],
    min_required: int,
) -> QuestionsStatus:
    """Recompute a session's aggregate question status after a review batch.

    All questions approved, and at least ``min_required`` of them, releases the
    set to participants.  Any revision request or rejection sends the set back
    to the coordinator.  Anything else is a review still in progress.
    """

    current = QuestionsStatus(current)
    statuses = [QuestionStatus(status) for status in question_statuses]
    total = len(statuses)
    approved = statuses.count(QuestionStatus.APPROVED)
    if total and approved == total and approved >= min_required:
        return QuestionsStatus.SENT_TO_PARTICIPANTS
    if QuestionStatus.NEEDS_REVISION in statuses or QuestionStatus.REJECTED in statuses:
        return QuestionsStatus.REQUESTED_FROM_COORDINATOR
    return current
