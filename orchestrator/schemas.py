from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from core.schemas import QuestionRead, SessionRead, TopicRead
from roundtable.models import TopicTally
from roundtable.states import QuestionsStatus, RoundtableStatus, SessionStatus


class TopicResult(BaseModel):
    topic_id: str
    title: str
    position: int
    vote_count: int
    percentage: int
    is_selected: bool = False

    @classmethod
    def from_tally(cls, tally: TopicTally, *, is_selected: bool | None = None) -> "TopicResult":
        return cls(
            topic_id=tally.topic_id,
            title=tally.title,
            position=tally.position,
            vote_count=tally.vote_count,
            percentage=tally.percentage,
            is_selected=tally.is_selected if is_selected is None else is_selected,
        )


class VotingResults(BaseModel):
    roundtable_id: str
    status: RoundtableStatus
    topics: list[TopicResult]
    top_topics: list[TopicResult]
    total_participants: int
    voted_participants: int
    quorum: int
    can_finalize: bool


class PendingParticipant(BaseModel):
    participant_id: str
    name: str
    email: str


class VotingProgress(BaseModel):
    roundtable_id: str
    total_participants: int
    voted_participants: int
    progress: int
    quorum: int
    can_finalize: bool
    pending: list[PendingParticipant] = Field(default_factory=list)


class Ballot(BaseModel):
    roundtable_id: str
    roundtable_name: str
    participant_name: str
    is_open: bool
    required: int
    topics: list[TopicRead]
    selected_topic_ids: list[str]


class VoteReceipt(BaseModel):
    roundtable_id: str
    participant_id: str
    topic_ids: list[str]


class OpenVotingResult(BaseModel):
    roundtable_id: str
    status: RoundtableStatus
    voting_url: str
    participant_count: int
    invitations_sent: int


class FinalizationResult(BaseModel):
    roundtable_id: str
    status: RoundtableStatus
    selected: list[TopicResult]
    rejected: list[TopicResult]
    quorum_reached: bool


class ScheduleResult(BaseModel):
    roundtable_id: str
    start_date: datetime
    end_date: datetime
    sessions: list[SessionRead]


class CalendarEntry(BaseModel):
    session_id: str
    roundtable_id: str
    roundtable_name: str
    session_number: int
    scheduled_at: datetime
    status: SessionStatus
    topic_title: str | None = None
    trainer_name: str | None = None


class ConflictReport(BaseModel):
    trainer_id: str
    scheduled_at: datetime
    has_conflict: bool
    conflicts: list[dict[str, Any]] = Field(default_factory=list)


class AssignmentResult(BaseModel):
    session_id: str
    session_number: int
    trainer_id: str
    overridden_conflicts: list[dict[str, Any]] = Field(default_factory=list)


class SkippedAssignment(BaseModel):
    session_id: str
    session_number: int
    trainer_id: str
    conflicts: list[dict[str, Any]]


class AutoAssignResult(BaseModel):
    roundtable_id: str
    assigned: list[AssignmentResult] = Field(default_factory=list)
    skipped: list[SkippedAssignment] = Field(default_factory=list)


class Workload(BaseModel):
    trainer_id: str
    total_sessions: int
    upcoming_sessions: int
    completed_sessions: int
    sessions: list[dict[str, Any]] = Field(default_factory=list)


class ReviewSummary(BaseModel):
    total: int
    approved: int
    pending: int
    needs_revision: int
    rejected: int
    is_complete: bool
    needs_attention: bool


class QuestionSet(BaseModel):
    session_id: str
    roundtable_id: str
    session_number: int
    trainer_id: str | None
    questions_status: QuestionsStatus
    questions_min: int
    questions_max: int
    can_resubmit: bool
    questions: list[QuestionRead]
    summary: ReviewSummary


class RoundtableProgress(BaseModel):
    roundtable_id: str
    name: str
    status: RoundtableStatus
    progress: int


class DashboardRead(BaseModel):
    total_roundtables: int
    active_roundtables: int
    active_participants: int
    upcoming_sessions: int
    pending_question_reviews: int
    roundtables: list[RoundtableProgress] = Field(default_factory=list)
