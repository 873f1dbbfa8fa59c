from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from roundtable.models import SessionFrequency
from roundtable.states import (
    ParticipantStatus,
    QuestionsStatus,
    QuestionStatus,
    RoundtableStatus,
    SessionStatus,
)


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def naive_utc(value: datetime) -> datetime:
    """Sessions are stored as naive UTC; aware inputs are converted first."""

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


UTCDateTime = Annotated[datetime, AfterValidator(naive_utc)]


class ClientCreate(BaseModel):
    name: str = Field(min_length=1)
    company: str | None = None
    email: EmailStr | None = None


class ClientRead(ORMModel):
    id: str
    name: str
    company: str | None
    email: str | None


class TopicDraft(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""


class TopicRead(ORMModel):
    id: str
    title: str
    description: str
    position: int
    is_selected: bool


class SessionRead(ORMModel):
    id: str
    roundtable_id: str
    session_number: int
    scheduled_at: datetime | None
    status: SessionStatus
    questions_status: QuestionsStatus
    topic_id: str | None
    trainer_id: str | None
    description: str | None


class RoundtableCreate(BaseModel):
    client_id: str
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    topics: list[TopicDraft]
    max_participants: int = Field(ge=1)
    start_date: datetime | None = None
    questions_min: int | None = Field(default=None, ge=1)
    questions_max: int | None = Field(default=None, ge=1)


class RoundtableRead(ORMModel):
    id: str
    client_id: str
    name: str
    description: str | None
    status: RoundtableStatus
    max_participants: int
    start_date: datetime | None
    end_date: datetime | None
    session_duration: int
    session_frequency: str | None
    questions_min: int
    questions_max: int
    topics: list[TopicRead] = Field(default_factory=list)
    sessions: list[SessionRead] = Field(default_factory=list)


class ParticipantCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr


class ParticipantRead(ORMModel):
    id: str
    roundtable_id: str
    name: str
    email: str
    status: ParticipantStatus


class TrainerCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    expertise: list[str] = Field(default_factory=list)


class TrainerRead(ORMModel):
    id: str
    name: str
    email: str
    expertise: list[str]
    is_active: bool


class VoteSubmit(BaseModel):
    email: EmailStr
    topic_ids: list[str]


class TokenVoteSubmit(BaseModel):
    token: str
    topic_ids: list[str]


class PreferredTimeIn(BaseModel):
    hour: int = Field(ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)


class ScheduleRequest(BaseModel):
    start_date: date
    session_duration: int = Field(default=60, gt=0)
    frequency: SessionFrequency = SessionFrequency.WEEKLY
    skip_weekends: bool = True
    preferred_time: PreferredTimeIn | None = None


class RescheduleRequest(BaseModel):
    scheduled_at: UTCDateTime
    reason: str | None = None
    skip_conflict_check: bool = False


class SessionStatusUpdate(BaseModel):
    status: SessionStatus


class TrainerAssign(BaseModel):
    trainer_id: str
    skip_conflict_check: bool = False


class ConflictCheck(BaseModel):
    trainer_id: str
    scheduled_at: UTCDateTime
    exclude_session_id: str | None = None


class QuestionsSubmit(BaseModel):
    trainer_id: str
    questions: list[str]


class ReviewDecision(BaseModel):
    question_id: str
    status: QuestionStatus
    notes: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)


class ReviewBatch(BaseModel):
    reviewer: str | None = None
    decisions: list[ReviewDecision]


class QuestionRead(ORMModel):
    id: str
    session_id: str
    text: str
    position: int
    status: QuestionStatus
    review_notes: str | None
    rating: int | None
    reviewed_by: str | None
    reviewed_at: datetime | None
