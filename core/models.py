from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base
from roundtable.states import (
    ParticipantStatus,
    QuestionsStatus,
    QuestionStatus,
    RoundtableStatus,
    SessionStatus,
)

__all__ = [
    "Base",
    "Client",
    "Notification",
    "Participant",
    "ParticipantStatus",
    "Question",
    "QuestionStatus",
    "QuestionsStatus",
    "Roundtable",
    "RoundtableStatus",
    "Session",
    "SessionStatus",
    "Topic",
    "TopicVote",
    "Trainer",
    "utcnow",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Client(Base, TimestampMixin):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255))
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    roundtables: Mapped[list["Roundtable"]] = relationship(back_populates="client")


class Roundtable(Base, TimestampMixin):
    __tablename__ = "roundtables"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    client_id: Mapped[str] = mapped_column(ForeignKey("clients.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[RoundtableStatus] = mapped_column(
        Enum(RoundtableStatus, name="roundtable_status", native_enum=False),
        default=RoundtableStatus.SETUP,
        index=True,
    )
    max_participants: Mapped[int] = mapped_column(Integer)
    start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    session_duration: Mapped[int] = mapped_column(Integer, default=60)
    session_frequency: Mapped[str | None] = mapped_column(String(16), nullable=True)
    questions_min: Mapped[int] = mapped_column(Integer, default=3)
    questions_max: Mapped[int] = mapped_column(Integer, default=5)
    voting_opened_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    client: Mapped["Client"] = relationship(back_populates="roundtables")
    topics: Mapped[list["Topic"]] = relationship(
        back_populates="roundtable",
        order_by="Topic.position",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    sessions: Mapped[list["Session"]] = relationship(
        back_populates="roundtable",
        order_by="Session.session_number",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    participants: Mapped[list["Participant"]] = relationship(
        back_populates="roundtable", cascade="all, delete-orphan"
    )


class Topic(Base, TimestampMixin):
    __tablename__ = "topics"
    __table_args__ = (UniqueConstraint("roundtable_id", "position", name="uq_topic_position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    roundtable_id: Mapped[str] = mapped_column(ForeignKey("roundtables.id"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    position: Mapped[int] = mapped_column(Integer)
    is_selected: Mapped[bool] = mapped_column(Boolean, default=False)

    roundtable: Mapped["Roundtable"] = relationship(back_populates="topics")


class Participant(Base, TimestampMixin):
    __tablename__ = "participants"
    __table_args__ = (UniqueConstraint("roundtable_id", "email", name="uq_participant_email"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    roundtable_id: Mapped[str] = mapped_column(ForeignKey("roundtables.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255))
    status: Mapped[ParticipantStatus] = mapped_column(
        Enum(ParticipantStatus, name="participant_status", native_enum=False),
        default=ParticipantStatus.ACTIVE,
    )

    roundtable: Mapped["Roundtable"] = relationship(back_populates="participants")


class TopicVote(Base, TimestampMixin):
    __tablename__ = "topic_votes"
    __table_args__ = (UniqueConstraint("participant_id", "topic_id", name="uq_vote_participant_topic"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    roundtable_id: Mapped[str] = mapped_column(ForeignKey("roundtables.id"), index=True)
    participant_id: Mapped[str] = mapped_column(ForeignKey("participants.id"), index=True)
    topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id"), index=True)


class Trainer(Base, TimestampMixin):
    __tablename__ = "trainers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True)
    expertise: Mapped[list[str]] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class Session(Base, TimestampMixin):
    __tablename__ = "sessions"
    __table_args__ = (UniqueConstraint("roundtable_id", "session_number", name="uq_session_number"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    roundtable_id: Mapped[str] = mapped_column(ForeignKey("roundtables.id"), index=True)
    session_number: Mapped[int] = mapped_column(Integer)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, name="session_status", native_enum=False),
        default=SessionStatus.SCHEDULED,
    )
    questions_status: Mapped[QuestionsStatus] = mapped_column(
        Enum(QuestionsStatus, name="questions_status", native_enum=False),
        default=QuestionsStatus.NOT_SUBMITTED,
    )
    topic_id: Mapped[str | None] = mapped_column(ForeignKey("topics.id"), nullable=True)
    trainer_id: Mapped[str | None] = mapped_column(ForeignKey("trainers.id"), nullable=True, index=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    roundtable: Mapped["Roundtable"] = relationship(back_populates="sessions")
    questions: Mapped[list["Question"]] = relationship(
        back_populates="session",
        order_by="Question.position",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class Question(Base, TimestampMixin):
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    session_id: Mapped[str] = mapped_column(ForeignKey("sessions.id"), index=True)
    text: Mapped[str] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[QuestionStatus] = mapped_column(
        Enum(QuestionStatus, name="question_status", native_enum=False),
        default=QuestionStatus.PENDING,
    )
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    session: Mapped["Session"] = relationship(back_populates="questions")


class Notification(Base, TimestampMixin):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(64), index=True)
    recipient: Mapped[str] = mapped_column(String(255))
    context: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    status: Mapped[str] = mapped_column(String(32), default="PENDING")
