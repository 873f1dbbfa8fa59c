from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from roundtable.exceptions import NotFoundError
from roundtable.models import Booking
from roundtable.states import ParticipantStatus, SessionStatus

from .models import (
    Client,
    Participant,
    Question,
    Roundtable,
    Session,
    Topic,
    TopicVote,
    Trainer,
)


async def get_client(db: AsyncSession, client_id: str) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found", client_id=client_id)
    return client


async def get_roundtable(db: AsyncSession, roundtable_id: str, *, for_update: bool = False) -> Roundtable:
    """Load a roundtable with its topics and sessions.

    ``for_update`` takes a row lock so that concurrent writers of the same
    roundtable queue behind each other.
    """

    stmt = select(Roundtable).where(Roundtable.id == roundtable_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    roundtable = result.scalar_one_or_none()
    if roundtable is None:
        raise NotFoundError("Roundtable not found", roundtable_id=roundtable_id)
    return roundtable


async def list_roundtables(db: AsyncSession, client_id: str | None = None) -> list[Roundtable]:
    stmt = select(Roundtable).order_by(Roundtable.created_at)
    if client_id is not None:
        stmt = stmt.where(Roundtable.client_id == client_id)
    result = await db.execute(stmt)
    return list(result.scalars())


async def get_roundtable_session(db: AsyncSession, session_id: str) -> Session:
    session_obj = await db.get(Session, session_id)
    if session_obj is None:
        raise NotFoundError("Session not found", session_id=session_id)
    return session_obj


async def get_trainer(db: AsyncSession, trainer_id: str) -> Trainer:
    trainer = await db.get(Trainer, trainer_id)
    if trainer is None:
        raise NotFoundError("Trainer not found", trainer_id=trainer_id)
    return trainer


async def list_active_trainers(db: AsyncSession) -> list[Trainer]:
    result = await db.execute(
        select(Trainer).where(Trainer.is_active.is_(True)).order_by(Trainer.created_at, Trainer.name)
    )
    return list(result.scalars())


async def get_participant(db: AsyncSession, roundtable_id: str, participant_id: str) -> Participant:
    participant = await db.get(Participant, participant_id)
    if participant is None or participant.roundtable_id != roundtable_id:
        raise NotFoundError("Participant not found", participant_id=participant_id)
    return participant


async def find_participant_by_email(db: AsyncSession, roundtable_id: str, email: str) -> Participant | None:
    result = await db.execute(
        select(Participant).where(
            Participant.roundtable_id == roundtable_id,
            Participant.email == normalise_email(email),
        )
    )
    return result.scalar_one_or_none()


async def list_participants(
    db: AsyncSession, roundtable_id: str, *, exclude_dropped: bool = False
) -> list[Participant]:
    stmt = select(Participant).where(Participant.roundtable_id == roundtable_id)
    if exclude_dropped:
        stmt = stmt.where(Participant.status != ParticipantStatus.DROPPED_OUT)
    result = await db.execute(stmt.order_by(Participant.created_at, Participant.email))
    return list(result.scalars())


async def list_active_participants(db: AsyncSession, roundtable_id: str) -> list[Participant]:
    result = await db.execute(
        select(Participant)
        .where(
            Participant.roundtable_id == roundtable_id,
            Participant.status == ParticipantStatus.ACTIVE,
        )
        .order_by(Participant.created_at, Participant.email)
    )
    return list(result.scalars())


async def vote_counts(db: AsyncSession, roundtable_id: str) -> dict[str, int]:
    """Stored vote rows per topic."""

    result = await db.execute(
        select(TopicVote.topic_id, func.count(TopicVote.id))
        .where(TopicVote.roundtable_id == roundtable_id)
        .group_by(TopicVote.topic_id)
    )
    return {topic_id: count for topic_id, count in result.all()}


async def voted_participant_ids(db: AsyncSession, roundtable_id: str) -> set[str]:
    result = await db.execute(
        select(TopicVote.participant_id).where(TopicVote.roundtable_id == roundtable_id).distinct()
    )
    return set(result.scalars())


async def participant_topic_ids(db: AsyncSession, roundtable_id: str, participant_id: str) -> list[str]:
    result = await db.execute(
        select(TopicVote.topic_id)
        .join(Topic, Topic.id == TopicVote.topic_id)
        .where(TopicVote.roundtable_id == roundtable_id, TopicVote.participant_id == participant_id)
        .order_by(Topic.position)
    )
    return list(result.scalars())


async def replace_votes(
    db: AsyncSession, roundtable_id: str, participant_id: str, topic_ids: Sequence[str]
) -> list[TopicVote]:
    await db.execute(
        delete(TopicVote).where(
            TopicVote.roundtable_id == roundtable_id,
            TopicVote.participant_id == participant_id,
        )
    )
    votes = [
        TopicVote(roundtable_id=roundtable_id, participant_id=participant_id, topic_id=topic_id)
        for topic_id in topic_ids
    ]
    db.add_all(votes)
    await db.flush()
    return votes


async def trainer_bookings(
    db: AsyncSession,
    trainer_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    include_cancelled: bool = False,
) -> list[Booking]:
    """Scheduled sessions of a trainer, optionally limited to ``[start, end]``."""

    stmt = (
        select(Session, Roundtable.name)
        .join(Roundtable, Roundtable.id == Session.roundtable_id)
        .where(Session.trainer_id == trainer_id, Session.scheduled_at.is_not(None))
    )
    if not include_cancelled:
        stmt = stmt.where(Session.status != SessionStatus.CANCELLED)
    if start is not None:
        stmt = stmt.where(Session.scheduled_at >= start)
    if end is not None:
        stmt = stmt.where(Session.scheduled_at <= end)
    result = await db.execute(stmt.order_by(Session.scheduled_at))
    return [
        Booking(
            session_id=session_obj.id,
            scheduled_at=session_obj.scheduled_at,
            roundtable_id=session_obj.roundtable_id,
            session_number=session_obj.session_number,
            label=f"{roundtable_name} #{session_obj.session_number}",
        )
        for session_obj, roundtable_name in result.all()
    ]


async def get_questions(db: AsyncSession, question_ids: Iterable[str]) -> list[Question]:
    ids = list(dict.fromkeys(question_ids))
    result = await db.execute(select(Question).where(Question.id.in_(ids)))
    questions = {question.id: question for question in result.scalars()}
    missing = [question_id for question_id in ids if question_id not in questions]
    if missing:
        raise NotFoundError("Question not found", question_ids=missing)
    return [questions[question_id] for question_id in ids]


async def purge_roundtables(db: AsyncSession, roundtable_ids: Sequence[str]) -> None:
    """Delete roundtables and everything they own, children first."""

    if not roundtable_ids:
        return
    session_ids = select(Session.id).where(Session.roundtable_id.in_(roundtable_ids))
    await db.execute(delete(Question).where(Question.session_id.in_(session_ids)))
    await db.execute(delete(TopicVote).where(TopicVote.roundtable_id.in_(roundtable_ids)))
    await db.execute(delete(Session).where(Session.roundtable_id.in_(roundtable_ids)))
    await db.execute(delete(Topic).where(Topic.roundtable_id.in_(roundtable_ids)))
    await db.execute(delete(Participant).where(Participant.roundtable_id.in_(roundtable_ids)))
    await db.execute(delete(Roundtable).where(Roundtable.id.in_(roundtable_ids)))


def normalise_email(email: str) -> str:
    return email.strip().lower()
