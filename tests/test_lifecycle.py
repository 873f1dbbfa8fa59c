from __future__ import annotations

import pytest
from sqlalchemy import select

from core.config import get_settings
from core.models import Client, Roundtable, Topic
from orchestrator.engine import build_engine
from orchestrator.notifications import NotificationKind
from roundtable.exceptions import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
)
from roundtable.states import RoundtableStatus, SessionStatus
from tests.factories import topic_drafts

settings = get_settings()


@pytest.mark.asyncio
async def test_create_roundtable_builds_topics_and_sessions(make_roundtable) -> None:
    roundtable = await make_roundtable()

    assert roundtable.status == RoundtableStatus.SETUP
    assert [topic.position for topic in roundtable.topics] == list(range(10))
    assert [session.session_number for session in roundtable.sessions] == list(range(1, 11))
    assert all(session.scheduled_at is None for session in roundtable.sessions)
    assert roundtable.questions_min == settings.questions_min_default
    assert roundtable.questions_max == settings.questions_max_default


@pytest.mark.asyncio
async def test_create_roundtable_requires_ten_topics(engine) -> None:
    client = await engine.lifecycle.create_client("Acme")
    with pytest.raises(InvalidInputError):
        await engine.lifecycle.create_roundtable(client.id, "Short", topic_drafts(9), 10)
    with pytest.raises(NotFoundError):
        await engine.lifecycle.create_roundtable("missing", "Orphan", topic_drafts(), 10)


@pytest.mark.asyncio
async def test_participants_are_unique_and_bounded(engine, make_roundtable) -> None:
    roundtable = await make_roundtable(participants=2, max_participants=2)

    with pytest.raises(InvalidInputError):
        await engine.lifecycle.add_participant(roundtable.id, "Again", "PERSON0@example.com")
    with pytest.raises(PreconditionFailedError, match="full"):
        await engine.lifecycle.add_participant(roundtable.id, "Late", "late@example.com")


@pytest.mark.asyncio
async def test_open_voting_needs_an_active_participant(engine, make_roundtable, notifier) -> None:
    roundtable = await make_roundtable()

    with pytest.raises(PreconditionFailedError, match="without participants"):
        await engine.lifecycle.open_voting(roundtable.id)
    assert roundtable.status == RoundtableStatus.SETUP

    await engine.lifecycle.add_participant(roundtable.id, "Ada", "ada@example.com")
    result = await engine.lifecycle.open_voting(roundtable.id)

    assert result.status == RoundtableStatus.TOPIC_VOTING
    assert result.participant_count == 1
    assert result.voting_url == settings.voting_url(roundtable.id)
    invites = notifier.of_kind(NotificationKind.VOTING_INVITE)
    assert [invite.recipient for invite in invites] == ["ada@example.com"]
    assert invites[0].context["voting_url"].startswith(result.voting_url + "?token=")


@pytest.mark.asyncio
async def test_open_voting_twice_is_rejected(engine, make_roundtable) -> None:
    roundtable = await make_roundtable(participants=1)
    await engine.lifecycle.open_voting(roundtable.id)

    with pytest.raises(PreconditionFailedError):
        await engine.lifecycle.open_voting(roundtable.id)


@pytest.mark.asyncio
async def test_dropped_participants_do_not_open_voting(engine, make_roundtable) -> None:
    roundtable = await make_roundtable(participants=1)
    participant = (await engine.voting.get_progress(roundtable.id)).pending[0]
    await engine.lifecycle.drop_participant(roundtable.id, participant.participant_id)

    with pytest.raises(PreconditionFailedError):
        await engine.lifecycle.open_voting(roundtable.id)


@pytest.mark.asyncio
async def test_finalize_selects_eight_topics(engine, make_roundtable, db_session) -> None:
    roundtable = await make_roundtable(participants=4)
    await engine.lifecycle.open_voting(roundtable.id)
    topic_ids = [topic.id for topic in roundtable.topics]
    selections = [
        topic_ids[:8],
        topic_ids[1:9],
        topic_ids[:7] + [topic_ids[9]],
        topic_ids[:6] + topic_ids[8:],
    ]
    for index, picks in enumerate(selections):
        await engine.voting.submit_votes(roundtable.id, f"person{index}@example.com", picks)

    result = await engine.lifecycle.finalize_voting(roundtable.id)

    assert result.status == RoundtableStatus.SCHEDULED
    assert len(result.selected) == 8
    assert len(result.rejected) == 2
    assert result.quorum_reached is True
    # 1-5 have four votes, 0 and 6 three; 7, 8 and 9 tie on two and position decides.
    assert [topic.topic_id for topic in result.selected] == topic_ids[1:6] + [topic_ids[0], topic_ids[6], topic_ids[7]]
    assert [topic.topic_id for topic in result.rejected] == topic_ids[8:]
    stored = await db_session.execute(select(Topic).where(Topic.roundtable_id == roundtable.id))
    flags = [topic.is_selected for topic in stored.scalars()]
    assert flags.count(True) == 8
    assert flags.count(False) == 2


@pytest.mark.asyncio
async def test_finalize_twice_is_rejected(engine, make_roundtable) -> None:
    roundtable = await make_roundtable(participants=1)
    await engine.lifecycle.open_voting(roundtable.id)
    await engine.lifecycle.finalize_voting(roundtable.id)

    with pytest.raises(InvalidStateError):
        await engine.lifecycle.finalize_voting(roundtable.id)


@pytest.mark.asyncio
async def test_finalize_below_quorum_is_advisory(engine, make_roundtable) -> None:
    roundtable = await make_roundtable(participants=5)
    await engine.lifecycle.open_voting(roundtable.id)

    result = await engine.lifecycle.finalize_voting(roundtable.id)

    assert result.quorum_reached is False
    assert result.status == RoundtableStatus.SCHEDULED


@pytest.mark.asyncio
async def test_enforced_quorum_blocks_finalize(db_session, notifier, make_roundtable) -> None:
    strict = build_engine(db_session, settings.model_copy(update={"enforce_voting_quorum": True}), notifier)
    roundtable = await make_roundtable(participants=5)
    await strict.lifecycle.open_voting(roundtable.id)

    with pytest.raises(PreconditionFailedError, match="quorum"):
        await strict.lifecycle.finalize_voting(roundtable.id)


@pytest.mark.asyncio
async def test_cancel_is_terminal(engine, make_roundtable) -> None:
    roundtable = await make_roundtable()

    cancelled = await engine.lifecycle.cancel(roundtable.id, reason="client request")

    assert cancelled.status == RoundtableStatus.CANCELLED
    assert all(session.status == SessionStatus.CANCELLED for session in cancelled.sessions)
    with pytest.raises(InvalidStateError):
        await engine.lifecycle.cancel(roundtable.id)
    with pytest.raises(PreconditionFailedError):
        await engine.lifecycle.add_participant(roundtable.id, "Late", "late@example.com")


@pytest.mark.asyncio
async def test_start_requires_a_schedule(engine, make_roundtable, make_scheduled_roundtable) -> None:
    voting = await make_roundtable(participants=1)
    await engine.lifecycle.open_voting(voting.id)
    with pytest.raises(InvalidStateError):
        await engine.lifecycle.start(voting.id)

    roundtable = await make_scheduled_roundtable()
    started = await engine.lifecycle.start(roundtable.id)
    assert started.status == RoundtableStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_session_updates_drive_roundtable_status(engine, make_scheduled_roundtable) -> None:
    roundtable = await make_scheduled_roundtable()
    sessions = list(roundtable.sessions)

    await engine.lifecycle.update_session_status(sessions[0].id, SessionStatus.IN_PROGRESS)
    assert roundtable.status == RoundtableStatus.IN_PROGRESS

    await engine.lifecycle.update_session_status(sessions[0].id, SessionStatus.COMPLETED)
    await engine.lifecycle.update_session_status(sessions[1].id, SessionStatus.COMPLETED)
    await engine.lifecycle.update_session_status(sessions[1].id, SessionStatus.FEEDBACK_SENT)
    await engine.lifecycle.update_session_status(sessions[2].id, SessionStatus.COMPLETED)
    assert await engine.lifecycle.calculate_progress(roundtable.id) == 30

    for session in sessions[3:]:
        await engine.lifecycle.update_session_status(session.id, SessionStatus.COMPLETED)

    assert roundtable.status == RoundtableStatus.COMPLETED
    assert await engine.lifecycle.calculate_progress(roundtable.id) == 100
    with pytest.raises(InvalidStateError):
        await engine.lifecycle.cancel(roundtable.id)


@pytest.mark.asyncio
async def test_completing_every_session_from_scheduled_passes_through_in_progress(
    engine, make_scheduled_roundtable
) -> None:
    roundtable = await make_scheduled_roundtable()
    for session in roundtable.sessions:
        await engine.lifecycle.update_session_status(session.id, SessionStatus.COMPLETED)

    assert roundtable.status == RoundtableStatus.COMPLETED


@pytest.mark.asyncio
async def test_illegal_session_transition(engine, make_scheduled_roundtable) -> None:
    roundtable = await make_scheduled_roundtable()
    session = roundtable.sessions[0]

    with pytest.raises(InvalidStateError):
        await engine.lifecycle.update_session_status(session.id, SessionStatus.FEEDBACK_SENT)


@pytest.mark.asyncio
async def test_client_with_active_roundtable_cannot_be_deleted(engine, make_roundtable, db_session) -> None:
    roundtable = await make_roundtable(participants=1)

    with pytest.raises(PreconditionFailedError):
        await engine.lifecycle.delete_client(roundtable.client_id)

    await engine.lifecycle.cancel(roundtable.id)
    await engine.lifecycle.delete_client(roundtable.client_id)

    assert await db_session.get(Client, roundtable.client_id) is None
    remaining = await db_session.execute(select(Roundtable.id).where(Roundtable.id == roundtable.id))
    assert remaining.scalar_one_or_none() is None
