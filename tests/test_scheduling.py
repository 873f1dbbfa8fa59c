from __future__ import annotations

from datetime import date, datetime

import pytest

from orchestrator.notifications import NotificationKind
from roundtable.exceptions import PreconditionFailedError
from roundtable.models import PreferredTime, ScheduleOptions, SessionFrequency
from roundtable.states import RoundtableStatus, SessionStatus


async def finalized_roundtable(engine, make_roundtable):
    roundtable = await make_roundtable(participants=1)
    await engine.lifecycle.open_voting(roundtable.id)
    topic_ids = [topic.id for topic in roundtable.topics]
    await engine.voting.submit_votes(roundtable.id, "person0@example.com", topic_ids[2:])
    await engine.lifecycle.finalize_voting(roundtable.id)
    return roundtable, topic_ids


@pytest.mark.asyncio
async def test_schedule_updates_the_ten_existing_sessions(engine, make_roundtable) -> None:
    roundtable, topic_ids = await finalized_roundtable(engine, make_roundtable)
    session_ids = [session.id for session in roundtable.sessions]

    result = await engine.lifecycle.schedule_sessions(roundtable.id, ScheduleOptions(start_date=date(2025, 3, 3)))

    assert [session.id for session in result.sessions] == session_ids
    assert result.start_date == datetime(2025, 3, 3, 14, 0)
    assert result.end_date == datetime(2025, 5, 5, 14, 0)
    assert roundtable.start_date == result.start_date
    assert roundtable.end_date == result.end_date
    assert roundtable.status == RoundtableStatus.SCHEDULED
    assert result.sessions[0].topic_id is None
    assert result.sessions[-1].topic_id is None
    assert [session.topic_id for session in result.sessions[1:9]] == topic_ids[2:]
    assert all(session.status == SessionStatus.SCHEDULED for session in result.sessions)


@pytest.mark.asyncio
async def test_schedule_honours_frequency_and_time(engine, make_roundtable) -> None:
    roundtable, _ = await finalized_roundtable(engine, make_roundtable)
    options = ScheduleOptions(
        start_date=date(2025, 3, 1),
        frequency=SessionFrequency.BI_WEEKLY,
        preferred_time=PreferredTime(9, 30),
        session_duration=90,
    )

    result = await engine.lifecycle.schedule_sessions(roundtable.id, options)

    # Saturday start moves to Monday; later dates follow the adjusted first session.
    assert result.start_date == datetime(2025, 3, 3, 9, 30)
    assert result.sessions[1].scheduled_at == datetime(2025, 3, 17, 9, 30)
    assert result.end_date == datetime(2025, 7, 7, 9, 30)
    assert roundtable.session_duration == 90
    assert roundtable.session_frequency == "bi-weekly"
    assert all(session.scheduled_at.weekday() < 5 for session in result.sessions)


@pytest.mark.asyncio
async def test_schedule_requires_finalized_topics(engine, make_roundtable) -> None:
    roundtable = await make_roundtable(participants=1)
    await engine.lifecycle.open_voting(roundtable.id)

    with pytest.raises(PreconditionFailedError, match="finalized"):
        await engine.lifecycle.schedule_sessions(roundtable.id, ScheduleOptions(start_date=date(2025, 3, 3)))
    assert all(session.scheduled_at is None for session in roundtable.sessions)


@pytest.mark.asyncio
async def test_rescheduling_a_session_notifies_participants(
    engine, make_scheduled_roundtable, make_trainer, notifier
) -> None:
    roundtable = await make_scheduled_roundtable()
    trainer = await make_trainer("Grace Hopper")
    session = roundtable.sessions[1]
    await engine.trainers.assign_trainer(session.id, trainer.id)
    notifier.clear()

    moved = await engine.scheduler.update_session_schedule(session.id, datetime(2025, 3, 12, 10, 0), reason="holiday")

    assert moved.scheduled_at == datetime(2025, 3, 12, 10, 0)
    assert moved.session_number == 2
    sent = notifier.of_kind(NotificationKind.SESSION_RESCHEDULE)
    assert sorted(item.recipient for item in sent) == ["grace.hopper@example.com", "person0@example.com"]
    assert sent[0].context["previous_date"] == "2025-03-10T14:00:00"
    assert sent[0].context["reason"] == "holiday"


@pytest.mark.asyncio
async def test_moving_the_first_session_moves_the_start_date(engine, make_scheduled_roundtable) -> None:
    roundtable = await make_scheduled_roundtable()

    await engine.scheduler.update_session_schedule(roundtable.sessions[0].id, datetime(2025, 3, 4, 14, 0))

    assert roundtable.start_date == datetime(2025, 3, 4, 14, 0)


@pytest.mark.asyncio
async def test_finished_sessions_cannot_be_rescheduled(engine, make_scheduled_roundtable) -> None:
    roundtable = await make_scheduled_roundtable()
    session = roundtable.sessions[0]
    await engine.lifecycle.update_session_status(session.id, SessionStatus.COMPLETED)

    with pytest.raises(PreconditionFailedError, match="upcoming"):
        await engine.scheduler.update_session_schedule(session.id, datetime(2025, 3, 4, 14, 0))


@pytest.mark.asyncio
async def test_upcoming_sessions_window(engine, make_scheduled_roundtable) -> None:
    roundtable = await make_scheduled_roundtable()

    upcoming = await engine.scheduler.get_upcoming_sessions(days_ahead=14, now=datetime(2025, 3, 2))

    assert [entry.session_number for entry in upcoming] == [1, 2]
    assert upcoming[0].roundtable_name == roundtable.name
    assert upcoming[0].topic_title is None
    assert upcoming[1].topic_title == roundtable.topics[0].title
    assert await engine.scheduler.get_upcoming_sessions(days_ahead=7, now=datetime(2026, 1, 1)) == []


@pytest.mark.asyncio
async def test_calendar_groups_sessions_by_day(engine, make_scheduled_roundtable) -> None:
    roundtable = await make_scheduled_roundtable()

    march = await engine.scheduler.get_calendar(roundtable.id, month=date(2025, 3, 1))
    everything = await engine.scheduler.get_calendar(roundtable.id)

    assert list(march) == ["2025-03-03", "2025-03-10", "2025-03-17", "2025-03-24", "2025-03-31"]
    assert sum(len(entries) for entries in everything.values()) == 10
    assert everything["2025-05-05"][0].session_number == 10


@pytest.mark.asyncio
async def test_cancelled_roundtables_leave_the_calendar(engine, make_scheduled_roundtable) -> None:
    roundtable = await make_scheduled_roundtable()
    await engine.lifecycle.cancel(roundtable.id, reason="client request")

    assert await engine.scheduler.get_calendar(roundtable.id) == {}


@pytest.mark.asyncio
async def test_trainer_reminders_go_out_one_week_ahead(
    engine, make_scheduled_roundtable, make_trainer, notifier
) -> None:
    roundtable = await make_scheduled_roundtable()
    trainer = await make_trainer("Ada Lovelace")
    await engine.trainers.assign_trainer(roundtable.sessions[1].id, trainer.id)
    await engine.trainers.assign_trainer(roundtable.sessions[2].id, trainer.id)
    notifier.clear()

    sent = await engine.scheduler.send_trainer_reminders(now=datetime(2025, 3, 3, 9, 0))

    assert sent == 1
    assert roundtable.sessions[1].status == SessionStatus.REMINDER_SENT
    assert roundtable.sessions[2].status == SessionStatus.SCHEDULED
    reminders = notifier.of_kind(NotificationKind.TRAINER_REMINDER)
    assert [item.recipient for item in reminders] == ["ada.lovelace@example.com"]
    assert reminders[0].context["session_number"] == 2
    assert await engine.scheduler.send_trainer_reminders(now=datetime(2025, 3, 3, 9, 0)) == 0
