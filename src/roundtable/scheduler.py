"""Generation of the ten-session calendar for a roundtable."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import List, Sequence

from .core import CLOSING_SESSION, INTRO_SESSION, SESSION_COUNT, TOPIC_SESSIONS
from .exceptions import InvalidScheduleError
from .models import PlannedSession, ScheduleOptions, SessionFrequency

SATURDAY = 5


def is_weekend(moment: date) -> bool:
    return moment.weekday() >= SATURDAY


def adjust_for_weekends(moment: datetime, skip_weekends: bool = True) -> datetime:
    """Push ``moment`` forward day by day until it lands on a weekday."""

    if not skip_weekends:
        return moment
    while is_weekend(moment):
        moment += timedelta(days=1)
    return moment


def session_week_offset(session_number: int, frequency: SessionFrequency) -> int:
    """Weeks between session 1 and ``session_number``."""

    if not INTRO_SESSION <= session_number <= SESSION_COUNT:
        raise InvalidScheduleError("Session number out of range.", session_number=session_number)
    return (session_number - 1) * SessionFrequency(frequency).weeks_between_sessions


def first_session_at(options: ScheduleOptions) -> datetime:
    start = options.start_date
    if isinstance(start, datetime):
        start = start.date()
    moment = datetime.combine(start, time(options.preferred_time.hour, options.preferred_time.minute))
    return adjust_for_weekends(moment, options.skip_weekends)


def plan_sessions(options: ScheduleOptions, topic_ids: Sequence[str]) -> List[PlannedSession]:
    """Return the ten planned sessions for ``options``.

    Weekly offsets are measured from the (weekend-adjusted) first session, and
    each later date is adjusted independently, so a moved date never shifts
    its successors.  Finalised topics are assigned cyclically to sessions 2-9
    in the order given.
    """

    if not topic_ids:
        raise InvalidScheduleError("No topics selected. Complete topic voting first.")

    anchor = first_session_at(options)
    planned: List[PlannedSession] = []
    for number in range(INTRO_SESSION, SESSION_COUNT + 1):
        offset = timedelta(weeks=session_week_offset(number, options.frequency))
        scheduled_at = adjust_for_weekends(anchor + offset, options.skip_weekends)
        topic_id: str | None = None
        if number == INTRO_SESSION:
            description = "Roundtable introduction"
        elif number == CLOSING_SESSION:
            description = "Roundtable conclusion"
        else:
            topic_id = topic_ids[(number - TOPIC_SESSIONS[0]) % len(topic_ids)]
            description = f"Topic discussion {number - INTRO_SESSION}"
        planned.append(
            PlannedSession(
                session_number=number,
                scheduled_at=scheduled_at,
                topic_id=topic_id,
                description=description,
            )
        )
    return planned
