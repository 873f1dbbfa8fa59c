"""Time-window arithmetic for trainer double-booking checks."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List

from .models import Booking

# Assumed 60-minute session plus a 30-minute transition buffer, boundary
# included.  It does not follow the roundtable's configured session duration.
TRAINER_CONFLICT_WINDOW = timedelta(minutes=90)


def overlaps(first: datetime, second: datetime, window: timedelta = TRAINER_CONFLICT_WINDOW) -> bool:
    """True when two start times are at most ``window`` apart.

    Starts exactly ``window`` apart still collide.
    """

    return abs(first - second) <= window


def find_conflicts(
    candidate: datetime,
    bookings: Iterable[Booking],
    *,
    exclude_session_id: str | None = None,
    window: timedelta = TRAINER_CONFLICT_WINDOW,
) -> List[Booking]:
    conflicts = [
        booking
        for booking in bookings
        if booking.session_id != exclude_session_id and overlaps(candidate, booking.scheduled_at, window)
    ]
    return sorted(conflicts, key=lambda booking: booking.scheduled_at)


def window_bounds(candidate: datetime, window: timedelta = TRAINER_CONFLICT_WINDOW) -> tuple[datetime, datetime]:
    """Closed interval a storage query must cover to find every conflict."""

    return candidate - window, candidate + window
