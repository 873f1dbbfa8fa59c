"""Value objects exchanged between the scheduling, voting and conflict helpers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from .exceptions import InvalidScheduleError


class SessionFrequency(str, enum.Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"

    @property
    def weeks_between_sessions(self) -> int:
        return 2 if self is SessionFrequency.BI_WEEKLY else 1


@dataclass(slots=True, frozen=True)
class PreferredTime:
    """Wall-clock time of day at which sessions start."""

    hour: int = 14
    minute: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            raise InvalidScheduleError("Preferred hour must be between 0 and 23.", hour=self.hour)
        if not 0 <= self.minute <= 59:
            raise InvalidScheduleError("Preferred minute must be between 0 and 59.", minute=self.minute)


@dataclass(slots=True, frozen=True)
class ScheduleOptions:
    start_date: date
    session_duration: int = 60
    frequency: SessionFrequency = SessionFrequency.WEEKLY
    skip_weekends: bool = True
    preferred_time: PreferredTime = field(default_factory=PreferredTime)

    def __post_init__(self) -> None:
        if self.session_duration <= 0:
            raise InvalidScheduleError(
                "Session duration must be positive.", session_duration=self.session_duration
            )
        object.__setattr__(self, "frequency", SessionFrequency(self.frequency))


@dataclass(slots=True, frozen=True)
class PlannedSession:
    """One generated calendar slot."""

    session_number: int
    scheduled_at: datetime
    topic_id: str | None
    description: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "session_number": self.session_number,
            "scheduled_at": self.scheduled_at.isoformat(timespec="minutes"),
            "topic_id": self.topic_id,
            "description": self.description,
        }


@dataclass(slots=True, frozen=True)
class TopicTally:
    """Vote tally of one candidate topic."""

    topic_id: str
    title: str
    position: int
    vote_count: int
    percentage: int = 0
    is_selected: bool = False


@dataclass(slots=True, frozen=True)
class Booking:
    """A trainer's existing commitment used for overlap checks."""

    session_id: str
    scheduled_at: datetime
    roundtable_id: str | None = None
    session_number: int | None = None
    label: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "roundtable_id": self.roundtable_id,
            "session_number": self.session_number,
            "scheduled_at": self.scheduled_at.isoformat(timespec="minutes"),
            "label": self.label,
        }
