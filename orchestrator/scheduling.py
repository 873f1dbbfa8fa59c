from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core import services
from core.config import Settings, get_settings
from core.logging import logger
from core.models import Roundtable, Session, Topic, Trainer
from core.schemas import SessionRead
from roundtable.core import CLOSING_SESSION, INTRO_SESSION
from roundtable.exceptions import PreconditionFailedError
from roundtable.models import PreferredTime, ScheduleOptions
from roundtable.scheduler import plan_sessions
from roundtable.states import RoundtableStatus, SessionStatus, UPCOMING_SESSION_STATUSES, ensure_session_transition

from .notifications import CeleryNotifier, NotificationKind, Notifier, send_notification
from .schemas import CalendarEntry, ScheduleResult
from .trainers import TrainerConflictResolver

LIVE_ROUNDTABLE_STATUSES = (RoundtableStatus.SCHEDULED, RoundtableStatus.IN_PROGRESS)


class SessionScheduler:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        trainers: TrainerConflictResolver | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.notifier = notifier or CeleryNotifier()
        self.trainers = trainers or TrainerConflictResolver(db, self.settings, self.notifier)

    def default_preferred_time(self) -> PreferredTime:
        return PreferredTime(self.settings.default_session_hour, self.settings.default_session_minute)

    async def schedule(self, roundtable_id: str, options: ScheduleOptions) -> ScheduleResult:
        """Place all ten sessions on the calendar in one unit of work.

        Existing session rows are updated in place; their numbers never change.
        """

        roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        if roundtable.status != RoundtableStatus.SCHEDULED:
            raise PreconditionFailedError(
                "Topics must be finalized before scheduling sessions",
                roundtable_id=roundtable.id,
                status=roundtable.status.value,
            )
        topic_ids = [topic.id for topic in roundtable.topics if topic.is_selected]
        planned = plan_sessions(options, topic_ids)

        sessions = {session_obj.session_number: session_obj for session_obj in roundtable.sessions}
        for slot in planned:
            session_obj = sessions[slot.session_number]
            session_obj.scheduled_at = slot.scheduled_at
            session_obj.topic_id = slot.topic_id
            session_obj.description = slot.description

        roundtable.start_date = planned[0].scheduled_at
        roundtable.end_date = planned[-1].scheduled_at
        roundtable.session_duration = options.session_duration
        roundtable.session_frequency = options.frequency.value
        await self.db.flush()

        logger.bind(event="sessions_scheduled", roundtable_id=roundtable.id).info(
            "Scheduled roundtable {} from {} to {}", roundtable.id, roundtable.start_date, roundtable.end_date
        )
        return ScheduleResult(
            roundtable_id=roundtable.id,
            start_date=roundtable.start_date,
            end_date=roundtable.end_date,
            sessions=[SessionRead.model_validate(sessions[slot.session_number]) for slot in planned],
        )

    async def update_session_schedule(
        self,
        session_id: str,
        new_date: datetime,
        reason: str | None = None,
        skip_conflict_check: bool = False,
    ) -> Session:
        session_obj = await services.get_roundtable_session(self.db, session_id)
        roundtable = await services.get_roundtable(self.db, session_obj.roundtable_id, for_update=True)
        if roundtable.status not in LIVE_ROUNDTABLE_STATUSES:
            raise PreconditionFailedError(
                "Sessions can only be rescheduled once the roundtable is scheduled",
                roundtable_id=roundtable.id,
                status=roundtable.status.value,
            )
        if session_obj.status not in UPCOMING_SESSION_STATUSES:
            raise PreconditionFailedError(
                "Only upcoming sessions can be rescheduled",
                session_id=session_obj.id,
                status=session_obj.status.value,
            )
        if session_obj.trainer_id and not skip_conflict_check:
            await self.trainers.ensure_available(session_obj.trainer_id, new_date, session_obj.id)

        previous = session_obj.scheduled_at
        session_obj.scheduled_at = new_date
        if session_obj.session_number == INTRO_SESSION:
            roundtable.start_date = new_date
        elif session_obj.session_number == CLOSING_SESSION:
            roundtable.end_date = new_date
        await self.db.flush()

        logger.bind(event="session_rescheduled", session_id=session_obj.id).info(
            "Session {} moved from {} to {}", session_obj.id, previous, new_date
        )
        await self._notify_reschedule(roundtable, session_obj, previous, reason)
        return session_obj

    async def get_upcoming_sessions(self, days_ahead: int = 7, now: datetime | None = None) -> list[CalendarEntry]:
        now = now or datetime.now()
        entries = await self._calendar_entries(start=now, end=now + timedelta(days=days_ahead))
        return [entry for entry in entries if entry.status in UPCOMING_SESSION_STATUSES]

    async def get_calendar(
        self, roundtable_id: str | None = None, month: date | None = None
    ) -> dict[str, list[CalendarEntry]]:
        start = end = None
        if month is not None:
            start = datetime(month.year, month.month, 1)
            end = datetime(month.year + month.month // 12, month.month % 12 + 1, 1)
        entries = await self._calendar_entries(start=start, end=end, roundtable_id=roundtable_id, exclusive_end=True)
        calendar: dict[str, list[CalendarEntry]] = defaultdict(list)
        for entry in entries:
            calendar[entry.scheduled_at.date().isoformat()].append(entry)
        return dict(calendar)

    async def send_trainer_reminders(self, now: datetime | None = None) -> int:
        """Remind trainers of sessions one lead period ahead and mark them REMINDER_SENT."""

        now = now or datetime.now()
        start = now + timedelta(days=self.settings.trainer_reminder_lead_days)
        result = await self.db.execute(
            select(Session.id, Session.roundtable_id)
            .join(Roundtable, Roundtable.id == Session.roundtable_id)
            .where(
                Session.status == SessionStatus.SCHEDULED,
                Session.trainer_id.is_not(None),
                Session.scheduled_at >= start,
                Session.scheduled_at < start + timedelta(days=1),
                Roundtable.status.in_(LIVE_ROUNDTABLE_STATUSES),
            )
            .order_by(Session.scheduled_at)
        )
        sent = 0
        for session_id, roundtable_id in result.all():
            roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
            session_obj = await services.get_roundtable_session(self.db, session_id)
            trainer = await services.get_trainer(self.db, session_obj.trainer_id)
            delivered = send_notification(
                self.notifier,
                NotificationKind.TRAINER_REMINDER,
                trainer.email,
                {
                    "trainer_name": trainer.name,
                    "roundtable_id": roundtable.id,
                    "roundtable_name": roundtable.name,
                    "session_id": session_obj.id,
                    "session_number": session_obj.session_number,
                    "scheduled_at": session_obj.scheduled_at.isoformat(),
                    "questions_status": session_obj.questions_status.value,
                },
            )
            if delivered:
                session_obj.status = ensure_session_transition(session_obj.status, SessionStatus.REMINDER_SENT)
                sent += 1
        await self.db.flush()
        logger.bind(event="trainer_reminders").info("Sent {} trainer reminders", sent)
        return sent

    async def _calendar_entries(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        roundtable_id: str | None = None,
        exclusive_end: bool = False,
    ) -> list[CalendarEntry]:
        stmt = (
            select(Session, Roundtable.name, Topic.title, Trainer.name)
            .join(Roundtable, Roundtable.id == Session.roundtable_id)
            .outerjoin(Topic, Topic.id == Session.topic_id)
            .outerjoin(Trainer, Trainer.id == Session.trainer_id)
            .where(
                Session.scheduled_at.is_not(None),
                Session.status != SessionStatus.CANCELLED,
                Roundtable.status.in_(LIVE_ROUNDTABLE_STATUSES),
            )
        )
        if roundtable_id is not None:
            stmt = stmt.where(Session.roundtable_id == roundtable_id)
        if start is not None:
            stmt = stmt.where(Session.scheduled_at >= start)
        if end is not None:
            stmt = stmt.where(Session.scheduled_at < end if exclusive_end else Session.scheduled_at <= end)
        result = await self.db.execute(stmt.order_by(Session.scheduled_at, Session.session_number))
        return [
            CalendarEntry(
                session_id=session_obj.id,
                roundtable_id=session_obj.roundtable_id,
                roundtable_name=roundtable_name,
                session_number=session_obj.session_number,
                scheduled_at=session_obj.scheduled_at,
                status=session_obj.status,
                topic_title=topic_title,
                trainer_name=trainer_name,
            )
            for session_obj, roundtable_name, topic_title, trainer_name in result.all()
        ]

    async def _notify_reschedule(
        self,
        roundtable: Roundtable,
        session_obj: Session,
        previous: datetime | None,
        reason: str | None,
    ) -> None:
        context = {
            "roundtable_id": roundtable.id,
            "roundtable_name": roundtable.name,
            "session_id": session_obj.id,
            "session_number": session_obj.session_number,
            "previous_date": previous.isoformat() if previous else None,
            "new_date": session_obj.scheduled_at.isoformat(),
            "reason": reason,
        }
        recipients = [p.email for p in await services.list_active_participants(self.db, roundtable.id)]
        if session_obj.trainer_id:
            trainer = await services.get_trainer(self.db, session_obj.trainer_id)
            recipients.append(trainer.email)
        for recipient in recipients:
            send_notification(self.notifier, NotificationKind.SESSION_RESCHEDULE, recipient, context)
