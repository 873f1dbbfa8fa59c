from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from core import services
from core.config import Settings, get_settings
from core.logging import logger
from core.models import Session, Trainer
from roundtable.conflicts import find_conflicts, window_bounds
from roundtable.core import TOPIC_SESSIONS
from roundtable.exceptions import PreconditionFailedError, TrainerConflictError
from roundtable.models import Booking
from roundtable.states import FINISHED_SESSION_STATUSES, TERMINAL_ROUNDTABLE_STATUSES, UPCOMING_SESSION_STATUSES

from .notifications import CeleryNotifier, NotificationKind, Notifier, send_notification
from .schemas import AssignmentResult, AutoAssignResult, ConflictReport, SkippedAssignment, Workload


class TrainerConflictResolver:
    """Detects double-bookings and attaches trainers to sessions.

    Conflicts can be reported (``check``/``find_conflicts``) or enforced
    (``assign_trainer`` raises ``TrainerConflictError`` unless told to skip
    the check).
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.notifier = notifier or CeleryNotifier()
        self.window = timedelta(minutes=self.settings.trainer_conflict_window_minutes)

    async def find_conflicts(
        self,
        trainer_id: str,
        candidate_time: datetime,
        exclude_session_id: str | None = None,
    ) -> list[Booking]:
        await services.get_trainer(self.db, trainer_id)
        start, end = window_bounds(candidate_time, self.window)
        bookings = await services.trainer_bookings(self.db, trainer_id, start, end)
        return find_conflicts(
            candidate_time,
            bookings,
            exclude_session_id=exclude_session_id,
            window=self.window,
        )

    async def has_conflict(
        self,
        trainer_id: str,
        candidate_time: datetime,
        exclude_session_id: str | None = None,
    ) -> bool:
        return bool(await self.find_conflicts(trainer_id, candidate_time, exclude_session_id))

    async def check(
        self,
        trainer_id: str,
        candidate_time: datetime,
        exclude_session_id: str | None = None,
    ) -> ConflictReport:
        conflicts = await self.find_conflicts(trainer_id, candidate_time, exclude_session_id)
        return ConflictReport(
            trainer_id=trainer_id,
            scheduled_at=candidate_time,
            has_conflict=bool(conflicts),
            conflicts=[booking.as_dict() for booking in conflicts],
        )

    async def ensure_available(
        self,
        trainer_id: str,
        candidate_time: datetime,
        exclude_session_id: str | None = None,
    ) -> None:
        conflicts = await self.find_conflicts(trainer_id, candidate_time, exclude_session_id)
        if conflicts:
            logger.bind(event="trainer_conflict", trainer_id=trainer_id).warning(
                "Trainer {} has {} conflicting sessions at {}", trainer_id, len(conflicts), candidate_time
            )
            raise TrainerConflictError(
                "Trainer has conflicting sessions at this time",
                conflicts=[booking.as_dict() for booking in conflicts],
                trainer_id=trainer_id,
                scheduled_at=candidate_time.isoformat(timespec="minutes"),
            )

    async def assign_trainer(
        self,
        session_id: str,
        trainer_id: str,
        skip_conflict_check: bool = False,
    ) -> AssignmentResult:
        session_obj = await services.get_roundtable_session(self.db, session_id)
        roundtable = await services.get_roundtable(self.db, session_obj.roundtable_id, for_update=True)
        if roundtable.status in TERMINAL_ROUNDTABLE_STATUSES:
            raise PreconditionFailedError(
                "Cannot assign trainers to a finished roundtable",
                roundtable_id=roundtable.id,
                status=roundtable.status.value,
            )
        trainer = await self._active_trainer(trainer_id)

        overridden: list[dict] = []
        if session_obj.scheduled_at is not None:
            if skip_conflict_check:
                conflicts = await self.find_conflicts(trainer.id, session_obj.scheduled_at, session_obj.id)
                overridden = [booking.as_dict() for booking in conflicts]
            else:
                await self.ensure_available(trainer.id, session_obj.scheduled_at, session_obj.id)

        await self._attach(session_obj, trainer, roundtable.name)
        return AssignmentResult(
            session_id=session_obj.id,
            session_number=session_obj.session_number,
            trainer_id=trainer.id,
            overridden_conflicts=overridden,
        )

    async def auto_assign_trainers(self, roundtable_id: str) -> AutoAssignResult:
        """Round-robin the active trainers over unassigned topic sessions."""

        roundtable = await services.get_roundtable(self.db, roundtable_id, for_update=True)
        if roundtable.status in TERMINAL_ROUNDTABLE_STATUSES:
            raise PreconditionFailedError(
                "Cannot assign trainers to a finished roundtable",
                roundtable_id=roundtable.id,
                status=roundtable.status.value,
            )
        trainers = await services.list_active_trainers(self.db)
        if not trainers:
            raise PreconditionFailedError("No active trainers available")

        result = AutoAssignResult(roundtable_id=roundtable.id)
        candidates = [
            session_obj
            for session_obj in roundtable.sessions
            if session_obj.session_number in TOPIC_SESSIONS and session_obj.trainer_id is None
        ]
        for index, session_obj in enumerate(candidates):
            trainer = trainers[index % len(trainers)]
            if session_obj.scheduled_at is not None:
                conflicts = await self.find_conflicts(trainer.id, session_obj.scheduled_at, session_obj.id)
                if conflicts:
                    result.skipped.append(
                        SkippedAssignment(
                            session_id=session_obj.id,
                            session_number=session_obj.session_number,
                            trainer_id=trainer.id,
                            conflicts=[booking.as_dict() for booking in conflicts],
                        )
                    )
                    continue
            await self._attach(session_obj, trainer, roundtable.name)
            result.assigned.append(
                AssignmentResult(
                    session_id=session_obj.id,
                    session_number=session_obj.session_number,
                    trainer_id=trainer.id,
                )
            )
        logger.bind(event="trainers_auto_assigned", roundtable_id=roundtable.id).info(
            "Auto-assigned {} sessions, skipped {}", len(result.assigned), len(result.skipped)
        )
        return result

    async def get_workload(
        self,
        trainer_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
    ) -> Workload:
        await services.get_trainer(self.db, trainer_id)
        now = now or datetime.now()
        bookings = await services.trainer_bookings(self.db, trainer_id, start, end)
        sessions = [await services.get_roundtable_session(self.db, b.session_id) for b in bookings]
        upcoming = sum(
            1 for s in sessions if s.status in UPCOMING_SESSION_STATUSES and s.scheduled_at >= now
        )
        completed = sum(1 for s in sessions if s.status in FINISHED_SESSION_STATUSES)
        return Workload(
            trainer_id=trainer_id,
            total_sessions=len(bookings),
            upcoming_sessions=upcoming,
            completed_sessions=completed,
            sessions=[
                {**booking.as_dict(), "status": session_obj.status.value}
                for booking, session_obj in zip(bookings, sessions)
            ],
        )

    async def _active_trainer(self, trainer_id: str) -> Trainer:
        trainer = await services.get_trainer(self.db, trainer_id)
        if not trainer.is_active:
            raise PreconditionFailedError("Trainer is not active", trainer_id=trainer_id)
        return trainer

    async def _attach(self, session_obj: Session, trainer: Trainer, roundtable_name: str) -> None:
        session_obj.trainer_id = trainer.id
        await self.db.flush()
        logger.bind(event="trainer_assigned", session_id=session_obj.id, trainer_id=trainer.id).info(
            "Trainer {} assigned to session {}", trainer.id, session_obj.id
        )
        send_notification(
            self.notifier,
            NotificationKind.TRAINER_ASSIGNMENT,
            trainer.email,
            {
                "trainer_name": trainer.name,
                "roundtable_id": session_obj.roundtable_id,
                "roundtable_name": roundtable_name,
                "session_id": session_obj.id,
                "session_number": session_obj.session_number,
                "scheduled_at": session_obj.scheduled_at.isoformat() if session_obj.scheduled_at else None,
            },
        )
