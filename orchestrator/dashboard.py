from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import Participant, Roundtable, Session
from roundtable.states import (
    ACTIVE_ROUNDTABLE_STATUSES,
    ParticipantStatus,
    QuestionsStatus,
    UPCOMING_SESSION_STATUSES,
    calculate_progress,
)

from .schemas import DashboardRead, RoundtableProgress


class DashboardService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def overview(self, days_ahead: int = 7, now: datetime | None = None) -> DashboardRead:
        now = now or datetime.now()
        result = await self.db.execute(select(Roundtable).order_by(Roundtable.created_at))
        roundtables = list(result.scalars())
        active_ids = [rt.id for rt in roundtables if rt.status in ACTIVE_ROUNDTABLE_STATUSES]

        active_participants = 0
        upcoming = 0
        if active_ids:
            active_participants = await self.db.scalar(
                select(func.count(Participant.id)).where(
                    Participant.roundtable_id.in_(active_ids),
                    Participant.status == ParticipantStatus.ACTIVE,
                )
            )
            upcoming = await self.db.scalar(
                select(func.count(Session.id)).where(
                    Session.roundtable_id.in_(active_ids),
                    Session.status.in_(UPCOMING_SESSION_STATUSES),
                    Session.scheduled_at >= now,
                    Session.scheduled_at <= now + timedelta(days=days_ahead),
                )
            )
        pending_reviews = await self.db.scalar(
            select(func.count(Session.id)).where(Session.questions_status == QuestionsStatus.PENDING_APPROVAL)
        )

        return DashboardRead(
            total_roundtables=len(roundtables),
            active_roundtables=len(active_ids),
            active_participants=active_participants or 0,
            upcoming_sessions=upcoming or 0,
            pending_question_reviews=pending_reviews or 0,
            roundtables=[
                RoundtableProgress(
                    roundtable_id=rt.id,
                    name=rt.name,
                    status=rt.status,
                    progress=calculate_progress([s.status for s in rt.sessions]),
                )
                for rt in roundtables
            ],
        )
