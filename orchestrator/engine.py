from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings

from .dashboard import DashboardService
from .lifecycle import RoundtableLifecycle
from .notifications import CeleryNotifier, Notifier
from .questions import QuestionApprovalGate
from .scheduling import SessionScheduler
from .trainers import TrainerConflictResolver
from .voting import VotingEngine


@dataclass
class RoundtableEngine:
    lifecycle: RoundtableLifecycle
    voting: VotingEngine
    scheduler: SessionScheduler
    trainers: TrainerConflictResolver
    questions: QuestionApprovalGate
    dashboard: DashboardService


def build_engine(
    db: AsyncSession,
    settings: Settings | None = None,
    notifier: Notifier | None = None,
) -> RoundtableEngine:
    """Wire all components around one unit of work."""

    settings = settings or get_settings()
    notifier = notifier or CeleryNotifier()
    voting = VotingEngine(db, settings, notifier)
    trainers = TrainerConflictResolver(db, settings, notifier)
    scheduler = SessionScheduler(db, settings, notifier, trainers=trainers)
    return RoundtableEngine(
        lifecycle=RoundtableLifecycle(db, settings, notifier, voting=voting, scheduler=scheduler),
        voting=voting,
        scheduler=scheduler,
        trainers=trainers,
        questions=QuestionApprovalGate(db, settings, notifier),
        dashboard=DashboardService(db),
    )
