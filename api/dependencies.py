from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_session
from orchestrator.engine import RoundtableEngine, build_engine
from orchestrator.notifications import CeleryNotifier, Notifier

__all__ = ["get_engine", "get_notifier", "get_session"]


def get_notifier() -> Notifier:
    return CeleryNotifier()


async def get_engine(
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> RoundtableEngine:
    return build_engine(session, notifier=notifier)
