from __future__ import annotations

import asyncio

from celery import shared_task

from core.db import run_in_transaction
from orchestrator.engine import build_engine
from orchestrator.notifications import CeleryNotifier


async def _send_trainer_reminders() -> int:
    async def _work(db):
        engine = build_engine(db, notifier=CeleryNotifier())
        return await engine.scheduler.send_trainer_reminders()

    return await run_in_transaction(_work)


@shared_task(name="worker.jobs.send_trainer_reminders")
def send_trainer_reminders() -> int:
    return asyncio.run(_send_trainer_reminders())
