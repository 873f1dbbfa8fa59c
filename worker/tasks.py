from __future__ import annotations

import asyncio
from typing import Any

from celery import shared_task

from core.db import session_scope
from core.logging import logger
from core.models import Notification


async def _store_notification(kind: str, recipient: str, context: dict[str, Any]) -> int:
    async with session_scope() as db:
        notification = Notification(kind=kind, recipient=recipient, context=context)
        db.add(notification)
        await db.flush()
        notification_id = notification.id
    logger.bind(event="notification_queued", kind=kind, notification_id=notification_id).info(
        "Queued {} notification for {}", kind, recipient
    )
    return notification_id


@shared_task(name="worker.tasks.dispatch_notification")
def dispatch_notification(kind: str, recipient: str, context: dict[str, Any]) -> int:
    return asyncio.run(_store_notification(kind, recipient, context))
