from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "roundtable_engine",
    broker=settings.redis_url,
    include=["worker.tasks", "worker.jobs"],
)

celery_app.conf.task_ignore_result = True
celery_app.conf.beat_schedule = {
    "trainer-reminders": {
        "task": "worker.jobs.send_trainer_reminders",
        "schedule": crontab(hour=9, minute=0),
    },
}
