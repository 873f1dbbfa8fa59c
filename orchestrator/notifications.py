from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Protocol

from core.logging import logger
from worker.tasks import dispatch_notification


class NotificationKind(str, enum.Enum):
    VOTING_INVITE = "VOTING_INVITE"
    VOTING_REMINDER = "VOTING_REMINDER"
    TRAINER_ASSIGNMENT = "TRAINER_ASSIGNMENT"
    QUESTIONS_REVIEW = "QUESTIONS_REVIEW"
    REVISION_NEEDED = "REVISION_NEEDED"
    SESSION_RESCHEDULE = "SESSION_RESCHEDULE"
    TRAINER_REMINDER = "TRAINER_REMINDER"


class Notifier(Protocol):
    def notify(self, kind: NotificationKind, recipient: str, context: dict[str, Any]) -> None:
        ...


class CeleryNotifier:
    """Hands notifications to the worker queue."""

    def notify(self, kind: NotificationKind, recipient: str, context: dict[str, Any]) -> None:
        dispatch_notification.delay(NotificationKind(kind).value, recipient, context)


@dataclass
class SentNotification:
    kind: NotificationKind
    recipient: str
    context: dict[str, Any]


@dataclass
class RecordingNotifier:
    sent: list[SentNotification] = field(default_factory=list)

    def notify(self, kind: NotificationKind, recipient: str, context: dict[str, Any]) -> None:
        self.sent.append(SentNotification(NotificationKind(kind), recipient, dict(context)))

    def of_kind(self, kind: NotificationKind) -> list[SentNotification]:
        return [item for item in self.sent if item.kind == kind]

    def clear(self) -> None:
        self.sent.clear()


def send_notification(notifier: Notifier, kind: NotificationKind, recipient: str, context: dict[str, Any]) -> bool:
    """Dispatch without letting delivery problems reach the caller."""

    try:
        notifier.notify(kind, recipient, context)
    except Exception as exc:
        logger.bind(event="notification_failed", kind=kind.value, recipient=recipient).warning(
            "Notification {} to {} failed: {}", kind.value, recipient, exc
        )
        return False
    return True
