"""Outgoing notification requests.

The time tracking core never delivers anything itself: it builds a
:class:`Notification` and hands it to whatever sink was injected. Delivery,
persistence and real-time push belong to the sink.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID

logger = logging.getLogger(__name__)


class NotificationType(str, enum.Enum):
    timesheet_submitted = "timesheet_submitted"
    timesheet_approved = "timesheet_approved"
    timesheet_rejected = "timesheet_rejected"


class RefKind(str, enum.Enum):
    task = "task"
    project = "project"
    timesheet = "timesheet"


@dataclass(frozen=True)
class NotificationRef:
    kind: RefKind
    id: UUID


@dataclass(frozen=True)
class Notification:
    recipient_id: UUID
    sender_id: Optional[UUID]
    type: NotificationType
    title: str
    message: str
    ref: Optional[NotificationRef] = None


class NotificationSink(Protocol):
    def notify(self, notification: Notification) -> None:
        ...


class LoggingNotificationSink:
    """Default sink: records each request in the application log."""

    def notify(self, notification: Notification) -> None:
        ref = f"{notification.ref.kind.value}:{notification.ref.id}" if notification.ref else "-"
        logger.info(
            "notify %s -> %s [%s] %s (%s)",
            notification.sender_id,
            notification.recipient_id,
            notification.type.value,
            notification.title,
            ref,
        )


_default_sink = LoggingNotificationSink()


def get_notification_sink() -> NotificationSink:
    return _default_sink
