"""
Notification sink -- outbound lifecycle events.

Responsibility:
    Defines the narrow contract through which the kernel announces quote
    and order lifecycle events (quote sent, quote accepted, order status
    changed, credit limit adjusted) to an external delivery service.

Architecture position:
    Kernel > Services -- outbound port.  Concrete delivery (email, push,
    in-app) lives outside the kernel.

Invariants enforced:
    - Notifications are dispatched only AFTER the owning transaction has
      committed, so a rolled-back transition never announces itself.
    - A failing sink is logged and ignored.  Delivery failure never rolls
      back or fails the transition that produced the notification.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from sourcing_kernel.logging_config import get_logger

logger = get_logger("services.notification")


@dataclass(frozen=True)
class Notification:
    """One event addressed to one recipient."""

    event_type: str
    recipient_id: UUID
    payload: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class NotificationSink(Protocol):
    """Anything that can deliver a ``Notification``."""

    def send(self, notification: Notification) -> None: ...


class NullNotificationSink:
    """Sink that drops everything.  Default when none is configured."""

    def send(self, notification: Notification) -> None:
        return None


class InMemoryNotificationSink:
    """Sink that keeps every notification it receives, in order."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)

    def of_type(self, event_type: str) -> list[Notification]:
        return [n for n in self.sent if n.event_type == event_type]


def dispatch_notifications(
    sink: NotificationSink,
    notifications: Iterable[Notification],
) -> int:
    """
    Deliver notifications one by one; returns how many were delivered.

    Each failure is logged with the event type and recipient and the
    remaining notifications are still attempted.
    """
    delivered = 0
    for notification in notifications:
        try:
            sink.send(notification)
        except Exception:
            logger.warning(
                "notification_delivery_failed",
                extra={
                    "event_type": notification.event_type,
                    "recipient_id": str(notification.recipient_id),
                },
                exc_info=True,
            )
            continue
        delivered += 1
    return delivered
