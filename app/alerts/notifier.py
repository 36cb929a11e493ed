"""Notification hand-off for check-ins and escalations"""
import os
import logging
from enum import Enum
from uuid import UUID
from typing import List, Protocol

from app.messaging.rabbitmq import RabbitMQPublisher

logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    """What the recipient is being told"""
    CHECK_IN = "check_in"  # prompt the patient to confirm they are fine
    ESCALATION = "escalation"  # urgent notice to authorized caregivers


class Notifier(Protocol):
    def notify(self, alert_id: UUID, caregiver_ids: List[UUID], message_kind: MessageKind) -> None:
        ...


class LoggingNotifier:
    """Notifier used when no broker is configured"""

    def notify(self, alert_id: UUID, caregiver_ids: List[UUID], message_kind: MessageKind) -> None:
        logger.info(
            f"Notification ({MessageKind(message_kind).value}) for alert {alert_id} "
            f"- Caregivers: {', '.join(str(c) for c in caregiver_ids) or 'none'}"
        )


class RabbitMQNotifier:
    """Hands notifications to the delivery service through RabbitMQ"""

    def __init__(self, publisher: RabbitMQPublisher = None):
        self.publisher = publisher or RabbitMQPublisher()

    def notify(self, alert_id: UUID, caregiver_ids: List[UUID], message_kind: MessageKind) -> None:
        kind = MessageKind(message_kind).value
        message = {
            "event": f"notification.{kind}",
            "data": {
                "alert_id": str(alert_id),
                "caregiver_ids": [str(c) for c in caregiver_ids],
                "message_kind": kind,
            },
        }
        self.publisher.publish(f"notification.{kind}", message)


def get_notifier() -> Notifier:
    """Dependency to get the configured notifier."""
    if os.getenv("RABBITMQ_HOST"):
        return RabbitMQNotifier()
    return LoggingNotifier()
