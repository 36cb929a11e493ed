"""Alert creation and caregiver fan-out"""
import asyncio
import logging
from uuid import UUID
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.alerts.models import Alert
from app.alerts.notifier import MessageKind, Notifier
from app.alerts.permissions import PermissionOracle
from app.alerts.repository import AlertRepository
from app.db.exceptions import TransientStorageException
from app.utils.timezone import utcnow

logger = logging.getLogger(__name__)

INACTIVITY_ALERT_TYPE = "motion_inactivity_detected"
ESCALATION_ALERT_TYPE = "fall_escalation_required"


class AlertDispatcher:
    """Materializes alerts and hands them to the notifier"""

    def __init__(self, db: AsyncSession, permission_oracle: PermissionOracle, notifier: Notifier):
        self.db = db
        self.repository = AlertRepository(db)
        self.permission_oracle = permission_oracle
        self.notifier = notifier

    async def create_alert(
        self,
        alert_id: UUID,
        patient_id: UUID,
        alert_type: str,
        severity: str,
        title: str,
        description: str,
        device_id: Optional[UUID] = None,
        session_id: Optional[UUID] = None,
        escalation_countdown_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Alert:
        """
        Stage an alert in the caller's transaction.

        The set of caregivers allowed to receive alerts is resolved once and
        stored on the alert; later permission changes do not rewrite it.
        """
        now = now or utcnow()
        caregiver_ids = await self.permission_oracle.authorized_caregivers(patient_id)

        alert = Alert(
            id=alert_id,
            patient_id=patient_id,
            alert_type=alert_type,
            severity=severity,
            title=title,
            description=description,
            status="active",
            motion_device_id=device_id,
            inactivity_session_id=session_id,
            notified_caregivers=sorted(str(c) for c in caregiver_ids),
            requires_acknowledgment=True,
            escalation_countdown_minutes=escalation_countdown_minutes,
            created_at=now,
            updated_at=now,
        )
        return await self.repository.add(alert)

    async def deliver(self, alert: Alert, message_kind: MessageKind, now: Optional[datetime] = None) -> bool:
        """
        Hand a committed alert to the notifier.

        Delivery failures are logged and reported as False; the alert stays
        as the durable record and redelivery is handled elsewhere.
        """
        alert_id = alert.id
        caregiver_ids = [UUID(c) for c in alert.notified_caregivers or []]
        try:
            # Blocking transports (pika) run off the event loop
            await asyncio.to_thread(self.notifier.notify, alert_id, caregiver_ids, message_kind)
        except Exception as e:
            logger.error(f"Notification delivery failed for alert {alert_id} ({MessageKind(message_kind).value}): {e}")
            return False

        try:
            await self.repository.mark_notification_sent(alert_id, now or utcnow())
            await self.repository.commit("notification bookkeeping")
        except TransientStorageException:
            logger.warning(f"Alert {alert_id} delivered but notification_sent_at not recorded")
        return True
