"""Periodic threshold evaluation over open inactivity sessions"""
import logging
from uuid import UUID, uuid4
from datetime import datetime
from typing import Dict, NamedTuple, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.alerts.dispatcher import ESCALATION_ALERT_TYPE, INACTIVITY_ALERT_TYPE, AlertDispatcher
from app.alerts.models import Alert
from app.alerts.notifier import MessageKind, Notifier
from app.alerts.permissions import PermissionOracle
from app.db.exceptions import TransientStorageException
from app.db.models import Patient
from app.devices.models import Device
from app.inactivity.models import InactivitySession
from app.inactivity.repository import InactivitySessionRepository
from app.utils.timezone import seconds_between, utcnow

logger = logging.getLogger(__name__)


class SessionSnapshot(NamedTuple):
    """Values of an open session and its device as read at the start of a sweep"""
    id: UUID
    device_id: UUID
    patient_id: UUID
    started_at: datetime
    threshold_seconds: int
    escalation_minutes: int
    alert_created_at: Optional[datetime]
    check_in_sent_at: Optional[datetime]
    check_in_response_at: Optional[datetime]
    escalation_sent_at: Optional[datetime]
    device_external_id: str
    device_label: str

    @classmethod
    def from_rows(cls, session: InactivitySession, device: Device) -> "SessionSnapshot":
        return cls(
            id=session.id,
            device_id=session.device_id,
            patient_id=session.patient_id,
            started_at=session.started_at,
            threshold_seconds=session.threshold_seconds,
            escalation_minutes=session.escalation_minutes,
            alert_created_at=session.alert_created_at,
            check_in_sent_at=session.check_in_sent_at,
            check_in_response_at=session.check_in_response_at,
            escalation_sent_at=session.escalation_sent_at,
            device_external_id=device.external_id,
            device_label=device.location or device.name,
        )


class ThresholdEvaluator:
    """
    Advances open sessions whose time thresholds have been crossed.

    Nothing is cached between sweeps: every run re-reads sessions from
    storage, so a session closed by motion or by a patient reply simply stops
    matching. Each transition is a guarded UPDATE committed together with its
    alert; a sweep that loses the race on a row does nothing for that row.
    """

    def __init__(self, db: AsyncSession, permission_oracle: PermissionOracle, notifier: Notifier):
        self.db = db
        self.repository = InactivitySessionRepository(db)
        self.dispatcher = AlertDispatcher(db, permission_oracle, notifier)

    async def run_sweep(self, now: Optional[datetime] = None) -> Dict:
        """
        Evaluate every open session on an active device.

        Per session, at most one step is taken:
        1. Inactivity threshold crossed and no alert yet -> medium alert, check-in sent
        2. Check-in unanswered past the escalation window -> critical alert, caregivers notified

        Returns:
            Counts of alerts created, check-ins sent and escalations sent
        """
        now = now or utcnow()
        result = {
            "alerts_created": 0,
            "check_ins_sent": 0,
            "escalations_sent": 0,
            "checked_at": now,
        }

        rows = await self.repository.list_open_on_active_devices()
        snapshots = [SessionSnapshot.from_rows(session, device) for session, device in rows]
        # End the read transaction so each transition below commits on its own
        await self.repository.commit("sweep read")

        for snapshot in snapshots:
            try:
                if snapshot.alert_created_at is None:
                    if seconds_between(snapshot.started_at, now) >= snapshot.threshold_seconds:
                        if await self._send_check_in(snapshot, now):
                            result["alerts_created"] += 1
                            result["check_ins_sent"] += 1
                elif self._escalation_due(snapshot, now):
                    if await self._escalate(snapshot, now):
                        result["alerts_created"] += 1
                        result["escalations_sent"] += 1
            except TransientStorageException:
                # Left for the next sweep; progress is re-derived from stored timestamps
                logger.warning(f"Skipping session {snapshot.id} this sweep after a storage error")

        if result["alerts_created"]:
            logger.info(
                f"Sweep complete - Alerts: {result['alerts_created']}, "
                f"Check-ins: {result['check_ins_sent']}, Escalations: {result['escalations_sent']}"
            )
        return result

    @staticmethod
    def _escalation_due(snapshot: SessionSnapshot, now: datetime) -> bool:
        if snapshot.check_in_sent_at is None:
            return False
        if snapshot.check_in_response_at is not None or snapshot.escalation_sent_at is not None:
            return False
        minutes_since_check_in = seconds_between(snapshot.check_in_sent_at, now) / 60
        return minutes_since_check_in >= snapshot.escalation_minutes

    async def _send_check_in(self, snapshot: SessionSnapshot, now: datetime) -> Optional[Alert]:
        """First stage: raise the inactivity alert and prompt the patient"""
        alert_id = uuid4()
        try:
            if not await self.repository.mark_check_in_sent(snapshot.id, now, alert_id):
                await self.repository.rollback()
                logger.debug(f"Check-in for session {snapshot.id} already handled")
                return None

            alert = await self.dispatcher.create_alert(
                alert_id=alert_id,
                patient_id=snapshot.patient_id,
                alert_type=INACTIVITY_ALERT_TYPE,
                severity="medium",
                title="Motion Inactivity Detected",
                description=(
                    f"No motion detected in {snapshot.device_label} for "
                    f"{snapshot.threshold_seconds} seconds. Initiating check-in protocol."
                ),
                device_id=snapshot.device_id,
                session_id=snapshot.id,
                escalation_countdown_minutes=snapshot.escalation_minutes,
                now=now,
            )
            await self.repository.commit("check-in transition")
        except Exception:
            await self.repository.rollback()
            raise

        logger.info(f"Check-in sent - Session: {snapshot.id}, Device: {snapshot.device_external_id}, Alert: {alert_id}")
        await self.dispatcher.deliver(alert, MessageKind.CHECK_IN, now)
        return alert

    async def _escalate(self, snapshot: SessionSnapshot, now: datetime) -> Optional[Alert]:
        """Second stage: check-in went unanswered, notify caregivers urgently"""
        alert_id = uuid4()
        try:
            if not await self.repository.mark_escalated(snapshot.id, now):
                await self.repository.rollback()
                logger.debug(f"Escalation for session {snapshot.id} already handled")
                return None

            patient_name = await self._patient_name(snapshot.patient_id)
            alert = await self.dispatcher.create_alert(
                alert_id=alert_id,
                patient_id=snapshot.patient_id,
                alert_type=ESCALATION_ALERT_TYPE,
                severity="critical",
                title="URGENT: No Response to Fall Detection Check-In",
                description=(
                    f"{patient_name} has not responded to check-in after "
                    f"{snapshot.escalation_minutes} minutes of inactivity in "
                    f"{snapshot.device_label}. Immediate attention required."
                ),
                device_id=snapshot.device_id,
                session_id=snapshot.id,
                now=now,
            )
            await self.repository.commit("escalation transition")
        except Exception:
            await self.repository.rollback()
            raise

        logger.warning(
            f"Escalation sent - Session: {snapshot.id}, Device: {snapshot.device_external_id}, "
            f"Alert: {alert_id}, Caregivers: {len(alert.notified_caregivers)}"
        )
        await self.dispatcher.deliver(alert, MessageKind.ESCALATION, now)
        return alert

    async def _patient_name(self, patient_id: UUID) -> str:
        stmt = select(Patient.full_name).where(Patient.id == patient_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() or "Patient"
