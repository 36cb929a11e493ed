import logging
from uuid import UUID
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.alerts.repository import AlertRepository
from app.devices.exceptions import DeviceNotFoundException
from app.devices.models import Device
from app.devices.repository import DeviceRepository
from app.inactivity.models import InactivitySession
from app.inactivity.repository import InactivitySessionRepository
from app.inactivity.states import ResolutionMethod, SessionEvent, SessionStatus
from app.motion_events.models import MotionEvent
from app.motion_events.repository import MotionEventRepository
from app.motion_events.schemas import DetectionState, IngestAction
from app.utils.timezone import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

MOTION_RESUMED_NOTE = "Motion resumed - automatic resolution"


class EventIngestor:
    """Service layer for presence-change events"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.device_repository = DeviceRepository(db)
        self.event_repository = MotionEventRepository(db)
        self.session_repository = InactivitySessionRepository(db)
        self.alert_repository = AlertRepository(db)

    async def ingest(
        self,
        external_id: str,
        detection_state: DetectionState,
        sensor_timestamp: Optional[datetime] = None,
        raw_payload: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        """
        Ingest one presence-change event.

        Steps:
        1. Resolve the active device for the sensor identifier
        2. Persist the audit event and bump the device's last_event_at
        3. DETECTED: resolve the open session and its alerts
           NOT_DETECTED: open a session unless one is already open
        4. Mark the event processed
        """
        now = now or utcnow()
        state = DetectionState(detection_state)

        device = await self.device_repository.get_active_by_external_id(external_id)
        if not device:
            raise DeviceNotFoundException(external_id)

        device_id = device.id
        patient_id = device.patient_id

        # Audit trail first, committed on its own so it survives any later failure
        event = MotionEvent(
            device_id=device_id,
            patient_id=patient_id,
            external_id=external_id,
            event_type="changeReport",
            detection_state=state.value,
            sensor_timestamp=to_naive_utc(sensor_timestamp),
            recorded_at=now,
            raw_payload=raw_payload,
            processed=False,
        )
        await self.event_repository.add(event)
        event_id = event.id
        await self.device_repository.touch_last_event(device_id, now)
        await self.event_repository.commit("motion event insert")

        if state == DetectionState.DETECTED:
            result = await self._handle_motion_detected(device_id, patient_id, now)
        else:
            result = await self._handle_no_motion(device, now)

        await self.event_repository.mark_processed(event_id)
        await self.event_repository.commit("motion event processed flag")

        result["event_id"] = event_id
        return result

    async def list_events(self, device_id: UUID, limit: int = 100) -> List[MotionEvent]:
        """Recent audit events for a device"""
        return await self.event_repository.get_by_device(device_id, limit=limit)

    async def _handle_motion_detected(self, device_id: UUID, patient_id: UUID, now: datetime) -> Dict:
        """Close the open session, if any; repeated DETECTED events are no-ops"""
        open_session = await self.session_repository.get_open_by_device(device_id)
        if not open_session:
            return {"action": IngestAction.MOTION_DETECTED, "session_id": None, "inactivity_resolved": False}

        session_id = open_session.id
        resolved = await self.session_repository.close(
            session_id,
            now,
            SessionEvent.MOTION_RESUMED,
            ResolutionMethod.MOTION_RESUMED,
            resolved_by=patient_id,
        )
        if resolved:
            await self.alert_repository.resolve_for_session(
                session_id, now, MOTION_RESUMED_NOTE, resolved_by=patient_id
            )
        await self.session_repository.commit("motion resumed resolution")

        if resolved:
            logger.info(f"Motion resumed - Device: {device_id}, Session resolved: {session_id}")
        return {"action": IngestAction.MOTION_DETECTED, "session_id": session_id, "inactivity_resolved": resolved}

    async def _handle_no_motion(self, device: Device, now: datetime) -> Dict:
        """
        Open a session unless one is already open for the device.

        Losing the insert race to a concurrent opener (unique open session per
        device) reports that session as ongoing. If that session was already
        closed again by the time it is re-read, the open is retried once; a
        second loss reports monitoring_ongoing without a session id.
        """
        device_id = device.id
        patient_id = device.patient_id
        external_id = device.external_id
        threshold_seconds = device.sensitivity_seconds
        escalation_minutes = device.escalation_minutes

        for attempt in range(2):
            existing = await self.session_repository.get_open_by_device(device_id)
            if existing:
                return {"action": IngestAction.MONITORING_ONGOING, "session_id": existing.id}

            session = InactivitySession(
                device_id=device_id,
                patient_id=patient_id,
                started_at=now,
                threshold_seconds=threshold_seconds,
                escalation_minutes=escalation_minutes,
                status=SessionStatus.MONITORING.value,
                created_at=now,
                updated_at=now,
            )
            try:
                session = await self.session_repository.create(session)
            except IntegrityError:
                # Rollback expires loaded rows; only the captured values are used below
                await self.session_repository.rollback()
                logger.info(f"Concurrent session open detected for device {device_id} (attempt {attempt + 1})")
                continue

            logger.info(
                f"Inactivity monitoring started - Device: {external_id}, "
                f"Session: {session.id}, Threshold: {threshold_seconds}s"
            )
            return {"action": IngestAction.MONITORING_STARTED, "session_id": session.id}

        logger.warning(f"Could not open inactivity session for device {device_id} after concurrent opens")
        return {"action": IngestAction.MONITORING_ONGOING, "session_id": None}
