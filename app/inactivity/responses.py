"""Patient replies to check-in prompts"""
import logging
from uuid import UUID
from datetime import datetime
from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.alerts.repository import AlertRepository
from app.inactivity.exceptions import NoActiveCheckInException
from app.inactivity.repository import InactivitySessionRepository
from app.utils.timezone import utcnow

logger = logging.getLogger(__name__)


class ResponseRecorder:
    """Closes the loop when a patient answers a check-in"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = InactivitySessionRepository(db)
        self.alert_repository = AlertRepository(db)

    async def record_response(
        self,
        patient_id: UUID,
        response_text: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        """
        Record a patient's reply and resolve the session it answers.

        Steps:
        1. Find the patient's most recent check-in still awaiting a reply
        2. Resolve the session (guarded: a concurrent close wins)
        3. Resolve the session's alerts with the reply in the note

        An escalation that already went out is not recalled; the session and
        alerts are still resolved.
        """
        now = now or utcnow()

        session = await self.repository.get_latest_awaiting_response(patient_id)
        if not session:
            raise NoActiveCheckInException(str(patient_id))

        session_id = session.id
        alert_id = session.related_alert_id
        was_escalated = session.escalation_sent_at is not None

        if not await self.repository.record_check_in_response(session_id, now, patient_id):
            # Motion or a caregiver closed it first
            await self.repository.rollback()
            raise NoActiveCheckInException(str(patient_id))

        notes = f"Patient responded: {response_text}" if response_text is not None else "Patient responded to check-in"
        await self.alert_repository.resolve_for_session(session_id, now, notes, resolved_by=patient_id)
        await self.repository.commit("check-in response")

        if was_escalated:
            logger.info(f"Patient {patient_id} responded after escalation - Session: {session_id}")
        else:
            logger.info(f"Patient {patient_id} responded to check-in - Session: {session_id}")

        return {
            "session_id": session_id,
            "alert_id": alert_id,
            "message": "Patient response recorded, monitoring resolved",
        }
