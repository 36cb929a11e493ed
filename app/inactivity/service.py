import logging
from uuid import UUID
from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.alerts.repository import AlertRepository
from app.inactivity.exceptions import InactivitySessionNotFoundException, SessionAlreadyClosedException
from app.inactivity.models import InactivitySession
from app.inactivity.repository import InactivitySessionRepository
from app.inactivity.states import ResolutionMethod, SessionEvent, transition
from app.utils.timezone import utcnow

logger = logging.getLogger(__name__)


class InactivitySessionService:
    """Service layer for reading and manually closing inactivity sessions"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = InactivitySessionRepository(db)
        self.alert_repository = AlertRepository(db)

    async def get_session(self, session_id: UUID) -> InactivitySession:
        """Get an inactivity session by ID"""
        session = await self.repository.get_by_id(session_id)
        if not session:
            raise InactivitySessionNotFoundException(str(session_id))
        return session

    async def list_sessions(
        self,
        device_id: Optional[UUID] = None,
        patient_id: Optional[UUID] = None,
        open_only: bool = False,
        limit: int = 100,
    ) -> List[InactivitySession]:
        """List inactivity sessions, newest first"""
        return await self.repository.list_sessions(
            device_id=device_id,
            patient_id=patient_id,
            open_only=open_only,
            limit=limit,
        )

    async def dismiss(
        self,
        session_id: UUID,
        dismissed_by: UUID,
        as_admin: bool = False,
        false_alarm: bool = False,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> InactivitySession:
        """
        Close an open session by hand.

        Business rules:
        - Only open sessions can be dismissed
        - Caregivers and admins are recorded with distinct resolution methods
        - A false alarm marks the session and its alerts as false_alarm
        """
        now = now or utcnow()
        method = ResolutionMethod.ADMIN_DISMISSED if as_admin else ResolutionMethod.CAREGIVER_DISMISSED
        event = SessionEvent.MARKED_FALSE_ALARM if false_alarm else SessionEvent.DISMISSED

        session = await self.get_session(session_id)
        if transition(session.status, event) is None:
            raise SessionAlreadyClosedException(session.status)

        if not await self.repository.close(session_id, now, event, method, resolved_by=dismissed_by):
            await self.repository.rollback()
            current = await self.get_session(session_id)
            raise SessionAlreadyClosedException(current.status)

        default_note = "Dismissed as false alarm" if false_alarm else "Dismissed manually"
        await self.alert_repository.resolve_for_session(
            session_id,
            now,
            notes or default_note,
            resolved_by=dismissed_by,
            status="false_alarm" if false_alarm else "resolved",
        )
        await self.repository.commit("session dismissal")

        logger.info(f"Session dismissed - ID: {session_id}, Method: {method.value}, False alarm: {false_alarm}")
        return await self.get_session(session_id)
