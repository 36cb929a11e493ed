"""Inactivity Session Repository Layer

Every state change is a single guarded UPDATE. The WHERE clause carries the
null-guard of the field being set plus the legal predecessor states, so two
concurrent writers produce at most one effective transition. Methods return
True only when this call applied the change. Nothing here commits.
"""
from uuid import UUID
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import select

from app.db.repository import BaseRepository
from app.devices.models import Device
from app.inactivity.models import InactivitySession
from app.inactivity.states import ResolutionMethod, SessionEvent, predecessors, target


class InactivitySessionRepository(BaseRepository):
    """Repository for inactivity session database operations"""

    async def create(self, session: InactivitySession) -> InactivitySession:
        """
        Open a new session.

        Raises IntegrityError when another session is already open for the
        device (partial unique index on device_id where resolved_at is null).
        """
        self.db.add(session)
        await self.commit("inactivity session open")
        await self.db.refresh(session)
        return session

    async def get_by_id(self, session_id: UUID) -> Optional[InactivitySession]:
        """Get inactivity session by ID (fresh from storage)"""
        stmt = (
            select(InactivitySession)
            .where(InactivitySession.id == session_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_open_by_device(self, device_id: UUID) -> Optional[InactivitySession]:
        """Get the open session for a device, if any"""
        stmt = (
            select(InactivitySession)
            .where(
                InactivitySession.device_id == device_id,
                InactivitySession.resolved_at.is_(None),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_open_on_active_devices(self) -> List[Tuple[InactivitySession, Device]]:
        """All open sessions whose device is still active, with the device row"""
        stmt = (
            select(InactivitySession, Device)
            .join(Device, Device.id == InactivitySession.device_id)
            .where(
                InactivitySession.resolved_at.is_(None),
                Device.is_active.is_(True),
            )
            .order_by(InactivitySession.started_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def get_latest_awaiting_response(self, patient_id: UUID) -> Optional[InactivitySession]:
        """Most recent open session of a patient whose check-in has not been answered"""
        stmt = (
            select(InactivitySession)
            .where(
                InactivitySession.patient_id == patient_id,
                InactivitySession.resolved_at.is_(None),
                InactivitySession.check_in_sent_at.is_not(None),
                InactivitySession.check_in_response_at.is_(None),
            )
            .order_by(InactivitySession.started_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_sessions(
        self,
        device_id: Optional[UUID] = None,
        patient_id: Optional[UUID] = None,
        open_only: bool = False,
        limit: int = 100,
    ) -> List[InactivitySession]:
        """List sessions, newest first"""
        stmt = select(InactivitySession)
        if device_id:
            stmt = stmt.where(InactivitySession.device_id == device_id)
        if patient_id:
            stmt = stmt.where(InactivitySession.patient_id == patient_id)
        if open_only:
            stmt = stmt.where(InactivitySession.resolved_at.is_(None))
        stmt = stmt.order_by(InactivitySession.started_at.desc()).limit(limit)
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def mark_check_in_sent(self, session_id: UUID, now: datetime, alert_id: UUID) -> bool:
        """monitoring -> check_in_sent, only if no alert was created yet"""
        table = InactivitySession.__table__
        result = await self._execute(
            table.update()
            .where(
                InactivitySession.id == session_id,
                InactivitySession.alert_created_at.is_(None),
                InactivitySession.resolved_at.is_(None),
                InactivitySession.status.in_(predecessors(SessionEvent.THRESHOLD_CROSSED)),
            )
            .values(
                alert_created_at=now,
                check_in_sent_at=now,
                status=target(SessionEvent.THRESHOLD_CROSSED).value,
                related_alert_id=alert_id,
                updated_at=now,
            ),
            "check-in transition",
        )
        return result.rowcount == 1

    async def mark_escalated(self, session_id: UUID, now: datetime) -> bool:
        """check_in_sent -> escalated, only if unanswered and not escalated yet"""
        table = InactivitySession.__table__
        result = await self._execute(
            table.update()
            .where(
                InactivitySession.id == session_id,
                InactivitySession.check_in_sent_at.is_not(None),
                InactivitySession.check_in_response_at.is_(None),
                InactivitySession.escalation_sent_at.is_(None),
                InactivitySession.resolved_at.is_(None),
                InactivitySession.status.in_(predecessors(SessionEvent.ESCALATION_DUE)),
            )
            .values(
                escalation_sent_at=now,
                status=target(SessionEvent.ESCALATION_DUE).value,
                updated_at=now,
            ),
            "escalation transition",
        )
        return result.rowcount == 1

    async def record_check_in_response(self, session_id: UUID, now: datetime, patient_id: UUID) -> bool:
        """Close an awaiting session because the patient answered"""
        table = InactivitySession.__table__
        result = await self._execute(
            table.update()
            .where(
                InactivitySession.id == session_id,
                InactivitySession.check_in_sent_at.is_not(None),
                InactivitySession.check_in_response_at.is_(None),
                InactivitySession.resolved_at.is_(None),
                InactivitySession.status.in_(predecessors(SessionEvent.PATIENT_RESPONDED)),
            )
            .values(
                check_in_response_at=now,
                resolved_at=now,
                status=target(SessionEvent.PATIENT_RESPONDED).value,
                resolution_method=ResolutionMethod.PATIENT_RESPONSE.value,
                resolved_by=patient_id,
                updated_at=now,
            ),
            "check-in response",
        )
        return result.rowcount == 1

    async def close(
        self,
        session_id: UUID,
        now: datetime,
        event: SessionEvent,
        resolution_method: ResolutionMethod,
        resolved_by: Optional[UUID] = None,
    ) -> bool:
        """Exit the open chain from whatever non-terminal state the session is in"""
        table = InactivitySession.__table__
        result = await self._execute(
            table.update()
            .where(
                InactivitySession.id == session_id,
                InactivitySession.resolved_at.is_(None),
                InactivitySession.status.in_(predecessors(event)),
            )
            .values(
                resolved_at=now,
                status=target(event).value,
                resolution_method=resolution_method.value,
                resolved_by=resolved_by,
                updated_at=now,
            ),
            "session close",
        )
        return result.rowcount == 1
