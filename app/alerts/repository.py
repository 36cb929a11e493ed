"""Alert Repository Layer"""
from uuid import UUID
from datetime import datetime
from typing import List, Optional
from sqlalchemy import select

from app.alerts.models import Alert
from app.db.repository import BaseRepository


class AlertRepository(BaseRepository):
    """Repository for alert database operations (callers commit)"""

    async def add(self, alert: Alert) -> Alert:
        """Stage a new alert in the current transaction"""
        self.db.add(alert)
        await self.db.flush()
        return alert

    async def get_by_id(self, alert_id: UUID) -> Optional[Alert]:
        """Get alert by ID"""
        stmt = select(Alert).where(Alert.id == alert_id).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_session(self, session_id: UUID) -> List[Alert]:
        """Alerts raised for an inactivity session, oldest first"""
        stmt = (
            select(Alert)
            .where(Alert.inactivity_session_id == session_id)
            .order_by(Alert.created_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_patient(self, patient_id: UUID, active_only: bool = False, limit: int = 100) -> List[Alert]:
        """Alerts for a patient, newest first"""
        stmt = select(Alert).where(Alert.patient_id == patient_id)
        if active_only:
            stmt = stmt.where(Alert.resolved_at.is_(None))
        stmt = stmt.order_by(Alert.created_at.desc()).limit(limit)
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def resolve_for_session(
        self,
        session_id: UUID,
        now: datetime,
        notes: str,
        resolved_by: Optional[UUID] = None,
        status: str = "resolved",
    ) -> int:
        """Resolve every unresolved alert of a session; returns how many changed"""
        result = await self._execute(
            Alert.__table__.update()
            .where(
                Alert.inactivity_session_id == session_id,
                Alert.resolved_at.is_(None),
            )
            .values(
                status=status,
                resolved_at=now,
                resolved_by=resolved_by,
                resolution_notes=notes,
                updated_at=now,
            ),
            "alert resolution",
        )
        return result.rowcount

    async def acknowledge(self, alert_id: UUID, caregiver_id: UUID, now: datetime) -> bool:
        """active -> acknowledged"""
        result = await self._execute(
            Alert.__table__.update()
            .where(
                Alert.id == alert_id,
                Alert.status == "active",
            )
            .values(
                status="acknowledged",
                acknowledged_by=caregiver_id,
                acknowledged_at=now,
                updated_at=now,
            ),
            "alert acknowledgment",
        )
        return result.rowcount == 1

    async def mark_notification_sent(self, alert_id: UUID, now: datetime) -> None:
        """Record successful hand-off to the notifier"""
        await self._execute(
            Alert.__table__.update()
            .where(Alert.id == alert_id)
            .values(notification_sent_at=now, updated_at=now),
            "notification bookkeeping",
        )
