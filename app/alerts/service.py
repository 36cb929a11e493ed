from uuid import UUID
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from app.alerts.exceptions import AlertNotActiveException, AlertNotFoundException
from app.alerts.models import Alert
from app.alerts.repository import AlertRepository
from app.utils.timezone import utcnow


class AlertService:
    """Service layer for caregiver-facing alert operations"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = AlertRepository(db)

    async def get_alert(self, alert_id: UUID) -> Alert:
        """Get an alert by ID"""
        alert = await self.repository.get_by_id(alert_id)
        if not alert:
            raise AlertNotFoundException(str(alert_id))
        return alert

    async def list_for_patient(self, patient_id: UUID, active_only: bool = False, limit: int = 100) -> List[Alert]:
        """List a patient's alerts, newest first"""
        return await self.repository.list_for_patient(patient_id, active_only=active_only, limit=limit)

    async def acknowledge(self, alert_id: UUID, caregiver_id: UUID) -> Alert:
        """Mark an active alert as seen by a caregiver"""
        alert = await self.get_alert(alert_id)
        if alert.status != "active":
            raise AlertNotActiveException(alert.status)

        if not await self.repository.acknowledge(alert_id, caregiver_id, utcnow()):
            await self.repository.rollback()
            current = await self.get_alert(alert_id)
            raise AlertNotActiveException(current.status)

        await self.repository.commit("alert acknowledgment")
        return await self.get_alert(alert_id)
