"""Device Repository Layer"""
from uuid import UUID
from datetime import datetime
from typing import Optional, List
from sqlalchemy import select

from app.db.repository import BaseRepository
from app.devices.models import Device
from app.utils.timezone import utcnow


class DeviceRepository(BaseRepository):
    """Repository for device database operations"""

    async def create(self, device: Device) -> Device:
        """Create a new device"""
        self.db.add(device)
        await self.commit("device registration")
        await self.db.refresh(device)
        return device

    async def get_by_id(self, device_id: UUID) -> Optional[Device]:
        """Get device by ID"""
        stmt = select(Device).where(Device.id == device_id).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_external_id(self, external_id: str) -> Optional[Device]:
        """Get device by sensor identifier, active or not"""
        stmt = select(Device).where(Device.external_id == external_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_by_external_id(self, external_id: str) -> Optional[Device]:
        """Get active device by sensor identifier"""
        stmt = select(Device).where(
            Device.external_id == external_id,
            Device.is_active.is_(True),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_patient(self, patient_id: UUID, include_inactive: bool = False) -> List[Device]:
        """Get devices registered to a patient"""
        stmt = select(Device).where(Device.patient_id == patient_id)
        if not include_inactive:
            stmt = stmt.where(Device.is_active.is_(True))
        stmt = stmt.order_by(Device.created_at.asc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update(self, device: Device) -> Device:
        """Update device"""
        device.updated_at = utcnow()
        await self.commit("device update")
        await self.db.refresh(device)
        return device

    async def touch_last_event(self, device_id: UUID, at: datetime) -> None:
        """Record the time of the latest event from a device (caller commits)"""
        await self._execute(
            Device.__table__.update()
            .where(Device.id == device_id)
            .values(last_event_at=at, updated_at=at),
            "device last_event_at update",
        )
