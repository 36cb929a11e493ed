"""Motion Event Repository Layer"""
from uuid import UUID
from typing import List
from sqlalchemy import select

from app.db.repository import BaseRepository
from app.motion_events.models import MotionEvent


class MotionEventRepository(BaseRepository):
    """Repository for the append-only motion event log"""

    async def add(self, event: MotionEvent) -> MotionEvent:
        """Stage a new event in the current transaction"""
        self.db.add(event)
        await self.db.flush()
        return event

    async def mark_processed(self, event_id: UUID) -> None:
        """Flag an event as handled (the only mutation allowed on the log)"""
        await self._execute(
            MotionEvent.__table__.update()
            .where(MotionEvent.id == event_id)
            .values(processed=True),
            "motion event processed flag",
        )

    async def get_by_device(self, device_id: UUID, limit: int = 100) -> List[MotionEvent]:
        """Recent events for a device, newest first"""
        stmt = (
            select(MotionEvent)
            .where(MotionEvent.device_id == device_id)
            .order_by(MotionEvent.recorded_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
