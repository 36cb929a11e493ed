"""Who may receive a patient's alerts"""
from uuid import UUID
from typing import Protocol, Set
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import CareRelationship
from app.db.postgres import get_db


class PermissionOracle(Protocol):
    async def authorized_caregivers(self, patient_id: UUID) -> Set[UUID]:
        ...


class CareRelationshipPermissionOracle:
    """Caregivers with an active care relationship that allows receiving alerts"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def authorized_caregivers(self, patient_id: UUID) -> Set[UUID]:
        stmt = select(CareRelationship.caregiver_id).where(
            CareRelationship.patient_id == patient_id,
            CareRelationship.status == "active",
            CareRelationship.can_receive_alerts.is_(True),
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())


def get_permission_oracle(db: AsyncSession = Depends(get_db)) -> PermissionOracle:
    """Dependency to get the permission oracle."""
    return CareRelationshipPermissionOracle(db)
