import logging
from uuid import UUID
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.devices.exceptions import DeviceNotFoundException, DuplicateDeviceException
from app.devices.models import Device
from app.devices.repository import DeviceRepository
from app.devices.validators import validate_escalation_minutes, validate_sensitivity_seconds

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Service layer for sensor registration and configuration"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = DeviceRepository(db)

    async def register(
        self,
        patient_id: UUID,
        external_id: str,
        name: str,
        location: Optional[str] = None,
        sensitivity_seconds: int = 30,
        escalation_minutes: int = 10,
    ) -> Device:
        """
        Register a motion sensor for a patient.

        Steps:
        1. Validate thresholds (nothing is persisted on failure)
        2. Reject an identifier that is already registered
        3. Create device record
        """
        validate_sensitivity_seconds(sensitivity_seconds)
        validate_escalation_minutes(escalation_minutes)

        existing = await self.repository.get_by_external_id(external_id)
        if existing:
            raise DuplicateDeviceException(external_id)

        device = Device(
            patient_id=patient_id,
            external_id=external_id,
            name=name,
            location=location,
            is_active=True,
            sensitivity_seconds=sensitivity_seconds,
            escalation_minutes=escalation_minutes,
        )

        try:
            device = await self.repository.create(device)
        except IntegrityError as e:
            # Lost a registration race on the unique external_id
            await self.repository.rollback()
            raise DuplicateDeviceException(external_id) from e

        logger.info(f"Device registered - External ID: {external_id}, Patient: {patient_id}")
        return device

    async def lookup(self, external_id: str) -> Device:
        """Get an active device by sensor identifier"""
        device = await self.repository.get_active_by_external_id(external_id)
        if not device:
            raise DeviceNotFoundException(external_id)
        return device

    async def get(self, device_id: UUID) -> Device:
        """Get a device by ID, active or not"""
        device = await self.repository.get_by_id(device_id)
        if not device:
            raise DeviceNotFoundException(str(device_id))
        return device

    async def list_for_patient(self, patient_id: UUID, include_inactive: bool = False) -> List[Device]:
        """List a patient's devices"""
        return await self.repository.get_by_patient(patient_id, include_inactive=include_inactive)

    async def update_thresholds(
        self,
        device_id: UUID,
        sensitivity_seconds: Optional[int] = None,
        escalation_minutes: Optional[int] = None,
    ) -> Device:
        """
        Change a device's thresholds.

        Sessions already open keep the values captured when they started.
        """
        if sensitivity_seconds is not None:
            validate_sensitivity_seconds(sensitivity_seconds)
        if escalation_minutes is not None:
            validate_escalation_minutes(escalation_minutes)

        device = await self.get(device_id)
        if sensitivity_seconds is not None:
            device.sensitivity_seconds = sensitivity_seconds
        if escalation_minutes is not None:
            device.escalation_minutes = escalation_minutes

        return await self.repository.update(device)

    async def deactivate(self, device_id: UUID) -> Device:
        """
        Soft-disable a device.

        History is kept and an open inactivity session is left open: it still
        needs a human to close it.
        """
        device = await self.get(device_id)
        device.is_active = False
        device = await self.repository.update(device)
        logger.info(f"Device deactivated - ID: {device_id}, External ID: {device.external_id}")
        return device
