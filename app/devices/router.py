from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import JWTPayload, check_permission, verify_token
from app.db.postgres import get_db
from app.devices.schemas import (
    DeviceListResponse,
    DeviceResponse,
    RegisterDeviceRequest,
    UpdateThresholdsRequest,
)
from app.devices.service import DeviceRegistry

router = APIRouter(
    prefix="/devices",
    tags=["devices"],
)


@router.post("/", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def register_device(
    request: RegisterDeviceRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Register a motion sensor for a patient.

    Business rules:
    - sensitivity_seconds: 10-300
    - escalation_minutes: 5-60
    - One registration per sensor identifier

    Required permission: device:create (ADMIN role)
    """
    check_permission(jwt_payload, "device:create")

    registry = DeviceRegistry(db)
    device = await registry.register(
        patient_id=request.patient_id,
        external_id=request.external_id,
        name=request.name,
        location=request.location,
        sensitivity_seconds=request.sensitivity_seconds,
        escalation_minutes=request.escalation_minutes,
    )
    return DeviceResponse.model_validate(device)


@router.get("/", response_model=DeviceListResponse)
async def list_devices(
    patient_id: UUID = Query(...),
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    List a patient's devices.

    Required permission: device:read (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "device:read")

    registry = DeviceRegistry(db)
    devices = await registry.list_for_patient(patient_id, include_inactive=include_inactive)
    return DeviceListResponse(
        devices=[DeviceResponse.model_validate(device) for device in devices],
        count=len(devices),
    )


@router.get("/by-external-id/{external_id}", response_model=DeviceResponse)
async def lookup_device(
    external_id: str,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Look up an active device by sensor identifier.

    Required permission: device:read (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "device:read")

    registry = DeviceRegistry(db)
    device = await registry.lookup(external_id)
    return DeviceResponse.model_validate(device)


@router.put("/{device_id}/thresholds", response_model=DeviceResponse)
async def update_device_thresholds(
    device_id: UUID,
    request: UpdateThresholdsRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Change a device's thresholds. Open sessions keep their original values.

    Required permission: device:update (ADMIN role)
    """
    check_permission(jwt_payload, "device:update")

    registry = DeviceRegistry(db)
    device = await registry.update_thresholds(
        device_id,
        sensitivity_seconds=request.sensitivity_seconds,
        escalation_minutes=request.escalation_minutes,
    )
    return DeviceResponse.model_validate(device)


@router.put("/{device_id}/deactivate", response_model=DeviceResponse)
async def deactivate_device(
    device_id: UUID,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Soft-disable a device. Any open inactivity session stays open.

    Required permission: device:update (ADMIN role)
    """
    check_permission(jwt_payload, "device:update")

    registry = DeviceRegistry(db)
    device = await registry.deactivate(device_id)
    return DeviceResponse.model_validate(device)
