"""Custom exceptions for the device registry"""
from fastapi import HTTPException, status


class DeviceNotFoundException(HTTPException):
    """Raised when a device is unknown or inactive"""
    def __init__(self, identifier: str = None):
        detail = "Device not found or inactive"
        if identifier:
            detail = f"Device '{identifier}' not found or inactive"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class DuplicateDeviceException(HTTPException):
    """Raised when registering a sensor identifier that is already registered"""
    def __init__(self, external_id: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Device '{external_id}' is already registered"
        )


class InvalidThresholdException(HTTPException):
    """Raised when a sensitivity or escalation threshold is out of range"""
    def __init__(self, field: str, value, minimum: int, maximum: int):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid {field} {value}. Must be between {minimum} and {maximum}"
        )
