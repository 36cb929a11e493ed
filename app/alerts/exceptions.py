"""Custom exceptions for alerts"""
from fastapi import HTTPException, status


class AlertNotFoundException(HTTPException):
    """Raised when an alert is not found"""
    def __init__(self, alert_id: str = None):
        detail = "Alert not found"
        if alert_id:
            detail = f"Alert {alert_id} not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AlertNotActiveException(HTTPException):
    """Raised when acknowledging an alert that is no longer active"""
    def __init__(self, current_status: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot acknowledge alert with status: {current_status}"
        )
