"""Custom exceptions for inactivity monitoring"""
from fastapi import HTTPException, status


class InactivitySessionNotFoundException(HTTPException):
    """Raised when an inactivity session is not found"""
    def __init__(self, session_id: str = None):
        detail = "Inactivity session not found"
        if session_id:
            detail = f"Inactivity session {session_id} not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class NoActiveCheckInException(HTTPException):
    """Raised when a patient replies but no check-in is awaiting a response"""
    def __init__(self, patient_id: str = None):
        detail = "No active check-in found for patient"
        if patient_id:
            detail = f"No active check-in found for patient {patient_id}"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class SessionAlreadyClosedException(HTTPException):
    """Raised when dismissing a session that is no longer open"""
    def __init__(self, current_status: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot dismiss session with status: {current_status}"
        )


class UnauthorizedPatientResponseException(HTTPException):
    """Raised when a patient answers a check-in that belongs to someone else"""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only respond to your own check-ins"
        )
