"""Storage-level exceptions"""
from fastapi import HTTPException, status


class TransientStorageException(HTTPException):
    """Raised on write contention or lost connectivity; the operation is safe to retry"""
    def __init__(self, operation: str = None):
        detail = "Storage temporarily unavailable, retry the request"
        if operation:
            detail = f"Storage temporarily unavailable during {operation}, retry the request"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
