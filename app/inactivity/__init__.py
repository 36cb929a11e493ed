from app.inactivity.models import InactivitySession
from app.inactivity.repository import InactivitySessionRepository
from app.inactivity.service import InactivitySessionService

__all__ = ["InactivitySession", "InactivitySessionRepository", "InactivitySessionService"]
