"""Inactivity session state machine"""
from enum import Enum
from typing import Dict, List, Optional, Tuple


class SessionStatus(str, Enum):
    """Lifecycle states of an inactivity session"""
    MONITORING = "monitoring"
    CHECK_IN_SENT = "check_in_sent"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    FALSE_ALARM = "false_alarm"


class ResolutionMethod(str, Enum):
    """How a session left the open chain"""
    MOTION_RESUMED = "motion_resumed"
    PATIENT_RESPONSE = "patient_response"
    CAREGIVER_DISMISSED = "caregiver_dismissed"
    ADMIN_DISMISSED = "admin_dismissed"


class SessionEvent(str, Enum):
    """Things that can happen to an open session"""
    THRESHOLD_CROSSED = "threshold_crossed"
    ESCALATION_DUE = "escalation_due"
    MOTION_RESUMED = "motion_resumed"
    PATIENT_RESPONDED = "patient_responded"
    DISMISSED = "dismissed"
    MARKED_FALSE_ALARM = "marked_false_alarm"


OPEN_STATUSES = (SessionStatus.MONITORING, SessionStatus.CHECK_IN_SENT, SessionStatus.ESCALATED)

TRANSITIONS: Dict[Tuple[SessionStatus, SessionEvent], SessionStatus] = {
    (SessionStatus.MONITORING, SessionEvent.THRESHOLD_CROSSED): SessionStatus.CHECK_IN_SENT,
    (SessionStatus.CHECK_IN_SENT, SessionEvent.ESCALATION_DUE): SessionStatus.ESCALATED,
    (SessionStatus.CHECK_IN_SENT, SessionEvent.PATIENT_RESPONDED): SessionStatus.RESOLVED,
    (SessionStatus.ESCALATED, SessionEvent.PATIENT_RESPONDED): SessionStatus.RESOLVED,
}
for _status in OPEN_STATUSES:
    TRANSITIONS[(_status, SessionEvent.MOTION_RESUMED)] = SessionStatus.RESOLVED
    TRANSITIONS[(_status, SessionEvent.DISMISSED)] = SessionStatus.RESOLVED
    TRANSITIONS[(_status, SessionEvent.MARKED_FALSE_ALARM)] = SessionStatus.FALSE_ALARM


def transition(current: SessionStatus, event: SessionEvent) -> Optional[SessionStatus]:
    """
    Next status for an event, or None when the event does not apply.

    Callers treat None as a no-op, never as an error.
    """
    return TRANSITIONS.get((SessionStatus(current), event))


def predecessors(event: SessionEvent) -> List[str]:
    """Status values from which an event may be applied (used as the write guard)"""
    return [status.value for (status, ev) in TRANSITIONS if ev == event]


def target(event: SessionEvent) -> SessionStatus:
    """Status an event leads to (every event has a single target)"""
    return next(new for (_, ev), new in TRANSITIONS.items() if ev == event)
