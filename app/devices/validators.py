"""Validation logic for device configuration"""
from app.devices.exceptions import InvalidThresholdException

SENSITIVITY_SECONDS_RANGE = (10, 300)
ESCALATION_MINUTES_RANGE = (5, 60)


def validate_sensitivity_seconds(value: int) -> None:
    """Validate inactivity threshold is within 10-300 seconds"""
    minimum, maximum = SENSITIVITY_SECONDS_RANGE
    if value is None or not minimum <= value <= maximum:
        raise InvalidThresholdException("sensitivity_seconds", value, minimum, maximum)


def validate_escalation_minutes(value: int) -> None:
    """Validate escalation window is within 5-60 minutes"""
    minimum, maximum = ESCALATION_MINUTES_RANGE
    if value is None or not minimum <= value <= maximum:
        raise InvalidThresholdException("escalation_minutes", value, minimum, maximum)
