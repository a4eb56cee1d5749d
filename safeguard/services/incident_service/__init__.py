"""Incident Service: safety incident reporting and emergency escalation.

Components:
- incident_manager.py: IncidentManager, report validation, pagination
- incident_repository.py: incident storage
- emergency_notifier.py: Kinesis publisher for emergency contact notifications
"""

from .incident_manager import (
    IncidentManager,
    IncidentPage,
    parse_incident_report,
    severity_risk_level,
)
from .incident_repository import SafetyIncidentRepository
from .emergency_notifier import EmergencyNotifier, EmergencyEvent, NotifierConfig

__all__ = [
    "IncidentManager",
    "IncidentPage",
    "parse_incident_report",
    "severity_risk_level",
    "SafetyIncidentRepository",
    "EmergencyNotifier",
    "EmergencyEvent",
    "NotifierConfig",
]
