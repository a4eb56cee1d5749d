"""Safeguard: online-safety risk assessment engine for a productivity platform.

Components:
- services.content_service: content risk analysis before publication
- services.profile_service: per-user safety profile and risk scoring
- services.incident_service: incident reporting and emergency escalation
- services.threat_service: anonymized community threat intelligence
- services.audit_service: append-only compliance audit trail
"""

__version__ = "0.3.0"
