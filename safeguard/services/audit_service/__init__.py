"""Audit Service: append-only compliance trail for safety decisions.

Every content analysis, profile assessment, incident report and
emergency activation is recorded here with a retention period fixed at
write time (7 years sensitive, 3 years high risk, 1 year otherwise).

Components:
- audit_logger.py: AuditLedger, SafetyAuditEntry, retention and anonymization rules
- audit_repository.py: append-only document storage
"""

from .audit_logger import (
    AuditLedger,
    SafetyAuditEntry,
    ActionDetails,
    ComplianceFlags,
    AuditMetadata,
    AuditActionStats,
    assign_retention_period,
    anonymize_for_analytics,
    is_compliant,
    SENSITIVE_RETENTION_DAYS,
    HIGH_RISK_RETENTION_DAYS,
    STANDARD_RETENTION_DAYS,
)
from .audit_repository import AuditRepository

__all__ = [
    "AuditLedger",
    "SafetyAuditEntry",
    "ActionDetails",
    "ComplianceFlags",
    "AuditMetadata",
    "AuditActionStats",
    "AuditRepository",
    "assign_retention_period",
    "anonymize_for_analytics",
    "is_compliant",
    "SENSITIVE_RETENTION_DAYS",
    "HIGH_RISK_RETENTION_DAYS",
    "STANDARD_RETENTION_DAYS",
]
