"""Shared domain models for Safeguard."""
from .safety import (
    RiskTolerance,
    VulnerabilityFactor,
    Protection,
    ProtectionLevel,
    CulturalContext,
    ContactRelationship,
    ContactMethod,
    IncidentType,
    IncidentStatus,
    IncidentPlatform,
    PerpetratorRelationship,
    IncidentAction,
    ThreatCategory,
    ThreatRegion,
    IndustrySector,
    TargetDemographic,
    ThreatTrend,
    UrgencyLevel,
    MitigationDifficulty,
    VerificationSource,
    AuditActionType,
    AuditContext,
    AuditPlatform,
    AuditFeature,
    RiskLevel,
    AuditOutcome,
    Severity,
    parse_enum,
    parse_enum_list,
)
from .profile import (
    SafetyProfile,
    EmergencyContact,
    RiskFactor,
    RiskAssessment,
    DEFAULT_PROTECTIONS,
    DEFAULT_LANGUAGES,
)
from .incident import (
    SafetyIncident,
    PerpetratorInfo,
    Evidence,
    ActionTaken,
    ImpactAssessment,
    CommunityContribution,
    IncidentResolution,
    AnonymizedIncident,
    IncidentTypeStats,
    summarize_incidents_by_type,
)
from .threat import CommunityThreat, MitigationStrategy

__all__ = [
    "RiskTolerance",
    "VulnerabilityFactor",
    "Protection",
    "ProtectionLevel",
    "CulturalContext",
    "ContactRelationship",
    "ContactMethod",
    "IncidentType",
    "IncidentStatus",
    "IncidentPlatform",
    "PerpetratorRelationship",
    "IncidentAction",
    "ThreatCategory",
    "ThreatRegion",
    "IndustrySector",
    "TargetDemographic",
    "ThreatTrend",
    "UrgencyLevel",
    "MitigationDifficulty",
    "VerificationSource",
    "AuditActionType",
    "AuditContext",
    "AuditPlatform",
    "AuditFeature",
    "RiskLevel",
    "AuditOutcome",
    "Severity",
    "parse_enum",
    "parse_enum_list",
    "SafetyProfile",
    "EmergencyContact",
    "RiskFactor",
    "RiskAssessment",
    "DEFAULT_PROTECTIONS",
    "DEFAULT_LANGUAGES",
    "SafetyIncident",
    "PerpetratorInfo",
    "Evidence",
    "ActionTaken",
    "ImpactAssessment",
    "CommunityContribution",
    "IncidentResolution",
    "AnonymizedIncident",
    "IncidentTypeStats",
    "summarize_incidents_by_type",
    "CommunityThreat",
    "MitigationStrategy",
]
