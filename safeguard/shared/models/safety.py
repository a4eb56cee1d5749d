"""Closed enumerations for every category, status and severity field.

Values arriving from callers or storage are parsed with parse_enum() at
the boundary so an invalid state never reaches a repository.
"""
from enum import Enum
from typing import Iterable, List, Optional, Type, TypeVar

from safeguard.shared.exceptions import InvalidInputError

E = TypeVar("E", bound=Enum)


# ---------------------------------------------------------------------------
# Safety profile
# ---------------------------------------------------------------------------

class RiskTolerance(Enum):
    """User-declared sensitivity; scales harassment scoring."""
    CONSERVATIVE = "conservative"   # x1.2
    MODERATE = "moderate"           # x1.0
    OPEN = "open"                   # x0.8


class VulnerabilityFactor(Enum):
    CONTENT_CREATOR = "content_creator"
    PUBLIC_FIGURE = "public_figure"
    HIGH_VISIBILITY_BUSINESS = "high_visibility_business"
    YOUNG_ENTREPRENEUR = "young_entrepreneur"
    SOLO_FOUNDER = "solo_founder"
    INTERNATIONAL_BUSINESS = "international_business"
    TECH_INDUSTRY = "tech_industry"
    CONSULTING = "consulting"
    EDUCATION = "education"
    HEALTHCARE = "healthcare"
    FINANCE = "finance"
    OTHER = "other"


class Protection(Enum):
    CONTENT_ANALYSIS = "content_analysis"
    CONTACT_VERIFICATION = "contact_verification"
    PRIVACY_CONTROLS = "privacy_controls"
    THREAT_DETECTION = "threat_detection"
    EMERGENCY_RESPONSE = "emergency_response"
    COMMUNITY_SUPPORT = "community_support"
    ENCRYPTED_COMMUNICATION = "encrypted_communication"
    SAFE_NETWORKING = "safe_networking"
    BRAND_MONITORING = "brand_monitoring"
    INCIDENT_REPORTING = "incident_reporting"


class ProtectionLevel(Enum):
    """Derived tier; always a function of the overall risk score."""
    STANDARD = "standard"   # score < 5
    ELEVATED = "elevated"   # 5 <= score < 8
    MAXIMUM = "maximum"     # score >= 8


class CulturalContext(Enum):
    KENYAN = "kenyan"
    EAST_AFRICAN = "east_african"
    INTERNATIONAL = "international"


class ContactRelationship(Enum):
    FAMILY = "family"
    FRIEND = "friend"
    COLLEAGUE = "colleague"
    LEGAL = "legal"
    SUPPORT_ORGANIZATION = "support_organization"
    OTHER = "other"


class ContactMethod(Enum):
    PHONE = "phone"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Incidents
# ---------------------------------------------------------------------------

class IncidentType(Enum):
    HARASSMENT = "harassment"
    CYBERBULLYING = "cyberbullying"
    DOXXING = "doxxing"
    FINANCIAL_FRAUD = "financial_fraud"
    IMPERSONATION = "impersonation"
    PRIVACY_VIOLATION = "privacy_violation"
    PROFESSIONAL_SABOTAGE = "professional_sabotage"
    THREAT = "threat"
    STALKING = "stalking"
    HATE_SPEECH = "hate_speech"
    DISCRIMINATION = "discrimination"
    OTHER = "other"


class IncidentStatus(Enum):
    REPORTED = "reported"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    ESCALATED = "escalated"
    DISMISSED = "dismissed"


class IncidentPlatform(Enum):
    LINKEDIN = "linkedin"
    EMAIL = "email"
    SOCIAL_MEDIA = "social_media"
    PHONE = "phone"
    IN_PERSON = "in_person"
    OTHER = "other"


class PerpetratorRelationship(Enum):
    STRANGER = "stranger"
    ACQUAINTANCE = "acquaintance"
    COLLEAGUE = "colleague"
    CLIENT = "client"
    COMPETITOR = "competitor"
    FORMER_PARTNER = "former_partner"
    OTHER = "other"


class IncidentAction(Enum):
    BLOCKED_USER = "blocked_user"
    REPORTED_PLATFORM = "reported_platform"
    CONTACTED_SUPPORT = "contacted_support"
    DOCUMENTED_EVIDENCE = "documented_evidence"
    CHANGED_PRIVACY_SETTINGS = "changed_privacy_settings"
    CONTACTED_AUTHORITIES = "contacted_authorities"
    SOUGHT_LEGAL_ADVICE = "sought_legal_advice"
    INFORMED_EMERGENCY_CONTACTS = "informed_emergency_contacts"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Community threats
# ---------------------------------------------------------------------------

class ThreatCategory(Enum):
    HARASSMENT = "harassment"
    CYBERBULLYING = "cyberbullying"
    FINANCIAL_FRAUD = "financial_fraud"
    PRIVACY_VIOLATION = "privacy_violation"
    IMPERSONATION = "impersonation"
    PROFESSIONAL_SABOTAGE = "professional_sabotage"
    DOXXING = "doxxing"
    STALKING = "stalking"
    HATE_SPEECH = "hate_speech"
    DISCRIMINATION = "discrimination"
    SCAM = "scam"
    PHISHING = "phishing"
    OTHER = "other"


class ThreatRegion(Enum):
    NAIROBI = "nairobi"
    MOMBASA = "mombasa"
    KISUMU = "kisumu"
    NAKURU = "nakuru"
    ELDORET = "eldoret"
    KENYA = "kenya"
    EAST_AFRICA = "east_africa"
    INTERNATIONAL = "international"


class IndustrySector(Enum):
    TECHNOLOGY = "technology"
    CONSULTING = "consulting"
    EDUCATION = "education"
    HEALTHCARE = "healthcare"
    FINANCE = "finance"
    RETAIL = "retail"
    MANUFACTURING = "manufacturing"
    AGRICULTURE = "agriculture"
    TOURISM = "tourism"
    MEDIA = "media"
    NON_PROFIT = "non_profit"
    GOVERNMENT = "government"
    OTHER = "other"


class TargetDemographic(Enum):
    WOMEN_ENTREPRENEURS = "women_entrepreneurs"
    CONTENT_CREATORS = "content_creators"
    YOUNG_PROFESSIONALS = "young_professionals"
    ESTABLISHED_BUSINESS_OWNERS = "established_business_owners"
    TECH_WORKERS = "tech_workers"
    CONSULTANTS = "consultants"
    FREELANCERS = "freelancers"
    ALL = "all"


class ThreatTrend(Enum):
    NEW = "new"
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class UrgencyLevel(Enum):
    """Derived on read from severity and report recency; never stored."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MitigationDifficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class VerificationSource(Enum):
    USER_REPORTS = "user_reports"
    AI_ANALYSIS = "ai_analysis"
    EXPERT_REVIEW = "expert_review"
    OFFICIAL_SOURCE = "official_source"


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------

class AuditActionType(Enum):
    SAFETY_ASSESSMENT = "safety_assessment"
    CONTENT_ANALYSIS = "content_analysis"
    THREAT_DETECTION = "threat_detection"
    CONTACT_VERIFICATION = "contact_verification"
    PRIVACY_SETTING_CHANGE = "privacy_setting_change"
    INCIDENT_REPORT = "incident_report"
    EMERGENCY_ACTIVATION = "emergency_activation"
    SUPPORT_CONTACT = "support_contact"
    AI_RECOMMENDATION = "ai_recommendation"
    USER_OVERRIDE = "user_override"
    SYSTEM_ALERT = "system_alert"
    DATA_ACCESS = "data_access"
    DATA_EXPORT = "data_export"
    DATA_DELETION = "data_deletion"
    CONSENT_GIVEN = "consent_given"
    CONSENT_WITHDRAWN = "consent_withdrawn"
    INTEGRATION_CONNECTED = "integration_connected"
    INTEGRATION_DISCONNECTED = "integration_disconnected"
    PROFILE_UPDATE = "profile_update"
    RISK_REASSESSMENT = "risk_reassessment"
    OTHER = "other"


class AuditContext(Enum):
    DASHBOARD = "dashboard"
    CONTENT_CREATION = "content_creation"
    NETWORKING = "networking"
    COMMUNICATION = "communication"
    SETTINGS = "settings"
    EMERGENCY = "emergency"
    SYSTEM = "system"
    OTHER = "other"


class AuditPlatform(Enum):
    WEB = "web"
    MOBILE = "mobile"
    API = "api"
    SYSTEM = "system"
    INTEGRATION = "integration"


class AuditFeature(Enum):
    AI_SAFETY_MENTOR = "ai_safety_mentor"
    CONTENT_ANALYZER = "content_analyzer"
    THREAT_DETECTOR = "threat_detector"
    CONTACT_VERIFIER = "contact_verifier"
    PRIVACY_CONTROLS = "privacy_controls"
    INCIDENT_REPORTER = "incident_reporter"
    EMERGENCY_RESPONSE = "emergency_response"
    COMMUNITY_INTELLIGENCE = "community_intelligence"
    SAFE_NETWORKING = "safe_networking"
    ENCRYPTED_NOTES = "encrypted_notes"
    OTHER = "other"


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Numeric encoding used in statistics (low=1 .. critical=4)."""
        return _RISK_LEVEL_RANK[self]


_RISK_LEVEL_RANK = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class AuditOutcome(Enum):
    SUCCESS = "success"
    WARNING = "warning"
    BLOCKED = "blocked"
    ESCALATED = "escalated"
    IGNORED = "ignored"
    PENDING = "pending"


class Severity(Enum):
    """Severity label attached to a single content-risk dimension."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def parse_enum(enum_cls: Type[E], value, field: str = "") -> E:
    """Parse a raw value into enum_cls.

    Accepts an existing member or its string value.

    Raises:
        InvalidInputError: If value is not a member of enum_cls
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidInputError(
            f"Invalid {field or enum_cls.__name__}: {value!r} (allowed: {allowed})",
            field=field,
        )


def parse_enum_list(
    enum_cls: Type[E],
    values: Optional[Iterable],
    field: str = "",
) -> List[E]:
    """Parse a list of raw values, dropping duplicates but keeping order."""
    parsed: List[E] = []
    for value in values or []:
        member = parse_enum(enum_cls, value, field)
        if member not in parsed:
            parsed.append(member)
    return parsed
