"""Safety profile domain model.

One profile per user. protection_level is always derived from
risk_assessment.overall_score, except for the explicit override applied
when a severe incident is reported (re-derived on the next assessment).
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from safeguard.shared.utils import to_iso, from_iso
from .safety import (
    ContactMethod,
    ContactRelationship,
    CulturalContext,
    Protection,
    ProtectionLevel,
    RiskTolerance,
    VulnerabilityFactor,
    parse_enum,
    parse_enum_list,
)


DEFAULT_PROTECTIONS = (Protection.CONTENT_ANALYSIS, Protection.PRIVACY_CONTROLS)
DEFAULT_LANGUAGES = ("en",)


@dataclass(frozen=True)
class EmergencyContact:
    name: str
    relationship: ContactRelationship
    contact_method: ContactMethod
    contact_info: str       # PII - never logged
    is_primary: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "relationship": self.relationship.value,
            "contactMethod": self.contact_method.value,
            "contactInfo": self.contact_info,
            "isPrimary": self.is_primary,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmergencyContact":
        return cls(
            name=data["name"],
            relationship=parse_enum(
                ContactRelationship, data.get("relationship", "other"), "relationship"
            ),
            contact_method=parse_enum(ContactMethod, data["contactMethod"], "contactMethod"),
            contact_info=data["contactInfo"],
            is_primary=bool(data.get("isPrimary", False)),
        )


@dataclass(frozen=True)
class RiskFactor:
    """One additive contribution to the overall risk score."""
    category: str           # vulnerability, incidents, technical
    factor: str
    score: float
    details: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "factor": self.factor,
            "score": self.score,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskFactor":
        return cls(
            category=data["category"],
            factor=data.get("factor", ""),
            score=float(data["score"]),
            details=data.get("details", ""),
        )


@dataclass(frozen=True)
class RiskAssessment:
    overall_score: float = 0.0      # 0.0 to 10.0
    last_assessed: Optional[datetime] = None
    factors: List[RiskFactor] = field(default_factory=list)

    def __post_init__(self):
        if not 0.0 <= self.overall_score <= 10.0:
            raise ValueError(f"Overall score must be 0.0-10.0, got {self.overall_score}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallScore": self.overall_score,
            "lastAssessed": to_iso(self.last_assessed),
            "factors": [f.to_dict() for f in self.factors],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskAssessment":
        return cls(
            overall_score=float(data.get("overallScore", 0.0)),
            last_assessed=from_iso(data.get("lastAssessed")),
            factors=[RiskFactor.from_dict(f) for f in data.get("factors", [])],
        )


@dataclass(frozen=True)
class SafetyProfile:
    """Per-user safety settings and the latest risk assessment."""
    user_id: str
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE
    vulnerability_factors: List[VulnerabilityFactor] = field(default_factory=list)
    preferred_protections: List[Protection] = field(
        default_factory=lambda: list(DEFAULT_PROTECTIONS)
    )
    emergency_contacts: List[EmergencyContact] = field(default_factory=list)
    cultural_context: CulturalContext = CulturalContext.KENYAN
    language_preferences: List[str] = field(default_factory=lambda: list(DEFAULT_LANGUAGES))
    risk_assessment: RiskAssessment = field(default_factory=RiskAssessment)
    protection_level: ProtectionLevel = ProtectionLevel.STANDARD
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "riskTolerance": self.risk_tolerance.value,
            "vulnerabilityFactors": [f.value for f in self.vulnerability_factors],
            "preferredProtections": [p.value for p in self.preferred_protections],
            "emergencyContacts": [c.to_dict() for c in self.emergency_contacts],
            "culturalContext": self.cultural_context.value,
            "languagePreferences": list(self.language_preferences),
            "riskAssessment": self.risk_assessment.to_dict(),
            "protectionLevel": self.protection_level.value,
            "isActive": self.is_active,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SafetyProfile":
        return cls(
            user_id=data["userId"],
            risk_tolerance=parse_enum(RiskTolerance, data["riskTolerance"], "riskTolerance"),
            vulnerability_factors=parse_enum_list(
                VulnerabilityFactor, data.get("vulnerabilityFactors"), "vulnerabilityFactors"
            ),
            preferred_protections=parse_enum_list(
                Protection, data.get("preferredProtections"), "preferredProtections"
            ),
            emergency_contacts=[
                EmergencyContact.from_dict(c) for c in data.get("emergencyContacts", [])
            ],
            cultural_context=parse_enum(
                CulturalContext, data.get("culturalContext", "kenyan"), "culturalContext"
            ),
            language_preferences=list(data.get("languagePreferences", DEFAULT_LANGUAGES)),
            risk_assessment=RiskAssessment.from_dict(data.get("riskAssessment", {})),
            protection_level=parse_enum(
                ProtectionLevel, data["protectionLevel"], "protectionLevel"
            ),
            is_active=data.get("isActive", True),
            created_at=from_iso(data["createdAt"]),
            updated_at=from_iso(data["updatedAt"]),
        )
