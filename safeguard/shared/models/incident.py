"""Safety incident domain model and the anonymized community payload."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from safeguard.shared.utils import to_iso, from_iso
from .safety import (
    IncidentAction,
    IncidentPlatform,
    IncidentStatus,
    IncidentType,
    PerpetratorRelationship,
    parse_enum,
)

MIN_SEVERITY = 1
MAX_SEVERITY = 10


@dataclass(frozen=True)
class PerpetratorInfo:
    is_known: bool = False
    relationship: Optional[PerpetratorRelationship] = None
    contact_info: Optional[str] = None                  # PII
    social_profiles: List[str] = field(default_factory=list)   # PII

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isKnown": self.is_known,
            "relationship": self.relationship.value if self.relationship else None,
            "contactInfo": self.contact_info,
            "socialProfiles": list(self.social_profiles),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PerpetratorInfo":
        data = data or {}
        relationship = data.get("relationship")
        return cls(
            is_known=bool(data.get("isKnown", False)),
            relationship=(
                parse_enum(PerpetratorRelationship, relationship, "perpetratorInfo.relationship")
                if relationship else None
            ),
            contact_info=data.get("contactInfo"),
            social_profiles=list(data.get("socialProfiles") or []),
        )


@dataclass(frozen=True)
class Evidence:
    evidence_type: str = "other"    # screenshot, email, message, audio, video, document
    url: Optional[str] = None
    description: str = ""
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.evidence_type,
            "url": self.url,
            "description": self.description,
            "timestamp": to_iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Evidence":
        return cls(
            evidence_type=data.get("type", "other"),
            url=data.get("url"),
            description=data.get("description", ""),
            timestamp=from_iso(data.get("timestamp")),
        )


@dataclass(frozen=True)
class ActionTaken:
    action: IncidentAction
    timestamp: Optional[datetime] = None
    details: str = ""
    outcome: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "timestamp": to_iso(self.timestamp),
            "details": self.details,
            "outcome": self.outcome,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionTaken":
        return cls(
            action=parse_enum(IncidentAction, data["action"], "actionsTaken.action"),
            timestamp=from_iso(data.get("timestamp")),
            details=data.get("details", ""),
            outcome=data.get("outcome", ""),
        )


@dataclass(frozen=True)
class ImpactAssessment:
    """Self-reported impact, each dimension 1-10."""
    emotional: int = 1
    business: int = 1
    financial: int = 1
    professional: int = 1

    def __post_init__(self):
        for name in ("emotional", "business", "financial", "professional"):
            value = getattr(self, name)
            if not MIN_SEVERITY <= value <= MAX_SEVERITY:
                raise ValueError(f"{name} impact must be 1-10, got {value}")

    @property
    def total_impact_score(self) -> float:
        return (self.emotional + self.business + self.financial + self.professional) / 4

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emotionalImpact": self.emotional,
            "businessImpact": self.business,
            "financialImpact": self.financial,
            "professionalImpact": self.professional,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ImpactAssessment":
        data = data or {}
        return cls(
            emotional=int(data.get("emotionalImpact", 1)),
            business=int(data.get("businessImpact", 1)),
            financial=int(data.get("financialImpact", 1)),
            professional=int(data.get("professionalImpact", 1)),
        )


@dataclass(frozen=True)
class CommunityContribution:
    anonymized: bool = False
    pattern_id: Optional[str] = None
    contributed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anonymized": self.anonymized,
            "patternId": self.pattern_id,
            "contributedAt": to_iso(self.contributed_at),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CommunityContribution":
        data = data or {}
        return cls(
            anonymized=bool(data.get("anonymized", False)),
            pattern_id=data.get("patternId"),
            contributed_at=from_iso(data.get("contributedAt")),
        )


@dataclass(frozen=True)
class IncidentResolution:
    resolved_at: datetime
    details: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"resolvedAt": to_iso(self.resolved_at), "resolutionDetails": self.details}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["IncidentResolution"]:
        if not data:
            return None
        return cls(
            resolved_at=from_iso(data["resolvedAt"]),
            details=data.get("resolutionDetails", ""),
        )


@dataclass(frozen=True)
class AnonymizedIncident:
    """Incident projection safe to leave the user's trust boundary.

    No user id, description, encrypted details, perpetrator contact or
    social profiles, evidence or resolution.
    """
    incident_type: IncidentType
    severity_level: int
    platform: IncidentPlatform
    perpetrator_known: bool
    perpetrator_relationship: Optional[PerpetratorRelationship]
    actions_taken: List[Dict[str, Any]]     # action, timestamp, outcome
    impact_assessment: ImpactAssessment
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incidentType": self.incident_type.value,
            "severityLevel": self.severity_level,
            "platform": self.platform.value,
            "perpetratorInfo": {
                "isKnown": self.perpetrator_known,
                "relationship": (
                    self.perpetrator_relationship.value
                    if self.perpetrator_relationship else None
                ),
            },
            "actionsTaken": self.actions_taken,
            "impactAssessment": self.impact_assessment.to_dict(),
            "createdAt": to_iso(self.created_at),
        }


@dataclass(frozen=True)
class SafetyIncident:
    incident_id: str
    user_id: str
    incident_type: IncidentType
    severity_level: int
    description: str
    status: IncidentStatus = IncidentStatus.REPORTED
    platform: IncidentPlatform = IncidentPlatform.OTHER
    encrypted_details: Optional[str] = None
    perpetrator_info: PerpetratorInfo = field(default_factory=PerpetratorInfo)
    evidence: List[Evidence] = field(default_factory=list)
    actions_taken: List[ActionTaken] = field(default_factory=list)
    impact_assessment: ImpactAssessment = field(default_factory=ImpactAssessment)
    community_contribution: CommunityContribution = field(
        default_factory=CommunityContribution
    )
    resolution: Optional[IncidentResolution] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not MIN_SEVERITY <= self.severity_level <= MAX_SEVERITY:
            raise ValueError(f"Severity level must be 1-10, got {self.severity_level}")

    @property
    def total_impact_score(self) -> float:
        return self.impact_assessment.total_impact_score

    def anonymize_for_community(self) -> AnonymizedIncident:
        return AnonymizedIncident(
            incident_type=self.incident_type,
            severity_level=self.severity_level,
            platform=self.platform,
            perpetrator_known=self.perpetrator_info.is_known,
            perpetrator_relationship=self.perpetrator_info.relationship,
            actions_taken=[
                {
                    "action": a.action.value,
                    "timestamp": to_iso(a.timestamp),
                    "outcome": a.outcome,
                }
                for a in self.actions_taken
            ],
            impact_assessment=self.impact_assessment,
            created_at=self.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incidentId": self.incident_id,
            "userId": self.user_id,
            "incidentType": self.incident_type.value,
            "severityLevel": self.severity_level,
            "description": self.description,
            "status": self.status.value,
            "platform": self.platform.value,
            "encryptedDetails": self.encrypted_details,
            "perpetratorInfo": self.perpetrator_info.to_dict(),
            "evidence": [e.to_dict() for e in self.evidence],
            "actionsTaken": [a.to_dict() for a in self.actions_taken],
            "impactAssessment": self.impact_assessment.to_dict(),
            "communityContribution": self.community_contribution.to_dict(),
            "resolution": self.resolution.to_dict() if self.resolution else None,
            "isActive": self.is_active,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """API view; encrypted details and perpetrator contact stay hidden."""
        data = self.to_dict()
        data.pop("encryptedDetails")
        data["perpetratorInfo"].pop("contactInfo")
        data["totalImpactScore"] = self.total_impact_score
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SafetyIncident":
        return cls(
            incident_id=data["incidentId"],
            user_id=data["userId"],
            incident_type=parse_enum(IncidentType, data["incidentType"], "incidentType"),
            severity_level=int(data["severityLevel"]),
            description=data["description"],
            status=parse_enum(IncidentStatus, data["status"], "status"),
            platform=parse_enum(IncidentPlatform, data["platform"], "platform"),
            encrypted_details=data.get("encryptedDetails"),
            perpetrator_info=PerpetratorInfo.from_dict(data.get("perpetratorInfo")),
            evidence=[Evidence.from_dict(e) for e in data.get("evidence", [])],
            actions_taken=[ActionTaken.from_dict(a) for a in data.get("actionsTaken", [])],
            impact_assessment=ImpactAssessment.from_dict(data.get("impactAssessment")),
            community_contribution=CommunityContribution.from_dict(
                data.get("communityContribution")
            ),
            resolution=IncidentResolution.from_dict(data.get("resolution")),
            is_active=data.get("isActive", True),
            created_at=from_iso(data["createdAt"]),
            updated_at=from_iso(data["updatedAt"]),
        )


@dataclass(frozen=True)
class IncidentTypeStats:
    incident_type: IncidentType
    count: int
    avg_severity: float
    avg_impact: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incidentType": self.incident_type.value,
            "count": self.count,
            "avgSeverity": round(self.avg_severity, 2),
            "avgImpact": round(self.avg_impact, 2),
        }


def summarize_incidents_by_type(incidents: List[SafetyIncident]) -> List[IncidentTypeStats]:
    """Per-type count, mean severity and mean total impact, most frequent first."""
    grouped: Dict[IncidentType, List[SafetyIncident]] = {}
    for incident in incidents:
        grouped.setdefault(incident.incident_type, []).append(incident)

    stats = [
        IncidentTypeStats(
            incident_type=incident_type,
            count=len(group),
            avg_severity=sum(i.severity_level for i in group) / len(group),
            avg_impact=sum(i.total_impact_score for i in group) / len(group),
        )
        for incident_type, group in grouped.items()
    ]
    stats.sort(key=lambda s: s.count, reverse=True)
    return stats
