"""Community threat domain model.

Threats are global and deduplicated by threat_pattern_hash. trend is
stored and recomputed on every report; urgency is never stored.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from safeguard.shared.utils import to_iso, from_iso
from .safety import (
    IndustrySector,
    MitigationDifficulty,
    TargetDemographic,
    ThreatCategory,
    ThreatRegion,
    ThreatTrend,
    VerificationSource,
    parse_enum,
)


@dataclass(frozen=True)
class MitigationStrategy:
    strategy: str
    effectiveness: int = 5      # 1-10
    difficulty: MitigationDifficulty = MitigationDifficulty.MEDIUM
    resources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "effectiveness": self.effectiveness,
            "difficulty": self.difficulty.value,
            "resources": list(self.resources),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MitigationStrategy":
        return cls(
            strategy=data["strategy"],
            effectiveness=int(data.get("effectiveness", 5)),
            difficulty=parse_enum(
                MitigationDifficulty, data.get("difficulty", "medium"), "difficulty"
            ),
            resources=list(data.get("resources") or []),
        )


@dataclass(frozen=True)
class CommunityThreat:
    threat_pattern_hash: str
    threat_category: ThreatCategory
    severity_score: int                 # 1-10
    threat_description: str
    first_reported: datetime
    last_reported: datetime
    geographic_region: ThreatRegion = ThreatRegion.KENYA
    industry_sector: Optional[IndustrySector] = None
    target_demographic: TargetDemographic = TargetDemographic.ALL
    common_indicators: List[str] = field(default_factory=list)
    mitigation_strategies: List[MitigationStrategy] = field(default_factory=list)
    reported_count: int = 1
    trend: ThreatTrend = ThreatTrend.NEW
    is_active: bool = True
    is_verified: bool = False
    verification_source: Optional[VerificationSource] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not 1 <= self.severity_score <= 10:
            raise ValueError(f"Severity score must be 1-10, got {self.severity_score}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threatPatternHash": self.threat_pattern_hash,
            "threatCategory": self.threat_category.value,
            "severityScore": self.severity_score,
            "threatDescription": self.threat_description,
            "firstReported": to_iso(self.first_reported),
            "lastReported": to_iso(self.last_reported),
            "geographicRegion": self.geographic_region.value,
            "industrySector": self.industry_sector.value if self.industry_sector else None,
            "targetDemographic": self.target_demographic.value,
            "commonIndicators": list(self.common_indicators),
            "mitigationStrategies": [m.to_dict() for m in self.mitigation_strategies],
            "reportedCount": self.reported_count,
            "trend": self.trend.value,
            "isActive": self.is_active,
            "isVerified": self.is_verified,
            "verificationSource": (
                self.verification_source.value if self.verification_source else None
            ),
            "updatedAt": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommunityThreat":
        sector = data.get("industrySector")
        source = data.get("verificationSource")
        return cls(
            threat_pattern_hash=data["threatPatternHash"],
            threat_category=parse_enum(ThreatCategory, data["threatCategory"], "threatCategory"),
            severity_score=int(data["severityScore"]),
            threat_description=data["threatDescription"],
            first_reported=from_iso(data["firstReported"]),
            last_reported=from_iso(data["lastReported"]),
            geographic_region=parse_enum(
                ThreatRegion, data.get("geographicRegion", "kenya"), "geographicRegion"
            ),
            industry_sector=(
                parse_enum(IndustrySector, sector, "industrySector") if sector else None
            ),
            target_demographic=parse_enum(
                TargetDemographic, data.get("targetDemographic", "all"), "targetDemographic"
            ),
            common_indicators=list(data.get("commonIndicators") or []),
            mitigation_strategies=[
                MitigationStrategy.from_dict(m) for m in data.get("mitigationStrategies", [])
            ],
            reported_count=int(data.get("reportedCount", 1)),
            trend=parse_enum(ThreatTrend, data.get("trend", "new"), "trend"),
            is_active=data.get("isActive", True),
            is_verified=data.get("isVerified", False),
            verification_source=(
                parse_enum(VerificationSource, source, "verificationSource") if source else None
            ),
            updated_at=from_iso(data.get("updatedAt")),
        )
