"""Threat aggregation tables: category mapping, mitigations, profile context."""
from typing import Dict, Tuple

from safeguard.shared.models import (
    CulturalContext,
    IncidentAction,
    IncidentType,
    IndustrySector,
    MitigationDifficulty,
    MitigationStrategy,
    TargetDemographic,
    ThreatCategory,
    ThreatRegion,
    VulnerabilityFactor,
)


# Trend windows in days
NEW_THREAT_DAYS = 7
INCREASING_THREAT_DAYS = 3
STABLE_THREAT_DAYS = 14

# (minimum severity, maximum days since last report) per urgency tier
CRITICAL_URGENCY = (8, 7)
HIGH_URGENCY = (6, 14)
MEDIUM_URGENCY = (4, 30)

DEFAULT_RELEVANT_LIMIT = 10
DEFAULT_STATS_DAYS = 30

INCIDENT_CATEGORY_MAP: Dict[IncidentType, ThreatCategory] = {
    IncidentType.HARASSMENT: ThreatCategory.HARASSMENT,
    IncidentType.CYBERBULLYING: ThreatCategory.CYBERBULLYING,
    IncidentType.DOXXING: ThreatCategory.DOXXING,
    IncidentType.FINANCIAL_FRAUD: ThreatCategory.FINANCIAL_FRAUD,
    IncidentType.IMPERSONATION: ThreatCategory.IMPERSONATION,
    IncidentType.PRIVACY_VIOLATION: ThreatCategory.PRIVACY_VIOLATION,
    IncidentType.PROFESSIONAL_SABOTAGE: ThreatCategory.PROFESSIONAL_SABOTAGE,
    IncidentType.THREAT: ThreatCategory.HARASSMENT,
    IncidentType.STALKING: ThreatCategory.STALKING,
    IncidentType.HATE_SPEECH: ThreatCategory.HATE_SPEECH,
    IncidentType.DISCRIMINATION: ThreatCategory.DISCRIMINATION,
    IncidentType.OTHER: ThreatCategory.OTHER,
}

# What worked for the reporting user becomes advice for everyone else
ACTION_MITIGATIONS: Dict[IncidentAction, MitigationStrategy] = {
    IncidentAction.BLOCKED_USER: MitigationStrategy(
        strategy="Block the account on every platform it used to reach you",
        effectiveness=7,
        difficulty=MitigationDifficulty.EASY,
    ),
    IncidentAction.REPORTED_PLATFORM: MitigationStrategy(
        strategy="Report the account to the platform's trust and safety team",
        effectiveness=6,
        difficulty=MitigationDifficulty.EASY,
    ),
    IncidentAction.CONTACTED_SUPPORT: MitigationStrategy(
        strategy="Reach out to a support organization for guidance",
        effectiveness=6,
        difficulty=MitigationDifficulty.EASY,
    ),
    IncidentAction.DOCUMENTED_EVIDENCE: MitigationStrategy(
        strategy="Keep dated screenshots and message exports as evidence",
        effectiveness=8,
        difficulty=MitigationDifficulty.EASY,
    ),
    IncidentAction.CHANGED_PRIVACY_SETTINGS: MitigationStrategy(
        strategy="Restrict profile visibility and who can contact you",
        effectiveness=7,
        difficulty=MitigationDifficulty.MEDIUM,
    ),
    IncidentAction.CONTACTED_AUTHORITIES: MitigationStrategy(
        strategy="File a report with the police cybercrime unit",
        effectiveness=8,
        difficulty=MitigationDifficulty.HARD,
        resources=["National Police Service", "Communications Authority of Kenya"],
    ),
    IncidentAction.SOUGHT_LEGAL_ADVICE: MitigationStrategy(
        strategy="Consult a lawyer about legal recourse",
        effectiveness=7,
        difficulty=MitigationDifficulty.HARD,
    ),
    IncidentAction.INFORMED_EMERGENCY_CONTACTS: MitigationStrategy(
        strategy="Tell a trusted contact what is happening",
        effectiveness=5,
        difficulty=MitigationDifficulty.EASY,
    ),
}

# Used when a contribution carries no actions
BASELINE_MITIGATION = MitigationStrategy(
    strategy="Document every contact and avoid engaging with the sender",
    effectiveness=5,
    difficulty=MitigationDifficulty.EASY,
)

REGION_BY_CULTURAL_CONTEXT: Dict[CulturalContext, ThreatRegion] = {
    CulturalContext.KENYAN: ThreatRegion.KENYA,
    CulturalContext.EAST_AFRICAN: ThreatRegion.EAST_AFRICA,
    CulturalContext.INTERNATIONAL: ThreatRegion.INTERNATIONAL,
}

DEFAULT_SECTOR = IndustrySector.TECHNOLOGY

SECTOR_BY_FACTOR: Tuple[Tuple[VulnerabilityFactor, IndustrySector], ...] = (
    (VulnerabilityFactor.FINANCE, IndustrySector.FINANCE),
    (VulnerabilityFactor.HEALTHCARE, IndustrySector.HEALTHCARE),
    (VulnerabilityFactor.EDUCATION, IndustrySector.EDUCATION),
    (VulnerabilityFactor.CONSULTING, IndustrySector.CONSULTING),
    (VulnerabilityFactor.TECH_INDUSTRY, IndustrySector.TECHNOLOGY),
)

# First matching factor wins
DEMOGRAPHIC_BY_FACTOR: Tuple[Tuple[VulnerabilityFactor, TargetDemographic], ...] = (
    (VulnerabilityFactor.CONTENT_CREATOR, TargetDemographic.CONTENT_CREATORS),
    (VulnerabilityFactor.YOUNG_ENTREPRENEUR, TargetDemographic.YOUNG_PROFESSIONALS),
)
