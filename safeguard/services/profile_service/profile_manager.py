"""Safety profile manager - per-user risk scoring and protection level.

The overall risk score is an additive sum, clamped to [0, 10], of:
- a fixed weight per vulnerability factor
- half the mean severity of the user's incidents in the last 30 days
- +1 when the user has more than three connected integrations

The protection level is a pure function of that score. Profiles are
created lazily with documented defaults and never hard-deleted.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from safeguard.shared.database import NotFoundError
from safeguard.shared.exceptions import InvalidInputError
from safeguard.shared.models import (
    AuditActionType,
    AuditContext,
    AuditFeature,
    AuditPlatform,
    ContactMethod,
    ContactRelationship,
    CulturalContext,
    EmergencyContact,
    Protection,
    ProtectionLevel,
    RiskAssessment,
    RiskFactor,
    RiskLevel,
    RiskTolerance,
    SafetyIncident,
    SafetyProfile,
    VulnerabilityFactor,
    parse_enum,
    parse_enum_list,
    summarize_incidents_by_type,
)
from safeguard.shared.utils import hash_pii, to_iso
from safeguard.services.audit_service import AuditLedger
from .config import (
    DEFAULT_REASSESSMENT_DAYS,
    DEFAULT_VULNERABILITY_WEIGHT,
    ELEVATED_PROTECTION_THRESHOLD,
    INCIDENT_SEVERITY_FACTOR,
    INCIDENT_WINDOW_DAYS,
    INTEGRATION_EXPOSURE_SCORE,
    INTEGRATION_EXPOSURE_THRESHOLD,
    MAX_RISK_SCORE,
    MAXIMUM_PROTECTION_THRESHOLD,
    MIN_RISK_SCORE,
    VULNERABILITY_WEIGHTS,
)
from .profile_repository import SafetyProfileRepository, UserDirectory

logger = logging.getLogger(__name__)


# Fields a caller may set through upsert(); everything else is derived
EDITABLE_FIELDS = frozenset({
    "riskTolerance",
    "vulnerabilityFactors",
    "preferredProtections",
    "emergencyContacts",
    "culturalContext",
    "languagePreferences",
})


def derive_protection_level(score: float) -> ProtectionLevel:
    if score >= MAXIMUM_PROTECTION_THRESHOLD:
        return ProtectionLevel.MAXIMUM
    if score >= ELEVATED_PROTECTION_THRESHOLD:
        return ProtectionLevel.ELEVATED
    return ProtectionLevel.STANDARD


def compute_risk_assessment(
    vulnerability_factors: List[VulnerabilityFactor],
    recent_incidents: List[SafetyIncident],
    connected_integration_count: int,
    now: datetime,
) -> RiskAssessment:
    """Recompute the risk assessment. Pure; lastAssessed is always now."""
    factors: List[RiskFactor] = []

    for factor in vulnerability_factors:
        weight = VULNERABILITY_WEIGHTS.get(factor, DEFAULT_VULNERABILITY_WEIGHT)
        factors.append(RiskFactor(
            category="vulnerability",
            factor=factor.value,
            score=weight,
            details=f"Vulnerability factor: {factor.value}",
        ))

    if recent_incidents:
        avg_severity = sum(i.severity_level for i in recent_incidents) / len(recent_incidents)
        factors.append(RiskFactor(
            category="incidents",
            factor="recent_incidents",
            score=avg_severity * INCIDENT_SEVERITY_FACTOR,
            details=f"{len(recent_incidents)} incidents in last {INCIDENT_WINDOW_DAYS} days",
        ))

    if connected_integration_count > INTEGRATION_EXPOSURE_THRESHOLD:
        factors.append(RiskFactor(
            category="technical",
            factor="integration_exposure",
            score=INTEGRATION_EXPOSURE_SCORE,
            details=f"{connected_integration_count} connected integrations",
        ))

    total = sum(f.score for f in factors)
    return RiskAssessment(
        overall_score=min(MAX_RISK_SCORE, max(MIN_RISK_SCORE, total)),
        last_assessed=now,
        factors=factors,
    )


def parse_profile_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate caller-supplied profile fields into dataclass keyword arguments.

    Raises:
        InvalidInputError: On unknown or derived fields, or invalid values
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise InvalidInputError(
            f"Fields cannot be set: {', '.join(sorted(unknown))}",
            field=sorted(unknown)[0],
        )

    parsed: Dict[str, Any] = {}
    if "riskTolerance" in changes:
        parsed["risk_tolerance"] = parse_enum(
            RiskTolerance, changes["riskTolerance"], "riskTolerance"
        )
    if "vulnerabilityFactors" in changes:
        parsed["vulnerability_factors"] = parse_enum_list(
            VulnerabilityFactor, changes["vulnerabilityFactors"], "vulnerabilityFactors"
        )
    if "preferredProtections" in changes:
        parsed["preferred_protections"] = parse_enum_list(
            Protection, changes["preferredProtections"], "preferredProtections"
        )
    if "culturalContext" in changes:
        parsed["cultural_context"] = parse_enum(
            CulturalContext, changes["culturalContext"], "culturalContext"
        )
    if "languagePreferences" in changes:
        languages = changes["languagePreferences"]
        if not isinstance(languages, list) or not all(isinstance(lang, str) for lang in languages):
            raise InvalidInputError(
                "languagePreferences must be a list of language codes",
                field="languagePreferences",
            )
        parsed["language_preferences"] = list(languages)
    if "emergencyContacts" in changes:
        parsed["emergency_contacts"] = [
            _parse_contact(contact) for contact in changes["emergencyContacts"] or []
        ]
    return parsed


def _parse_contact(data: Mapping[str, Any]) -> EmergencyContact:
    if not isinstance(data, Mapping):
        raise InvalidInputError("Emergency contact must be an object", field="emergencyContacts")
    for required in ("name", "contactMethod", "contactInfo"):
        if not data.get(required):
            raise InvalidInputError(
                f"Emergency contact requires {required}", field=f"emergencyContacts.{required}"
            )
    return EmergencyContact(
        name=data["name"],
        relationship=parse_enum(
            ContactRelationship, data.get("relationship", "other"), "emergencyContacts.relationship"
        ),
        contact_method=parse_enum(
            ContactMethod, data["contactMethod"], "emergencyContacts.contactMethod"
        ),
        contact_info=data["contactInfo"],
        is_primary=bool(data.get("isPrimary", False)),
    )


@dataclass(frozen=True)
class RiskAssessmentResult:
    profile: SafetyProfile
    risk_factors: List[RiskFactor]
    overall_score: float
    protection_level: ProtectionLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.to_dict(),
            "riskFactors": [f.to_dict() for f in self.risk_factors],
            "overallScore": self.overall_score,
            "protectionLevel": self.protection_level.value,
        }


class SafetyProfileManager:
    """Owns safety profiles and their score-derived protection level."""

    def __init__(
        self,
        profiles: SafetyProfileRepository,
        users: UserDirectory,
        incidents,
        audit_ledger: Optional[AuditLedger] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """Initialize manager.

        Args:
            profiles: Profile storage
            users: Platform user directory (integrations, existence checks)
            incidents: Incident storage, read for the trailing-window factor
            audit_ledger: Ledger for assessment entries
            clock: Source of the current UTC time
        """
        self.profiles = profiles
        self.users = users
        self.incidents = incidents
        self.audit_ledger = audit_ledger
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_or_create(self, user_id: str) -> SafetyProfile:
        """Return the active profile, creating a default one on first access.

        A deactivated profile is replaced by a fresh default profile.

        Raises:
            NotFoundError: If the user does not exist
        """
        profile = self.profiles.get(user_id)
        if profile is not None and profile.is_active:
            return profile

        self.users.require(user_id)
        now = self.clock()
        profile = SafetyProfile(user_id=user_id, created_at=now, updated_at=now)
        profile = self._recompute_and_save(profile)

        logger.info(
            "SAFETY_PROFILE_CREATED",
            extra={
                "user_id_hash": hash_pii(user_id),
                "protection_level": profile.protection_level.value,
            }
        )
        self._audit_assessment(profile, "Safety profile created")
        return profile

    def find_by_protection_level(self, level) -> List[SafetyProfile]:
        return self.profiles.find_by_protection_level(
            parse_enum(ProtectionLevel, level, "protectionLevel")
        )

    def find_needing_assessment(self, days_old: int = DEFAULT_REASSESSMENT_DAYS) -> List[SafetyProfile]:
        """Active profiles never assessed or last assessed before the cutoff."""
        cutoff = self.clock() - timedelta(days=days_old)
        return self.profiles.find(predicate=lambda p: p.is_active and (
            p.risk_assessment.last_assessed is None
            or p.risk_assessment.last_assessed < cutoff
        ))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, user_id: str, changes: Mapping[str, Any]) -> SafetyProfile:
        """Merge caller-supplied fields, recompute score and level, persist.

        Raises:
            InvalidInputError: If a field is unknown, derived or invalid
            NotFoundError: If the user does not exist
            RepositoryError: If storage fails
        """
        parsed = parse_profile_changes(changes)
        self.users.require(user_id)

        now = self.clock()
        existing = self.profiles.get(user_id)
        if existing is None:
            profile = SafetyProfile(user_id=user_id, created_at=now, updated_at=now, **parsed)
        else:
            profile = replace(existing, updated_at=now, **parsed)

        profile = self._recompute_and_save(profile)

        logger.info(
            "SAFETY_PROFILE_UPDATED",
            extra={
                "user_id_hash": hash_pii(user_id),
                "fields": sorted(changes),
                "overall_score": profile.risk_assessment.overall_score,
                "protection_level": profile.protection_level.value,
            }
        )
        self._audit_assessment(profile, "Safety profile created/updated")
        return profile

    def assess_risk(self, user_id: str) -> RiskAssessmentResult:
        """Recompute the user's risk assessment and protection level.

        Idempotent given the same incidents and integrations.

        Raises:
            NotFoundError: If the user does not exist
            RepositoryError: If storage fails or stored data is malformed
        """
        profile = self.get_or_create(user_id)
        previous_level = profile.protection_level
        profile = self._recompute_and_save(replace(profile, updated_at=self.clock()))
        self.users.record_safety_check(
            user_id, profile.risk_assessment.overall_score, profile.risk_assessment.last_assessed
        )

        logger.info(
            "RISK_ASSESSMENT_COMPLETED",
            extra={
                "user_id_hash": hash_pii(user_id),
                "overall_score": profile.risk_assessment.overall_score,
                "factor_count": len(profile.risk_assessment.factors),
                "protection_level": profile.protection_level.value,
                "previous_level": previous_level.value,
            }
        )
        if self.audit_ledger is not None:
            self.audit_ledger.log_action(
                user_id=user_id,
                action_type=AuditActionType.RISK_REASSESSMENT,
                description="User risk reassessed",
                context=AuditContext.SYSTEM,
                platform=AuditPlatform.SYSTEM,
                feature=AuditFeature.AI_SAFETY_MENTOR,
                system_decision=True,
                risk_level=_risk_level_for_protection(profile.protection_level),
            )

        return RiskAssessmentResult(
            profile=profile,
            risk_factors=list(profile.risk_assessment.factors),
            overall_score=profile.risk_assessment.overall_score,
            protection_level=profile.protection_level,
        )

    def force_protection_level(self, user_id: str, level: ProtectionLevel) -> SafetyProfile:
        """Override the derived level until the next recompute.

        Used when a severe incident is reported.
        """
        profile = self.get_or_create(user_id)
        profile = replace(profile, protection_level=level, updated_at=self.clock())
        self.profiles.put(profile)

        logger.warning(
            "PROTECTION_LEVEL_FORCED",
            extra={"user_id_hash": hash_pii(user_id), "protection_level": level.value}
        )
        return profile

    def deactivate(self, user_id: str) -> SafetyProfile:
        """Soft-deactivate a profile.

        Raises:
            NotFoundError: If the user has no profile
        """
        profile = self.profiles.get(user_id)
        if profile is None:
            raise NotFoundError(f"Safety profile not found: {user_id}")

        profile = replace(profile, is_active=False, updated_at=self.clock())
        self.profiles.put(profile)

        logger.info("SAFETY_PROFILE_DEACTIVATED", extra={"user_id_hash": hash_pii(user_id)})
        return profile

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_safety_stats(self, user_id: str, time_range_days: int = 30) -> Dict[str, Any]:
        """Profile summary, per-type incident stats and the audit rollup."""
        profile = self.get_or_create(user_id)
        since = self.clock() - timedelta(days=time_range_days)
        incidents = self.incidents.find(
            user_id=user_id, since=since, predicate=lambda i: i.is_active
        )
        audit_stats = (
            self.audit_ledger.get_audit_stats(user_id, time_range_days)
            if self.audit_ledger is not None else []
        )

        return {
            "profile": {
                "riskTolerance": profile.risk_tolerance.value,
                "protectionLevel": profile.protection_level.value,
                "overallScore": profile.risk_assessment.overall_score,
                "lastAssessed": to_iso(profile.risk_assessment.last_assessed),
            },
            "incidents": [s.to_dict() for s in summarize_incidents_by_type(incidents)],
            "auditLogs": [s.to_dict() for s in audit_stats],
            "timeRange": time_range_days,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _recompute_and_save(self, profile: SafetyProfile) -> SafetyProfile:
        now = self.clock()
        recent = self.incidents.find(
            user_id=profile.user_id,
            since=now - timedelta(days=INCIDENT_WINDOW_DAYS),
            predicate=lambda i: i.is_active,
        )
        integrations = self.users.connected_integrations(profile.user_id)

        assessment = compute_risk_assessment(
            profile.vulnerability_factors, recent, len(integrations), now
        )
        profile = replace(
            profile,
            risk_assessment=assessment,
            protection_level=derive_protection_level(assessment.overall_score),
        )
        return self.profiles.put(profile)

    def _audit_assessment(self, profile: SafetyProfile, description: str) -> None:
        if self.audit_ledger is None:
            return
        self.audit_ledger.log_action(
            user_id=profile.user_id,
            action_type=AuditActionType.SAFETY_ASSESSMENT,
            description=description,
            context=AuditContext.SETTINGS,
            platform=AuditPlatform.WEB,
            feature=AuditFeature.AI_SAFETY_MENTOR,
            system_decision=True,
            risk_level=_risk_level_for_protection(profile.protection_level),
        )


def _risk_level_for_protection(level: ProtectionLevel) -> RiskLevel:
    if level == ProtectionLevel.MAXIMUM:
        return RiskLevel.HIGH
    if level == ProtectionLevel.ELEVATED:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
