"""Incident manager - reporting, status changes and community contribution.

Reporting is all-or-nothing: the incident record and the forced
protection-level escalation for severe incidents succeed together, or
the incident is removed again and the persistence error propagates.
Audit entries and emergency notifications are best-effort and never
fail a report.
"""
import logging
import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from safeguard.shared.database import NotFoundError, RepositoryError
from safeguard.shared.exceptions import InvalidInputError
from safeguard.shared.models import (
    ActionTaken,
    AuditActionType,
    AuditContext,
    AuditFeature,
    AuditOutcome,
    AuditPlatform,
    CommunityContribution,
    Evidence,
    ImpactAssessment,
    IncidentPlatform,
    IncidentResolution,
    IncidentStatus,
    IncidentType,
    IncidentTypeStats,
    PerpetratorInfo,
    ProtectionLevel,
    RiskLevel,
    SafetyIncident,
    SafetyProfile,
    AnonymizedIncident,
    parse_enum,
    summarize_incidents_by_type,
)
from safeguard.shared.models.incident import MAX_SEVERITY, MIN_SEVERITY
from safeguard.shared.utils import hash_pii, hash_text_for_audit
from safeguard.services.audit_service import AuditLedger, AuditMetadata
from safeguard.services.profile_service import SafetyProfileManager
from .emergency_notifier import EmergencyNotifier
from .incident_repository import SafetyIncidentRepository

logger = logging.getLogger(__name__)


FORCE_MAXIMUM_SEVERITY = 7
EMERGENCY_SEVERITY = 8
DEFAULT_PAGE_SIZE = 20


def severity_risk_level(severity_level: int) -> RiskLevel:
    if severity_level >= 9:
        return RiskLevel.CRITICAL
    if severity_level >= 7:
        return RiskLevel.HIGH
    if severity_level >= 4:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def parse_incident_report(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a report payload into SafetyIncident keyword arguments.

    Raises:
        InvalidInputError: If a required field is missing or any field is invalid
    """
    if not isinstance(data, Mapping):
        raise InvalidInputError("Incident report must be an object")

    for required in ("incidentType", "severityLevel", "description"):
        if data.get(required) in (None, ""):
            raise InvalidInputError(
                "Incident type, severity level, and description are required",
                field=required,
            )

    severity = data["severityLevel"]
    if isinstance(severity, bool) or not isinstance(severity, (int, str)):
        raise InvalidInputError("severityLevel must be an integer", field="severityLevel")
    try:
        severity = int(severity)
    except ValueError:
        raise InvalidInputError("severityLevel must be an integer", field="severityLevel")
    if not MIN_SEVERITY <= severity <= MAX_SEVERITY:
        raise InvalidInputError(
            f"severityLevel must be {MIN_SEVERITY}-{MAX_SEVERITY}, got {severity}",
            field="severityLevel",
        )

    description = data["description"]
    if not isinstance(description, str) or not description.strip():
        raise InvalidInputError("description must be a non-empty string", field="description")

    try:
        return {
            "incident_type": parse_enum(IncidentType, data["incidentType"], "incidentType"),
            "severity_level": severity,
            "description": description,
            "platform": parse_enum(
                IncidentPlatform, data.get("platform") or "other", "platform"
            ),
            "encrypted_details": data.get("encryptedDetails"),
            "perpetrator_info": PerpetratorInfo.from_dict(data.get("perpetratorInfo")),
            "evidence": [Evidence.from_dict(e) for e in data.get("evidence") or []],
            "actions_taken": [
                ActionTaken.from_dict(a) for a in data.get("actionsTaken") or []
            ],
            "impact_assessment": ImpactAssessment.from_dict(data.get("impactAssessment")),
            "community_contribution": CommunityContribution(
                anonymized=bool((data.get("communityContribution") or {}).get("anonymized", False))
            ),
        }
    except InvalidInputError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidInputError(f"Invalid incident report: {e}")


@dataclass(frozen=True)
class IncidentPage:
    incidents: List[SafetyIncident]
    current: int
    pages: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incidents": [i.to_public_dict() for i in self.incidents],
            "pagination": {"current": self.current, "pages": self.pages, "total": self.total},
        }


class IncidentManager:
    """Creates and updates safety incidents for their reporting user."""

    def __init__(
        self,
        incidents: SafetyIncidentRepository,
        profile_manager: SafetyProfileManager,
        audit_ledger: Optional[AuditLedger] = None,
        notifier: Optional[EmergencyNotifier] = None,
        threat_aggregator=None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """Initialize manager.

        Args:
            incidents: Incident storage
            profile_manager: Used for the forced escalation and emergency contacts
            audit_ledger: Ledger for report and emergency entries
            notifier: Emergency contact notifier; None disables notifications
            threat_aggregator: Receives anonymized incidents on resolution
            clock: Source of the current UTC time
        """
        self.incidents = incidents
        self.profile_manager = profile_manager
        self.audit_ledger = audit_ledger
        self.notifier = notifier
        self.threat_aggregator = threat_aggregator
        self.clock = clock

    def report(self, user_id: str, data: Mapping[str, Any]) -> SafetyIncident:
        """Report a new incident.

        Args:
            user_id: Reporting user
            data: Report payload (incidentType, severityLevel, description required)

        Returns:
            The stored incident with status=reported

        Raises:
            InvalidInputError: If the payload is invalid (nothing is written)
            NotFoundError: If the user does not exist
            RepositoryError: If the incident or the escalation cannot be stored

        Logs:
            - INCIDENT_REPORTED: Always on success
            - INCIDENT_REPORT_ROLLED_BACK: If the escalation write failed
            - INCIDENT_REPORT_ROLLBACK_FAILED: If the incident could not be removed either
        """
        fields = parse_incident_report(data)
        profile = self.profile_manager.get_or_create(user_id)

        now = self.clock()
        incident = SafetyIncident(
            incident_id=f"inc_{uuid.uuid4().hex[:16]}",
            user_id=user_id,
            status=IncidentStatus.REPORTED,
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.incidents.insert(incident)

        if incident.severity_level >= FORCE_MAXIMUM_SEVERITY:
            try:
                profile = self.profile_manager.force_protection_level(
                    user_id, ProtectionLevel.MAXIMUM
                )
            except RepositoryError as e:
                try:
                    self.incidents.remove(incident.incident_id)
                except RepositoryError as remove_error:
                    logger.critical(
                        "INCIDENT_REPORT_ROLLBACK_FAILED",
                        extra={
                            "incident_id": incident.incident_id,
                            "user_id_hash": hash_pii(user_id),
                            "error": str(e),
                            "rollback_error": str(remove_error),
                        }
                    )
                    raise e
                logger.error(
                    "INCIDENT_REPORT_ROLLED_BACK",
                    extra={
                        "incident_id": incident.incident_id,
                        "user_id_hash": hash_pii(user_id),
                        "error": str(e),
                    }
                )
                raise

        logger.info(
            "INCIDENT_REPORTED",
            extra={
                "incident_id": incident.incident_id,
                "user_id_hash": hash_pii(user_id),
                "incident_type": incident.incident_type.value,
                "severity_level": incident.severity_level,
                "description_hash": hash_text_for_audit(incident.description),
            }
        )
        if self.audit_ledger is not None:
            self.audit_ledger.log_action(
                user_id=user_id,
                action_type=AuditActionType.INCIDENT_REPORT,
                description=f"Incident reported: {incident.incident_type.value}",
                context=AuditContext.EMERGENCY,
                platform=AuditPlatform.WEB,
                feature=AuditFeature.INCIDENT_REPORTER,
                risk_level=severity_risk_level(incident.severity_level),
                is_sensitive=True,
                metadata=AuditMetadata(details={
                    "incidentType": incident.incident_type.value,
                    "severityLevel": incident.severity_level,
                }),
                related_entities={"incidentId": incident.incident_id},
            )

        if incident.severity_level >= EMERGENCY_SEVERITY:
            self._trigger_emergency_protocol(profile, incident)

        return incident

    def update_status(
        self,
        incident_id: str,
        user_id: str,
        new_status,
        resolution: Optional[str] = None,
    ) -> SafetyIncident:
        """Move an incident to any status; transitions are not restricted.

        Resolving an incident the user agreed to share contributes its
        anonymized projection to the community threat aggregator and
        records the returned pattern id.

        Raises:
            InvalidInputError: If new_status is not a known status
            NotFoundError: If no active incident with this id belongs to the user
        """
        status = parse_enum(IncidentStatus, new_status, "status")
        incident = self._require_owned(incident_id, user_id)
        now = self.clock()

        contribution = incident.community_contribution
        if (
            status == IncidentStatus.RESOLVED
            and contribution.anonymized
            and contribution.pattern_id is None
            and self.threat_aggregator is not None
        ):
            profile = self.profile_manager.get_or_create(user_id)
            threat = self.threat_aggregator.contribute_for_profile(
                incident.anonymize_for_community(), profile
            )
            contribution = replace(
                contribution,
                pattern_id=threat.threat_pattern_hash,
                contributed_at=now,
            )

        updated = replace(
            incident,
            status=status,
            resolution=(
                IncidentResolution(resolved_at=now, details=resolution)
                if resolution is not None else incident.resolution
            ),
            community_contribution=contribution,
            updated_at=now,
        )
        self.incidents.put(updated)

        logger.info(
            "INCIDENT_STATUS_UPDATED",
            extra={
                "incident_id": incident_id,
                "user_id_hash": hash_pii(user_id),
                "previous_status": incident.status.value,
                "status": status.value,
                "pattern_id": contribution.pattern_id,
            }
        )
        return updated

    def list_incidents(
        self,
        user_id: str,
        status=None,
        limit: int = DEFAULT_PAGE_SIZE,
        page: int = 1,
    ) -> IncidentPage:
        """Active incidents of the user, newest first, one page at a time."""
        if limit < 1:
            raise InvalidInputError("limit must be positive", field="limit")
        if page < 1:
            raise InvalidInputError("page must be positive", field="page")
        wanted = parse_enum(IncidentStatus, status, "status") if status else None

        matching = self.incidents.find_active_for_user(user_id, status=wanted)
        start = (page - 1) * limit
        return IncidentPage(
            incidents=matching[start:start + limit],
            current=page,
            pages=math.ceil(len(matching) / limit),
            total=len(matching),
        )

    def incident_stats(self, user_id: str, time_range_days: int = 30) -> List[IncidentTypeStats]:
        since = self.clock() - timedelta(days=time_range_days)
        return summarize_incidents_by_type(
            self.incidents.find_active_for_user(user_id, since=since)
        )

    def anonymize(self, incident_id: str, user_id: str) -> AnonymizedIncident:
        return self._require_owned(incident_id, user_id).anonymize_for_community()

    def _require_owned(self, incident_id: str, user_id: str) -> SafetyIncident:
        incident = self.incidents.get(incident_id)
        if incident is None or not incident.is_active or incident.user_id != user_id:
            logger.warning(
                "INCIDENT_NOT_FOUND",
                extra={"incident_id": incident_id, "user_id_hash": hash_pii(user_id)}
            )
            raise NotFoundError(f"Incident not found: {incident_id}")
        return incident

    def _trigger_emergency_protocol(self, profile: SafetyProfile, incident: SafetyIncident) -> None:
        user_id_hash = hash_pii(incident.user_id)
        summary = {
            "incident_id": incident.incident_id,
            "incident_type": incident.incident_type.value,
            "severity_level": incident.severity_level,
            "user_id_hash": user_id_hash,
        }

        notified = 0
        if self.notifier is not None:
            for contact in profile.emergency_contacts:
                if self.notifier.notify(contact, summary):
                    notified += 1

        logger.critical(
            "EMERGENCY_PROTOCOL_ACTIVATED",
            extra={
                "incident_id": incident.incident_id,
                "user_id_hash": user_id_hash,
                "severity_level": incident.severity_level,
                "contact_count": len(profile.emergency_contacts),
                "contacts_notified": notified,
            }
        )
        if self.audit_ledger is not None:
            self.audit_ledger.log_action(
                user_id=incident.user_id,
                action_type=AuditActionType.EMERGENCY_ACTIVATION,
                description="Emergency protocol activated",
                context=AuditContext.EMERGENCY,
                platform=AuditPlatform.SYSTEM,
                feature=AuditFeature.EMERGENCY_RESPONSE,
                risk_level=severity_risk_level(incident.severity_level),
                outcome=AuditOutcome.ESCALATED,
                metadata=AuditMetadata(details={
                    "severityLevel": incident.severity_level,
                    "contactsNotified": notified,
                }),
                related_entities={"incidentId": incident.incident_id},
            )
