"""Audit ledger - append-only compliance trail of safety decisions.

Every safety-relevant decision (system or user driven) is recorded once
and never mutated. The retention period is fixed at write time from the
entry's sensitivity, compliance flags and risk level; physical deletion
after that period is an external scheduled job.
"""
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from safeguard.shared.models import (
    AuditActionType,
    AuditContext,
    AuditFeature,
    AuditOutcome,
    AuditPlatform,
    RiskLevel,
    parse_enum,
)
from safeguard.shared.utils import hash_pii, to_iso, from_iso
from .audit_repository import AuditRepository

logger = logging.getLogger(__name__)


# Retention periods in days
SENSITIVE_RETENTION_DAYS = 2555     # 7 years: sensitive or audit-required
HIGH_RISK_RETENTION_DAYS = 1095     # 3 years: high/critical risk
STANDARD_RETENTION_DAYS = 365       # 1 year: everything else

HIGH_RISK_LEVELS = (RiskLevel.HIGH, RiskLevel.CRITICAL)


@dataclass(frozen=True)
class ActionDetails:
    description: str
    context: AuditContext = AuditContext.SYSTEM
    platform: AuditPlatform = AuditPlatform.WEB
    feature: AuditFeature = AuditFeature.OTHER


@dataclass(frozen=True)
class ComplianceFlags:
    gdpr_relevant: bool = False
    data_protection_act: bool = False
    consent_required: bool = False
    audit_required: bool = False

    def any_set(self) -> bool:
        return (
            self.gdpr_relevant
            or self.data_protection_act
            or self.consent_required
            or self.audit_required
        )


@dataclass(frozen=True)
class AuditMetadata:
    """Request metadata. ip_address, session_id and city are PII."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None
    device_info: Dict[str, Any] = field(default_factory=dict)   # type, os, browser
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SafetyAuditEntry:
    """Immutable audit log entry."""
    entry_id: str
    user_id: str
    action_type: AuditActionType
    action_details: ActionDetails
    system_decision: bool
    created_at: datetime
    user_override: bool = False
    override_reason: Optional[str] = None
    risk_level: RiskLevel = RiskLevel.LOW
    outcome: AuditOutcome = AuditOutcome.SUCCESS
    compliance_flags: ComplianceFlags = field(default_factory=ComplianceFlags)
    is_sensitive: bool = False
    retention_period: int = STANDARD_RETENTION_DAYS
    metadata: AuditMetadata = field(default_factory=AuditMetadata)
    related_entities: Dict[str, str] = field(default_factory=dict)
    performance_metrics: Dict[str, float] = field(default_factory=dict)

    @property
    def retain_until(self) -> datetime:
        return self.created_at + timedelta(days=self.retention_period)

    def to_document(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "user_id": self.user_id,
            "action_type": self.action_type.value,
            "action_details": {
                "description": self.action_details.description,
                "context": self.action_details.context.value,
                "platform": self.action_details.platform.value,
                "feature": self.action_details.feature.value,
            },
            "system_decision": self.system_decision,
            "user_override": self.user_override,
            "override_reason": self.override_reason,
            "risk_level": self.risk_level.value,
            "outcome": self.outcome.value,
            "compliance_flags": {
                "gdpr_relevant": self.compliance_flags.gdpr_relevant,
                "data_protection_act": self.compliance_flags.data_protection_act,
                "consent_required": self.compliance_flags.consent_required,
                "audit_required": self.compliance_flags.audit_required,
            },
            "is_sensitive": self.is_sensitive,
            "retention_period": self.retention_period,
            "metadata": {
                "ip_address": self.metadata.ip_address,
                "user_agent": self.metadata.user_agent,
                "session_id": self.metadata.session_id,
                "device_info": self.metadata.device_info,
                "location": {
                    "country": self.metadata.country,
                    "region": self.metadata.region,
                    "city": self.metadata.city,
                },
                "details": self.metadata.details,
            },
            "related_entities": self.related_entities,
            "performance_metrics": self.performance_metrics,
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "SafetyAuditEntry":
        details = doc["action_details"]
        flags = doc.get("compliance_flags") or {}
        metadata = doc.get("metadata") or {}
        location = metadata.get("location") or {}
        return cls(
            entry_id=doc["entry_id"],
            user_id=doc["user_id"],
            action_type=parse_enum(AuditActionType, doc["action_type"], "action_type"),
            action_details=ActionDetails(
                description=details["description"],
                context=parse_enum(AuditContext, details["context"], "context"),
                platform=parse_enum(AuditPlatform, details["platform"], "platform"),
                feature=parse_enum(AuditFeature, details["feature"], "feature"),
            ),
            system_decision=doc["system_decision"],
            user_override=doc.get("user_override", False),
            override_reason=doc.get("override_reason"),
            risk_level=parse_enum(RiskLevel, doc["risk_level"], "risk_level"),
            outcome=parse_enum(AuditOutcome, doc["outcome"], "outcome"),
            compliance_flags=ComplianceFlags(**flags),
            is_sensitive=doc.get("is_sensitive", False),
            retention_period=doc["retention_period"],
            metadata=AuditMetadata(
                ip_address=metadata.get("ip_address"),
                user_agent=metadata.get("user_agent"),
                session_id=metadata.get("session_id"),
                device_info=metadata.get("device_info") or {},
                country=location.get("country"),
                region=location.get("region"),
                city=location.get("city"),
                details=metadata.get("details") or {},
            ),
            related_entities=doc.get("related_entities") or {},
            performance_metrics=doc.get("performance_metrics") or {},
            created_at=from_iso(doc["created_at"]),
        )


@dataclass(frozen=True)
class AuditActionStats:
    """Per-action-type rollup for one user over a trailing window."""
    action_type: AuditActionType
    count: int
    avg_risk_level: float       # low=1 .. critical=4
    user_overrides: int
    system_decisions: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action_type": self.action_type.value,
            "count": self.count,
            "avg_risk_level": round(self.avg_risk_level, 3),
            "user_overrides": self.user_overrides,
            "system_decisions": self.system_decisions,
        }


def assign_retention_period(
    is_sensitive: bool,
    compliance_flags: ComplianceFlags,
    risk_level: RiskLevel,
) -> int:
    """Retention period in days for a new entry.

    Monotonic in sensitivity: sensitive/audit-required entries outlive
    high-risk entries, which outlive everything else.
    """
    if is_sensitive or compliance_flags.audit_required:
        return SENSITIVE_RETENTION_DAYS
    if risk_level in HIGH_RISK_LEVELS:
        return HIGH_RISK_RETENTION_DAYS
    return STANDARD_RETENTION_DAYS


def anonymize_for_analytics(entry: SafetyAuditEntry) -> Dict[str, Any]:
    """Analytics-safe projection of an entry.

    Drops user_id, IP address, session id, user agent, city and the
    free-form details; keeps coarse location and decision data.
    """
    return {
        "action_type": entry.action_type.value,
        "action_details": {
            "context": entry.action_details.context.value,
            "platform": entry.action_details.platform.value,
            "feature": entry.action_details.feature.value,
        },
        "system_decision": entry.system_decision,
        "user_override": entry.user_override,
        "risk_level": entry.risk_level.value,
        "outcome": entry.outcome.value,
        "metadata": {
            "device_info": dict(entry.metadata.device_info),
            "location": {
                "country": entry.metadata.country,
                "region": entry.metadata.region,
            },
        },
        "performance_metrics": dict(entry.performance_metrics),
        "compliance_flags": {
            "gdpr_relevant": entry.compliance_flags.gdpr_relevant,
            "data_protection_act": entry.compliance_flags.data_protection_act,
            "consent_required": entry.compliance_flags.consent_required,
            "audit_required": entry.compliance_flags.audit_required,
        },
        "created_at": to_iso(entry.created_at),
    }


def is_compliant(entry: SafetyAuditEntry) -> bool:
    """Check that the fields a compliance review relies on are present."""
    required = [
        entry.user_id,
        entry.action_type,
        entry.action_details.description,
        entry.system_decision,
        entry.created_at,
    ]
    return all(value is not None and value != "" for value in required)


class AuditLedger:
    """Records and queries safety audit entries.

    Writes through AuditRepository, which is append-only. Services call
    log_action() as a fire-and-forget side effect; record() is the strict
    variant that propagates storage errors.
    """

    def __init__(
        self,
        repository: Optional[AuditRepository] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """Initialize ledger.

        Args:
            repository: Append-only audit storage
            clock: Source of the current UTC time
        """
        self.repository = repository or AuditRepository()
        self.clock = clock

        logger.info("AUDIT_LEDGER_INITIALIZED")

    def record(self, entry: SafetyAuditEntry) -> SafetyAuditEntry:
        """Append an entry, assigning its retention period first.

        Any retention_period on the incoming entry is overwritten.

        Raises:
            RepositoryError: If storage fails
        """
        entry = replace(
            entry,
            retention_period=assign_retention_period(
                entry.is_sensitive, entry.compliance_flags, entry.risk_level
            ),
        )
        self.repository.append(entry)

        logger.info(
            "AUDIT_ENTRY_CREATED",
            extra={
                "entry_id": entry.entry_id,
                "action_type": entry.action_type.value,
                "user_id_hash": hash_pii(entry.user_id),
                "risk_level": entry.risk_level.value,
                "outcome": entry.outcome.value,
                "retention_period": entry.retention_period,
            }
        )
        return entry

    def log_action(
        self,
        user_id: str,
        action_type: AuditActionType,
        description: str,
        context: AuditContext = AuditContext.SYSTEM,
        platform: AuditPlatform = AuditPlatform.WEB,
        feature: AuditFeature = AuditFeature.OTHER,
        system_decision: bool = True,
        user_override: bool = False,
        override_reason: Optional[str] = None,
        risk_level: RiskLevel = RiskLevel.LOW,
        outcome: AuditOutcome = AuditOutcome.SUCCESS,
        is_sensitive: bool = False,
        compliance_flags: Optional[ComplianceFlags] = None,
        metadata: Optional[AuditMetadata] = None,
        related_entities: Optional[Dict[str, str]] = None,
        performance_metrics: Optional[Dict[str, float]] = None,
    ) -> Optional[SafetyAuditEntry]:
        """Build and record an entry without ever failing the caller.

        Returns:
            The stored entry, or None if the write failed

        Logs:
            - AUDIT_WRITE_FAILED: If building or storing the entry failed
        """
        try:
            entry = SafetyAuditEntry(
                entry_id=f"audit_{uuid.uuid4().hex[:16]}",
                user_id=user_id,
                action_type=action_type,
                action_details=ActionDetails(
                    description=description,
                    context=context,
                    platform=platform,
                    feature=feature,
                ),
                system_decision=system_decision,
                user_override=user_override,
                override_reason=override_reason,
                risk_level=risk_level,
                outcome=outcome,
                compliance_flags=compliance_flags or ComplianceFlags(),
                is_sensitive=is_sensitive,
                metadata=metadata or AuditMetadata(),
                related_entities=related_entities or {},
                performance_metrics=performance_metrics or {},
                created_at=self.clock(),
            )
            return self.record(entry)
        except Exception as e:
            # Audit writes never fail the primary operation
            logger.error(
                "AUDIT_WRITE_FAILED",
                extra={
                    "action_type": action_type.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return None

    def find_by_user_and_time_range(
        self,
        user_id: str,
        start_date: datetime,
        end_date: datetime,
    ) -> List[SafetyAuditEntry]:
        """Entries of one user created within [start_date, end_date], newest first."""
        return self.repository.find(user_id=user_id, since=start_date, until=end_date)

    def find_high_risk_actions(self, time_range_days: int = 7) -> List[SafetyAuditEntry]:
        """High and critical entries of all users in the trailing window."""
        since = self.clock() - timedelta(days=time_range_days)
        return self.repository.find(
            since=since,
            predicate=lambda e: e.risk_level in HIGH_RISK_LEVELS,
        )

    def find_compliance_issues(self) -> List[SafetyAuditEntry]:
        """Entries flagged sensitive, audit-required, GDPR or DPA relevant."""
        return self.repository.find(
            predicate=lambda e: (
                e.is_sensitive
                or e.compliance_flags.audit_required
                or e.compliance_flags.gdpr_relevant
                or e.compliance_flags.data_protection_act
            ),
        )

    def get_audit_stats(
        self,
        user_id: str,
        time_range_days: int = 30,
    ) -> List[AuditActionStats]:
        """Per-action-type rollup for one user, most frequent first."""
        since = self.clock() - timedelta(days=time_range_days)
        entries = self.repository.find(user_id=user_id, since=since)

        grouped: Dict[AuditActionType, List[SafetyAuditEntry]] = defaultdict(list)
        for entry in entries:
            grouped[entry.action_type].append(entry)

        stats = [
            AuditActionStats(
                action_type=action_type,
                count=len(group),
                avg_risk_level=sum(e.risk_level.rank for e in group) / len(group),
                user_overrides=sum(1 for e in group if e.user_override),
                system_decisions=sum(1 for e in group if e.system_decision),
            )
            for action_type, group in grouped.items()
        ]
        stats.sort(key=lambda s: s.count, reverse=True)
        return stats
