"""Content risk analyzer - pre-publication safety scan of outgoing text.

Four independent detectors run against the pattern library:
- Harassment: direct, indirect and threatening terms, scaled by risk tolerance
- Privacy: personal-data regexes plus self-disclosure phrases
- Professional: unprofessional language, controversial topics, oversharing
- Timing: wall-clock posting windows (late night, early morning, weekend)

The aggregate is a weighted sum clamped to [0, 1]. Every analysis emits
one content_analysis audit entry; a failed audit write never fails the
analysis.
"""
import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

from safeguard.shared.exceptions import InvalidInputError
from safeguard.shared.models import (
    AuditActionType,
    AuditContext,
    AuditFeature,
    AuditOutcome,
    AuditPlatform,
    RiskLevel,
    RiskTolerance,
    Severity,
    parse_enum,
)
from safeguard.shared.utils import hash_pii, hash_text_for_audit
from safeguard.services.audit_service import AuditLedger, AuditMetadata
from .alternatives import neutralize_harassment, professionalize, redact_privacy
from .config import ContentAnalysisConfig, PatternLibrary

logger = logging.getLogger(__name__)


PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True)
class PrivacyExposure:
    exposure_type: str
    count: int
    examples: List[str]             # first three matches
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.exposure_type,
            "count": self.count,
            "examples": list(self.examples),
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class DimensionRisk:
    """Score, severity and what triggered it for one risk dimension."""
    score: float
    severity: Severity
    triggers: List[str] = field(default_factory=list)
    exposures: List[PrivacyExposure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "score": round(self.score, 3),
            "severity": self.severity.value,
            "triggers": list(self.triggers),
        }
        if self.exposures:
            result["exposures"] = [e.to_dict() for e in self.exposures]
        return result


@dataclass(frozen=True)
class Recommendation:
    recommendation_type: str
    priority: str
    message: str
    action: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.recommendation_type,
            "priority": self.priority,
            "message": self.message,
            "action": self.action,
        }


@dataclass(frozen=True)
class ContentAlternative:
    alternative_type: str
    content: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.alternative_type,
            "content": self.content,
            "description": self.description,
        }


@dataclass(frozen=True)
class ContentRiskReport:
    """Immutable result of a content analysis."""
    content_id: str
    platform: str
    harassment: DimensionRisk
    privacy: DimensionRisk
    professional: DimensionRisk
    timing: DimensionRisk
    overall_risk: float
    recommendations: List[Recommendation]
    alternatives: List[ContentAlternative]
    risk_tolerance: RiskTolerance
    pattern_version: str
    confidence: float = 0.8
    analysis_latency_ms: float = 0.0
    analyzed_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not 0.0 <= self.overall_risk <= 1.0:
            raise ValueError(f"Overall risk must be 0.0-1.0, got {self.overall_risk}")

    @property
    def audit_risk_level(self) -> RiskLevel:
        if self.overall_risk > 0.7:
            return RiskLevel.HIGH
        if self.overall_risk > 0.4:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "contentId": self.content_id,
            "platform": self.platform,
            "timestamp": self.analyzed_at.isoformat(),
            "risks": {
                "harassment": self.harassment.to_dict(),
                "privacy": self.privacy.to_dict(),
                "professional": self.professional.to_dict(),
                "timing": self.timing.to_dict(),
            },
            "overallRisk": round(self.overall_risk, 3),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "alternatives": [a.to_dict() for a in self.alternatives],
            "riskTolerance": self.risk_tolerance.value,
            "confidence": self.confidence,
            "patternVersion": self.pattern_version,
            "analysisLatencyMs": round(self.analysis_latency_ms, 2),
        }


def harassment_severity(score: float) -> Severity:
    if score >= 0.7:
        return Severity.CRITICAL
    if score >= 0.4:
        return Severity.HIGH
    if score >= 0.2:
        return Severity.MEDIUM
    return Severity.LOW


def privacy_severity(score: float) -> Severity:
    if score >= 0.8:
        return Severity.CRITICAL
    if score >= 0.5:
        return Severity.HIGH
    if score >= 0.2:
        return Severity.MEDIUM
    return Severity.LOW


def professional_severity(score: float) -> Severity:
    if score >= 0.6:
        return Severity.HIGH
    if score >= 0.3:
        return Severity.MEDIUM
    return Severity.LOW


def timing_severity(score: float) -> Severity:
    return Severity.MEDIUM if score >= 0.4 else Severity.LOW


class ContentRiskAnalyzer:
    """Deterministic multi-dimensional content safety analyzer."""

    def __init__(
        self,
        library: Optional[PatternLibrary] = None,
        config: Optional[ContentAnalysisConfig] = None,
        audit_ledger: Optional[AuditLedger] = None,
        profile_repository=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize analyzer.

        Args:
            library: Versioned term lists and weights
            config: Aggregate weights and thresholds
            audit_ledger: Ledger for content_analysis entries
            profile_repository: Source of the user's risk tolerance when
                the caller does not pass one
            clock: Local wall-clock time used by the timing detector
        """
        self.library = library or PatternLibrary()
        self.config = config or ContentAnalysisConfig()
        self.audit_ledger = audit_ledger
        self.profile_repository = profile_repository
        self.clock = clock

        self._direct = self._compile_terms(self.library.direct_harassment_terms)
        self._indirect = self._compile_terms(self.library.indirect_harassment_terms)
        self._threatening = self._compile_terms(self.library.threatening_terms)
        self._unprofessional = self._compile_terms(self.library.unprofessional_terms)
        self._controversial = self._compile_terms(self.library.controversial_topics)
        self._personal = self._compile_terms(self.library.overly_personal_phrases)
        self._privacy = {
            name: re.compile(pattern)
            for name, pattern in self.library.privacy_patterns.items()
        }
        self._self_disclosure = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self.library.self_disclosure_patterns
        ]

        logger.info(
            "CONTENT_ANALYZER_INITIALIZED",
            extra={
                "pattern_version": self.library.version,
                "harassment_term_count": (
                    len(self._direct) + len(self._indirect) + len(self._threatening)
                ),
                "privacy_pattern_count": len(self._privacy),
            }
        )

    def _compile_terms(self, terms) -> List[Tuple[str, Pattern]]:
        # Word boundaries: "hell" must not match "hello"
        return [
            (term, re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE))
            for term in terms
        ]

    @staticmethod
    def _hits(content: str, patterns: List[Tuple[str, Pattern]]) -> List[str]:
        return [term for term, pattern in patterns if pattern.search(content)]

    # ------------------------------------------------------------------
    # Detectors
    # ------------------------------------------------------------------

    def analyze_harassment(self, content: str, risk_tolerance: RiskTolerance) -> DimensionRisk:
        direct = self._hits(content, self._direct)
        indirect = self._hits(content, self._indirect)
        threatening = self._hits(content, self._threatening)

        score = (
            len(direct) * self.library.direct_harassment_weight
            + len(indirect) * self.library.indirect_harassment_weight
            + len(threatening) * self.library.threatening_weight
        )
        score *= self._tolerance_multiplier(risk_tolerance)

        triggers = (
            [f"direct:{t}" for t in direct]
            + [f"indirect:{t}" for t in indirect]
            + [f"threatening:{t}" for t in threatening]
        )
        return DimensionRisk(score=score, severity=harassment_severity(score), triggers=triggers)

    def analyze_privacy(self, content: str) -> DimensionRisk:
        score = 0.0
        exposures: List[PrivacyExposure] = []

        for name, pattern in self._privacy.items():
            matches = pattern.findall(content)
            if not matches:
                continue
            base = self.library.privacy_base_scores.get(name, 0.1)
            score += min(1.0, base * len(matches))
            exposures.append(PrivacyExposure(
                exposure_type=name,
                count=len(matches),
                examples=matches[:3],
                severity=parse_enum(
                    Severity, self.library.privacy_type_severity.get(name, "medium")
                ),
            ))

        triggers = [f"pattern:{e.exposure_type}" for e in exposures]
        for pattern in self._self_disclosure:
            if pattern.search(content):
                score += self.library.self_disclosure_weight
                triggers.append("self_disclosure")

        return DimensionRisk(
            score=score,
            severity=privacy_severity(score),
            triggers=triggers,
            exposures=exposures,
        )

    def analyze_professional(self, content: str) -> DimensionRisk:
        unprofessional = self._hits(content, self._unprofessional)
        controversial = self._hits(content, self._controversial)
        personal = self._hits(content, self._personal)

        score = (
            len(unprofessional) * self.library.unprofessional_weight
            + len(controversial) * self.library.controversial_weight
            + len(personal) * self.library.overly_personal_weight
        )
        triggers = (
            [f"unprofessional:{t}" for t in unprofessional]
            + [f"controversial:{t}" for t in controversial]
            + [f"personal:{t}" for t in personal]
        )
        return DimensionRisk(score=score, severity=professional_severity(score), triggers=triggers)

    def analyze_timing(self, now: datetime) -> DimensionRisk:
        lib = self.library
        hour = now.hour
        score = 0.0
        triggers: List[str] = []

        if hour >= lib.late_night_start_hour or hour <= lib.late_night_end_hour:
            score += lib.late_night_weight
            triggers.append("late_night")
        if now.weekday() in lib.weekend_days:
            score += lib.weekend_weight
            triggers.append("weekend")
        if lib.early_morning_start_hour <= hour <= lib.early_morning_end_hour:
            score += lib.early_morning_weight
            triggers.append("early_morning")
        if now.strftime("%m-%d") in lib.holidays or now.strftime("%Y-%m-%d") in lib.holidays:
            score += lib.holiday_weight
            triggers.append("holiday")

        return DimensionRisk(score=score, severity=timing_severity(score), triggers=triggers)

    def _tolerance_multiplier(self, risk_tolerance: RiskTolerance) -> float:
        if risk_tolerance == RiskTolerance.CONSERVATIVE:
            return self.config.conservative_multiplier
        if risk_tolerance == RiskTolerance.OPEN:
            return self.config.open_multiplier
        return self.config.moderate_multiplier

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def overall_risk(
        self,
        harassment: DimensionRisk,
        privacy: DimensionRisk,
        professional: DimensionRisk,
        timing: DimensionRisk,
    ) -> float:
        weighted = (
            self.config.harassment_weight * harassment.score
            + self.config.privacy_weight * privacy.score
            + self.config.professional_weight * professional.score
            + self.config.timing_weight * timing.score
        )
        return max(0.0, min(1.0, weighted))

    def recommendations(
        self,
        harassment: DimensionRisk,
        privacy: DimensionRisk,
        professional: DimensionRisk,
        timing: DimensionRisk,
    ) -> List[Recommendation]:
        recs: List[Recommendation] = []
        if harassment.score > self.config.harassment_trigger:
            recs.append(Recommendation(
                recommendation_type="harassment",
                priority="high",
                message="Content may trigger negative responses. "
                        "Consider rephrasing to be more neutral.",
                action="rephrase",
            ))
        if privacy.score > self.config.privacy_trigger:
            recs.append(Recommendation(
                recommendation_type="privacy",
                priority="high",
                message="Content contains sensitive information. "
                        "Remove personal details before posting.",
                action="remove_personal_info",
            ))
        if professional.score > self.config.professional_trigger:
            recs.append(Recommendation(
                recommendation_type="professional",
                priority="medium",
                message="Content may not align with professional image. "
                        "Consider using more formal language.",
                action="professional_tone",
            ))
        if timing.score > self.config.timing_trigger:
            recs.append(Recommendation(
                recommendation_type="timing",
                priority="low",
                message="Consider posting at a different time for better engagement.",
                action="reschedule",
            ))
        recs.sort(key=lambda r: PRIORITY_ORDER[r.priority], reverse=True)
        return recs

    def alternatives(
        self,
        content: str,
        harassment: DimensionRisk,
        privacy: DimensionRisk,
        professional: DimensionRisk,
    ) -> List[ContentAlternative]:
        alts: List[ContentAlternative] = []
        if harassment.score > self.config.harassment_trigger:
            alts.append(ContentAlternative(
                alternative_type="harassment_free",
                content=neutralize_harassment(content, self.library),
                description="More neutral tone",
            ))
        if privacy.score > self.config.privacy_trigger:
            alts.append(ContentAlternative(
                alternative_type="privacy_safe",
                content=redact_privacy(content, self.library),
                description="Personal information removed",
            ))
        if professional.score > self.config.professional_trigger:
            alts.append(ContentAlternative(
                alternative_type="professional",
                content=professionalize(content, self.library),
                description="More professional tone",
            ))
        return alts

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def resolve_risk_tolerance(self, user_id: str, risk_tolerance=None) -> RiskTolerance:
        """Caller-supplied tolerance, else the active profile's, else moderate."""
        if risk_tolerance is not None:
            return parse_enum(RiskTolerance, risk_tolerance, "riskTolerance")
        if self.profile_repository is not None:
            profile = self.profile_repository.get(user_id)
            if profile is not None and profile.is_active:
                return profile.risk_tolerance
        return RiskTolerance.MODERATE

    def analyze(
        self,
        user_id: str,
        content: str,
        platform: str,
        risk_tolerance=None,
        context: Optional[str] = None,
        content_id: Optional[str] = None,
    ) -> ContentRiskReport:
        """Analyze content before publication.

        Args:
            user_id: Author (hashed for logging)
            content: Raw text to analyze
            platform: Target platform (linkedin, twitter, ...)
            risk_tolerance: Overrides the profile's tolerance when given
            context: Optional free-form posting context
            content_id: Caller's id for the content; generated if absent

        Returns:
            ContentRiskReport

        Raises:
            InvalidInputError: If content or platform is missing, or the
                risk tolerance is not a known value

        Logs:
            - CONTENT_ANALYSIS_COMPLETED: After every analysis
            - CONTENT_ANALYSIS_HIGH_RISK: If overall risk exceeds 0.7
        """
        if not isinstance(content, str) or not content.strip():
            raise InvalidInputError("Content is required", field="content")
        if not platform:
            raise InvalidInputError("Platform is required", field="platform")

        start_time = time.perf_counter()
        tolerance = self.resolve_risk_tolerance(user_id, risk_tolerance)

        harassment = self.analyze_harassment(content, tolerance)
        privacy = self.analyze_privacy(content)
        professional = self.analyze_professional(content)
        timing = self.analyze_timing(self.clock())

        overall = self.overall_risk(harassment, privacy, professional, timing)
        latency_ms = (time.perf_counter() - start_time) * 1000

        report = ContentRiskReport(
            content_id=content_id or f"content_{uuid.uuid4().hex[:16]}",
            platform=platform,
            harassment=harassment,
            privacy=privacy,
            professional=professional,
            timing=timing,
            overall_risk=overall,
            recommendations=self.recommendations(harassment, privacy, professional, timing),
            alternatives=self.alternatives(content, harassment, privacy, professional),
            risk_tolerance=tolerance,
            pattern_version=self.library.version,
            confidence=self.config.confidence,
            analysis_latency_ms=latency_ms,
        )

        log_extra = {
            "content_id": report.content_id,
            "user_id_hash": hash_pii(user_id),
            "content_hash": hash_text_for_audit(content),
            "content_length": len(content),
            "platform": platform,
            "overall_risk": round(overall, 3),
            "pattern_version": self.library.version,
            "latency_ms": round(latency_ms, 2),
        }
        if overall > self.config.audit_high_risk_above:
            logger.warning("CONTENT_ANALYSIS_HIGH_RISK", extra=log_extra)
        logger.info("CONTENT_ANALYSIS_COMPLETED", extra=log_extra)

        self._audit(user_id, report, context)
        return report

    def _audit(self, user_id: str, report: ContentRiskReport, context: Optional[str]) -> None:
        if self.audit_ledger is None:
            return
        outcome = (
            AuditOutcome.WARNING
            if report.overall_risk > self.config.audit_warning_above
            else AuditOutcome.SUCCESS
        )
        self.audit_ledger.log_action(
            user_id=user_id,
            action_type=AuditActionType.CONTENT_ANALYSIS,
            description=f"Content analyzed for {report.platform}",
            context=AuditContext.CONTENT_CREATION,
            platform=AuditPlatform.WEB,
            feature=AuditFeature.CONTENT_ANALYZER,
            system_decision=True,
            risk_level=report.audit_risk_level,
            outcome=outcome,
            metadata=AuditMetadata(details={
                "patternVersion": report.pattern_version,
                "riskTolerance": report.risk_tolerance.value,
                "context": context,
            }),
            related_entities={"contentId": report.content_id},
            performance_metrics={
                "processingTime": round(report.analysis_latency_ms, 2),
                "confidence": report.confidence,
            },
        )
