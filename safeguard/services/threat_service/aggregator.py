"""Community threat aggregator.

Folds anonymized incidents into global threat patterns and answers
"what is happening to people like me" queries. Contributions are
deduplicated by a pattern hash over the incident's coarse attributes,
so no contribution can be traced back to its reporter.

Trend is stored and recomputed on every contribution. Urgency depends
on the reading time and is computed on every read, never stored.
"""
import hashlib
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from safeguard.shared.database import NotFoundError
from safeguard.shared.models import (
    AnonymizedIncident,
    CommunityThreat,
    IncidentAction,
    IndustrySector,
    MitigationDifficulty,
    MitigationStrategy,
    RiskTolerance,
    SafetyProfile,
    TargetDemographic,
    ThreatCategory,
    ThreatRegion,
    ThreatTrend,
    UrgencyLevel,
    VerificationSource,
    parse_enum,
)
from safeguard.shared.utils import days_between
from .config import (
    ACTION_MITIGATIONS,
    BASELINE_MITIGATION,
    CRITICAL_URGENCY,
    DEFAULT_RELEVANT_LIMIT,
    DEFAULT_SECTOR,
    DEFAULT_STATS_DAYS,
    DEMOGRAPHIC_BY_FACTOR,
    HIGH_URGENCY,
    INCIDENT_CATEGORY_MAP,
    INCREASING_THREAT_DAYS,
    MEDIUM_URGENCY,
    NEW_THREAT_DAYS,
    REGION_BY_CULTURAL_CONTEXT,
    SECTOR_BY_FACTOR,
    STABLE_THREAT_DAYS,
)
from .threat_repository import CommunityThreatRepository

logger = logging.getLogger(__name__)


def compute_trend(first_reported: datetime, last_reported: datetime, now: datetime) -> ThreatTrend:
    """Classify a pattern by report age; total over all elapsed times."""
    if days_between(now, first_reported) <= NEW_THREAT_DAYS:
        return ThreatTrend.NEW
    since_last = days_between(now, last_reported)
    if since_last <= INCREASING_THREAT_DAYS:
        return ThreatTrend.INCREASING
    if since_last <= STABLE_THREAT_DAYS:
        return ThreatTrend.STABLE
    return ThreatTrend.DECREASING


def urgency_level(threat: CommunityThreat, now: datetime) -> UrgencyLevel:
    since_last = days_between(now, threat.last_reported)
    for level, (min_severity, max_days) in (
        (UrgencyLevel.CRITICAL, CRITICAL_URGENCY),
        (UrgencyLevel.HIGH, HIGH_URGENCY),
        (UrgencyLevel.MEDIUM, MEDIUM_URGENCY),
    ):
        if threat.severity_score >= min_severity and since_last <= max_days:
            return level
    return UrgencyLevel.LOW


def pattern_hash(
    category: ThreatCategory,
    platform: str,
    relationship: Optional[str],
    region: ThreatRegion,
    sector: Optional[IndustrySector],
    demographic: TargetDemographic,
) -> str:
    key = "|".join([
        category.value,
        platform,
        relationship or "unknown",
        region.value,
        sector.value if sector else "any",
        demographic.value,
    ])
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def context_for_profile(
    profile: SafetyProfile,
) -> Tuple[ThreatRegion, IndustrySector, TargetDemographic]:
    """Region, sector and demographic a profile's threats are looked up by."""
    region = REGION_BY_CULTURAL_CONTEXT.get(profile.cultural_context, ThreatRegion.INTERNATIONAL)
    factors = set(profile.vulnerability_factors)
    sector = next((s for f, s in SECTOR_BY_FACTOR if f in factors), DEFAULT_SECTOR)
    demographic = next(
        (d for f, d in DEMOGRAPHIC_BY_FACTOR if f in factors), TargetDemographic.ALL
    )
    return region, sector, demographic


def _by_severity_then_recency(threats: List[CommunityThreat]) -> List[CommunityThreat]:
    return sorted(threats, key=lambda t: (t.severity_score, t.last_reported), reverse=True)


def _merge_strategies(
    existing: List[MitigationStrategy],
    new: List[MitigationStrategy],
) -> List[MitigationStrategy]:
    merged = list(existing)
    known = {s.strategy for s in existing}
    for strategy in new:
        if strategy.strategy not in known:
            known.add(strategy.strategy)
            merged.append(strategy)
    return merged


@dataclass(frozen=True)
class ThreatCategoryStats:
    category: ThreatCategory
    count: int
    avg_severity: float
    max_severity: int
    trends: List[ThreatTrend]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "count": self.count,
            "avgSeverity": round(self.avg_severity, 2),
            "maxSeverity": self.max_severity,
            "trends": [t.value for t in self.trends],
        }


class CommunityThreatAggregator:
    """Maintains community threat patterns from anonymized incidents."""

    def __init__(
        self,
        threats: CommunityThreatRepository,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.threats = threats
        self.clock = clock

    # ------------------------------------------------------------------
    # Contributions
    # ------------------------------------------------------------------

    def contribute(
        self,
        payload: AnonymizedIncident,
        region,
        sector=None,
        demographic=None,
    ) -> CommunityThreat:
        """Fold one anonymized incident into its threat pattern.

        A new pattern starts unverified with trend=new. An existing one
        gains a report, a moved lastReported, a running-mean severity and
        any new mitigation strategies, and has its trend recomputed.

        Raises:
            InvalidInputError: If region, sector or demographic is unknown
            RepositoryError: If storage fails
        """
        region = parse_enum(ThreatRegion, region, "geographicRegion")
        sector = parse_enum(IndustrySector, sector, "industrySector") if sector else None
        demographic = parse_enum(
            TargetDemographic, demographic or TargetDemographic.ALL, "targetDemographic"
        )
        category = INCIDENT_CATEGORY_MAP[payload.incident_type]
        relationship = (
            payload.perpetrator_relationship.value if payload.perpetrator_relationship else None
        )
        key = pattern_hash(
            category, payload.platform.value, relationship, region, sector, demographic
        )
        actions = [
            parse_enum(IncidentAction, a["action"], "actionsTaken.action")
            for a in payload.actions_taken
        ]
        strategies = [
            ACTION_MITIGATIONS[action] for action in actions if action in ACTION_MITIGATIONS
        ] or [BASELINE_MITIGATION]

        now = self.clock()
        existing = self.threats.get(key)
        if existing is None:
            threat = CommunityThreat(
                threat_pattern_hash=key,
                threat_category=category,
                severity_score=payload.severity_level,
                threat_description=(
                    f"{category.value.replace('_', ' ').capitalize()} reported on "
                    f"{payload.platform.value.replace('_', ' ')}"
                ),
                first_reported=now,
                last_reported=now,
                geographic_region=region,
                industry_sector=sector,
                target_demographic=demographic,
                common_indicators=[
                    f"platform:{payload.platform.value}",
                    f"perpetrator:{relationship or 'unknown'}",
                ],
                mitigation_strategies=_merge_strategies([], strategies),
                trend=ThreatTrend.NEW,
                is_verified=False,
                verification_source=VerificationSource.USER_REPORTS,
                updated_at=now,
            )
            self.threats.insert(threat)
            logger.info(
                "THREAT_PATTERN_CREATED",
                extra={"pattern_hash": key, "category": category.value, "region": region.value}
            )
            return threat

        count = existing.reported_count + 1
        severity = round(
            (existing.severity_score * existing.reported_count + payload.severity_level) / count
        )
        threat = replace(
            existing,
            severity_score=min(10, max(1, severity)),
            reported_count=count,
            last_reported=now,
            mitigation_strategies=_merge_strategies(existing.mitigation_strategies, strategies),
            trend=compute_trend(existing.first_reported, now, now),
            updated_at=now,
        )
        self.threats.put(threat)

        logger.info(
            "THREAT_PATTERN_UPDATED",
            extra={
                "pattern_hash": key,
                "reported_count": count,
                "severity_score": threat.severity_score,
                "trend": threat.trend.value,
            }
        )
        return threat

    def contribute_for_profile(
        self,
        payload: AnonymizedIncident,
        profile: SafetyProfile,
    ) -> CommunityThreat:
        region, sector, demographic = context_for_profile(profile)
        return self.contribute(payload, region, sector, demographic)

    def verify(self, threat_pattern_hash: str, source) -> CommunityThreat:
        """Mark a pattern verified so it is published to queries.

        Raises:
            NotFoundError: If the pattern does not exist
        """
        source = parse_enum(VerificationSource, source, "verificationSource")
        threat = self.threats.get(threat_pattern_hash)
        if threat is None:
            raise NotFoundError(f"Threat pattern not found: {threat_pattern_hash}")

        threat = replace(
            threat, is_verified=True, verification_source=source, updated_at=self.clock()
        )
        self.threats.put(threat)
        logger.info(
            "THREAT_PATTERN_VERIFIED",
            extra={"pattern_hash": threat_pattern_hash, "source": source.value}
        )
        return threat

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_context(self, region, sector=None, demographic=None) -> List[CommunityThreat]:
        """Published threats for a region, its country and international ones.

        Optional sector and demographic widen the match; a demographic
        also matches threats aimed at everyone.
        """
        region = parse_enum(ThreatRegion, region, "region")
        sector = parse_enum(IndustrySector, sector, "sector") if sector else None
        demographic = (
            parse_enum(TargetDemographic, demographic, "demographic") if demographic else None
        )

        regions = {region, ThreatRegion.KENYA, ThreatRegion.INTERNATIONAL}
        demographics = {demographic, TargetDemographic.ALL} if demographic else set()

        def matches(threat: CommunityThreat) -> bool:
            return (
                threat.geographic_region in regions
                or (sector is not None and threat.industry_sector == sector)
                or threat.target_demographic in demographics
            )

        return _by_severity_then_recency(self.threats.find_published(matches))

    def find_trending(self, limit: int = DEFAULT_RELEVANT_LIMIT) -> List[CommunityThreat]:
        trending = self.threats.find_published(
            lambda t: t.trend in (ThreatTrend.INCREASING, ThreatTrend.NEW)
        )
        return _by_severity_then_recency(trending)[:limit]

    def find_relevant_for_profile(
        self,
        profile: SafetyProfile,
        limit: int = DEFAULT_RELEVANT_LIMIT,
    ) -> List[CommunityThreat]:
        region, sector, demographic = context_for_profile(profile)
        return self.find_by_context(region, sector, demographic)[:limit]

    def threat_stats(
        self,
        region=None,
        time_range_days: int = DEFAULT_STATS_DAYS,
    ) -> List[ThreatCategoryStats]:
        """Per-category rollup of published threats reported in the window."""
        region = parse_enum(ThreatRegion, region, "region") if region else None
        since = self.clock() - timedelta(days=time_range_days)
        threats = self.threats.find_published(lambda t: t.last_reported >= since and (
            region is None or t.geographic_region == region
        ))

        grouped: Dict[ThreatCategory, List[CommunityThreat]] = {}
        for threat in threats:
            grouped.setdefault(threat.threat_category, []).append(threat)

        stats = []
        for category, group in grouped.items():
            trends = []
            for threat in group:
                if threat.trend not in trends:
                    trends.append(threat.trend)
            stats.append(ThreatCategoryStats(
                category=category,
                count=len(group),
                avg_severity=sum(t.severity_score for t in group) / len(group),
                max_severity=max(t.severity_score for t in group),
                trends=trends,
            ))
        stats.sort(key=lambda s: s.count, reverse=True)
        return stats

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def urgency(self, threat: CommunityThreat) -> UrgencyLevel:
        return urgency_level(threat, self.clock())

    def to_view(self, threat: CommunityThreat) -> Dict[str, Any]:
        """Threat as returned to callers, with urgency computed now."""
        view = threat.to_dict()
        view["urgencyLevel"] = self.urgency(threat).value
        return view


def relevant_mitigations(
    threat: CommunityThreat,
    risk_tolerance: RiskTolerance,
) -> List[MitigationStrategy]:
    """Strategies suited to the user, most effective first.

    Conservative users are not offered hard strategies.
    """
    strategies = [
        s for s in threat.mitigation_strategies
        if not (
            risk_tolerance == RiskTolerance.CONSERVATIVE
            and s.difficulty == MitigationDifficulty.HARD
        )
    ]
    return sorted(strategies, key=lambda s: s.effectiveness, reverse=True)
