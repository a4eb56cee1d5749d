"""Tests for CommunityThreatAggregator - trend, urgency, contributions, queries."""
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from safeguard.shared.database import NotFoundError
from safeguard.shared.exceptions import InvalidInputError
from safeguard.shared.models import (
    AnonymizedIncident,
    CommunityThreat,
    CulturalContext,
    ImpactAssessment,
    IncidentPlatform,
    IncidentType,
    IndustrySector,
    MitigationDifficulty,
    MitigationStrategy,
    PerpetratorRelationship,
    RiskTolerance,
    SafetyProfile,
    TargetDemographic,
    ThreatCategory,
    ThreatRegion,
    ThreatTrend,
    UrgencyLevel,
    VerificationSource,
    VulnerabilityFactor,
)
from safeguard.services.threat_service import (
    CommunityThreatAggregator,
    CommunityThreatRepository,
    compute_trend,
    context_for_profile,
    relevant_mitigations,
    urgency_level,
)

NOW = datetime(2026, 3, 10, 12, 0, 0)


def days_ago(days):
    return NOW - timedelta(days=days)


def make_threat(
    pattern="p1",
    severity=5,
    last_reported=NOW,
    first_reported=None,
    region=ThreatRegion.NAIROBI,
    sector=None,
    demographic=TargetDemographic.CONSULTANTS,
    trend=ThreatTrend.NEW,
    verified=True,
    active=True,
    category=ThreatCategory.HARASSMENT,
):
    return CommunityThreat(
        threat_pattern_hash=pattern,
        threat_category=category,
        severity_score=severity,
        threat_description="Harassment reported on linkedin",
        first_reported=first_reported or last_reported,
        last_reported=last_reported,
        geographic_region=region,
        industry_sector=sector,
        target_demographic=demographic,
        trend=trend,
        is_verified=verified,
        is_active=active,
    )


def make_payload(severity=6, actions=None, relationship=PerpetratorRelationship.STRANGER):
    return AnonymizedIncident(
        incident_type=IncidentType.THREAT,
        severity_level=severity,
        platform=IncidentPlatform.LINKEDIN,
        perpetrator_known=relationship is not None,
        perpetrator_relationship=relationship,
        actions_taken=actions or [],
        impact_assessment=ImpactAssessment(),
        created_at=NOW,
    )


@pytest.fixture
def repository():
    return CommunityThreatRepository()


@pytest.fixture
def aggregator(repository):
    return CommunityThreatAggregator(threats=repository, clock=lambda: NOW)


class TestComputeTrend:
    def test_recent_first_report_is_new(self):
        assert compute_trend(days_ago(2), NOW, NOW) == ThreatTrend.NEW

    def test_older_pattern_with_last_report_ten_days_ago_is_stable(self):
        assert compute_trend(days_ago(20), days_ago(10), NOW) == ThreatTrend.STABLE

    @pytest.mark.parametrize("since_first,since_last,expected", [
        (7, 7, ThreatTrend.NEW),
        (8, 0, ThreatTrend.INCREASING),
        (8, 3, ThreatTrend.INCREASING),
        (20, 3.5, ThreatTrend.STABLE),
        (30, 14, ThreatTrend.STABLE),
        (30, 14.5, ThreatTrend.DECREASING),
        (400, 200, ThreatTrend.DECREASING),
    ])
    def test_buckets_cover_all_elapsed_times(self, since_first, since_last, expected):
        assert compute_trend(days_ago(since_first), days_ago(since_last), NOW) == expected


class TestUrgencyLevel:
    @pytest.mark.parametrize("severity,since_last,expected", [
        (8, 7, UrgencyLevel.CRITICAL),
        (8, 8, UrgencyLevel.HIGH),
        (6, 14, UrgencyLevel.HIGH),
        (6, 20, UrgencyLevel.MEDIUM),
        (4, 30, UrgencyLevel.MEDIUM),
        (4, 31, UrgencyLevel.LOW),
        (3, 0, UrgencyLevel.LOW),
    ])
    def test_thresholds(self, severity, since_last, expected):
        threat = make_threat(severity=severity, last_reported=days_ago(since_last))
        assert urgency_level(threat, NOW) == expected

    def test_view_includes_urgency_but_stored_document_does_not(self, aggregator, repository):
        threat = make_threat(severity=9)
        repository.put(threat)

        view = aggregator.to_view(threat)

        assert view["urgencyLevel"] == "critical"
        assert "urgencyLevel" not in repository.get("p1").to_dict()


class TestContribute:
    def test_new_pattern_starts_unverified(self, aggregator):
        threat = aggregator.contribute(make_payload(), "nairobi")

        assert threat.threat_category == ThreatCategory.HARASSMENT
        assert threat.trend == ThreatTrend.NEW
        assert threat.is_verified is False
        assert threat.verification_source == VerificationSource.USER_REPORTS
        assert threat.reported_count == 1
        assert threat.first_reported == NOW

    def test_same_pattern_is_deduplicated(self, aggregator, repository):
        first = aggregator.contribute(make_payload(severity=6), "nairobi")
        second = aggregator.contribute(make_payload(severity=9), "nairobi")

        assert first.threat_pattern_hash == second.threat_pattern_hash
        assert second.reported_count == 2
        assert second.severity_score == 8
        assert len(repository.find()) == 1

    def test_different_region_is_a_different_pattern(self, aggregator):
        first = aggregator.contribute(make_payload(), "nairobi")
        second = aggregator.contribute(make_payload(), "mombasa")

        assert first.threat_pattern_hash != second.threat_pattern_hash

    def test_trend_recomputed_on_new_report(self, repository):
        clock_time = [days_ago(20)]
        aggregator = CommunityThreatAggregator(threats=repository, clock=lambda: clock_time[0])
        aggregator.contribute(make_payload(), "nairobi")

        clock_time[0] = NOW
        threat = aggregator.contribute(make_payload(), "nairobi")

        assert threat.trend == ThreatTrend.INCREASING
        assert threat.last_reported == NOW

    def test_mitigations_come_from_actions(self, aggregator):
        payload = make_payload(actions=[
            {"action": "blocked_user", "timestamp": None, "outcome": "stopped"},
            {"action": "contacted_authorities", "timestamp": None, "outcome": ""},
            {"action": "blocked_user", "timestamp": None, "outcome": ""},
        ])

        threat = aggregator.contribute(payload, "kenya")

        assert len(threat.mitigation_strategies) == 2
        assert {s.difficulty for s in threat.mitigation_strategies} == {
            MitigationDifficulty.EASY, MitigationDifficulty.HARD
        }

    def test_contribution_carries_no_personal_data(self, aggregator):
        threat = aggregator.contribute(make_payload(), "nairobi")

        document = threat.to_dict()
        assert "userId" not in document
        assert "description" not in document

    def test_unknown_region_rejected(self, aggregator):
        with pytest.raises(InvalidInputError):
            aggregator.contribute(make_payload(), "atlantis")


class TestVerify:
    def test_verify_publishes_pattern(self, aggregator):
        threat = aggregator.contribute(make_payload(), "nairobi")
        assert aggregator.find_by_context("nairobi") == []

        aggregator.verify(threat.threat_pattern_hash, "expert_review")

        found = aggregator.find_by_context("nairobi")
        assert [t.threat_pattern_hash for t in found] == [threat.threat_pattern_hash]
        assert found[0].verification_source == VerificationSource.EXPERT_REVIEW

    def test_verify_unknown_pattern_raises(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.verify("missing", "expert_review")


class TestQueries:
    def test_find_by_context_matches_region_country_and_international(self, aggregator, repository):
        repository.put(make_threat("local", region=ThreatRegion.NAIROBI))
        repository.put(make_threat("country", region=ThreatRegion.KENYA))
        repository.put(make_threat("global", region=ThreatRegion.INTERNATIONAL))
        repository.put(make_threat("elsewhere", region=ThreatRegion.MOMBASA))

        found = {t.threat_pattern_hash for t in aggregator.find_by_context("nairobi")}

        assert found == {"local", "country", "global"}

    def test_sector_and_demographic_widen_the_match(self, aggregator, repository):
        repository.put(make_threat(
            "sector", region=ThreatRegion.MOMBASA, sector=IndustrySector.FINANCE
        ))
        repository.put(make_threat(
            "everyone", region=ThreatRegion.KISUMU, demographic=TargetDemographic.ALL
        ))

        found = {
            t.threat_pattern_hash
            for t in aggregator.find_by_context("nairobi", "finance", "content_creators")
        }

        assert found == {"sector", "everyone"}

    def test_ordered_by_severity_then_recency(self, aggregator, repository):
        repository.put(make_threat("older", severity=7, last_reported=days_ago(5)))
        repository.put(make_threat("newer", severity=7, last_reported=days_ago(1)))
        repository.put(make_threat("severe", severity=9, last_reported=days_ago(9)))

        found = [t.threat_pattern_hash for t in aggregator.find_by_context("nairobi")]

        assert found == ["severe", "newer", "older"]

    def test_unverified_and_inactive_are_hidden(self, aggregator, repository):
        repository.put(make_threat("unverified", verified=False))
        repository.put(make_threat("inactive", active=False))

        assert aggregator.find_by_context("nairobi") == []

    def test_find_trending(self, aggregator, repository):
        repository.put(make_threat("new", trend=ThreatTrend.NEW, severity=5))
        repository.put(make_threat("rising", trend=ThreatTrend.INCREASING, severity=8))
        repository.put(make_threat("flat", trend=ThreatTrend.STABLE, severity=10))

        assert [t.threat_pattern_hash for t in aggregator.find_trending()] == ["rising", "new"]
        assert len(aggregator.find_trending(limit=1)) == 1

    def test_find_relevant_for_profile(self, aggregator, repository):
        repository.put(make_threat(
            "creators", region=ThreatRegion.MOMBASA,
            demographic=TargetDemographic.CONTENT_CREATORS,
        ))
        repository.put(make_threat(
            "abroad", region=ThreatRegion.EAST_AFRICA, demographic=TargetDemographic.TECH_WORKERS,
        ))
        profile = SafetyProfile(
            user_id="user_1",
            vulnerability_factors=[VulnerabilityFactor.CONTENT_CREATOR],
            cultural_context=CulturalContext.KENYAN,
        )

        found = [t.threat_pattern_hash for t in aggregator.find_relevant_for_profile(profile)]

        assert found == ["creators"]

    def test_threat_stats_group_by_category(self, aggregator, repository):
        repository.put(make_threat("a", severity=4, trend=ThreatTrend.NEW))
        repository.put(make_threat("b", severity=8, trend=ThreatTrend.STABLE))
        repository.put(make_threat(
            "c", severity=6, category=ThreatCategory.SCAM, region=ThreatRegion.KENYA
        ))
        repository.put(make_threat("stale", severity=10, last_reported=days_ago(60)))

        stats = [s.to_dict() for s in aggregator.threat_stats()]

        assert stats[0] == {
            "category": "harassment",
            "count": 2,
            "avgSeverity": 6.0,
            "maxSeverity": 8,
            "trends": ["new", "stable"],
        }
        assert stats[1]["category"] == "scam"

    def test_threat_stats_filtered_by_region(self, aggregator, repository):
        repository.put(make_threat("a", region=ThreatRegion.NAIROBI))
        repository.put(make_threat("b", region=ThreatRegion.KENYA))

        stats = aggregator.threat_stats(region="kenya")

        assert [s.count for s in stats] == [1]


class TestProfileContext:
    def test_defaults(self):
        region, sector, demographic = context_for_profile(SafetyProfile(user_id="user_1"))

        assert region == ThreatRegion.KENYA
        assert sector == IndustrySector.TECHNOLOGY
        assert demographic == TargetDemographic.ALL

    def test_factors_drive_sector_and_demographic(self):
        profile = SafetyProfile(
            user_id="user_1",
            vulnerability_factors=[VulnerabilityFactor.FINANCE, VulnerabilityFactor.SOLO_FOUNDER],
            cultural_context=CulturalContext.INTERNATIONAL,
        )

        assert context_for_profile(profile) == (
            ThreatRegion.INTERNATIONAL,
            IndustrySector.FINANCE,
            TargetDemographic.ALL,
        )

    def test_first_matching_demographic_factor_wins(self):
        profile = SafetyProfile(
            user_id="user_1",
            vulnerability_factors=[
                VulnerabilityFactor.SOLO_FOUNDER,
                VulnerabilityFactor.YOUNG_ENTREPRENEUR,
                VulnerabilityFactor.CONTENT_CREATOR,
            ],
        )

        assert context_for_profile(profile)[2] == TargetDemographic.CONTENT_CREATORS


class TestRelevantMitigations:
    def test_conservative_users_do_not_see_hard_strategies(self):
        threat = replace(make_threat(), mitigation_strategies=[
            MitigationStrategy("Block", effectiveness=6, difficulty=MitigationDifficulty.EASY),
            MitigationStrategy("Sue", effectiveness=9, difficulty=MitigationDifficulty.HARD),
            MitigationStrategy("Lock down", effectiveness=8),
        ])

        conservative = relevant_mitigations(threat, RiskTolerance.CONSERVATIVE)
        moderate = relevant_mitigations(threat, RiskTolerance.MODERATE)

        assert [s.strategy for s in conservative] == ["Lock down", "Block"]
        assert [s.strategy for s in moderate] == ["Sue", "Lock down", "Block"]
