"""Tests for ContentRiskAnalyzer.

Timing depends on the wall clock, so every analyzer gets a fixed clock.
NEUTRAL_TIME is a Tuesday at noon: no timing flags.
"""
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from safeguard.shared.exceptions import InvalidInputError
from safeguard.shared.database import RepositoryError
from safeguard.shared.models import (
    AuditActionType,
    AuditOutcome,
    RiskLevel,
    RiskTolerance,
    Severity,
)
from safeguard.shared.utils import configure_pii_salt
from safeguard.services.audit_service import AuditLedger, AuditRepository
from safeguard.services.content_service import (
    ContentRiskAnalyzer,
    PatternLibrary,
    NEUTRAL_PLACEHOLDER,
    REDACTION_MARKER,
    PROFESSIONAL_PLACEHOLDER,
)

NEUTRAL_TIME = datetime(2026, 3, 10, 12, 0)       # Tuesday
SATURDAY_LATE = datetime(2026, 3, 14, 23, 30)     # Saturday
TUESDAY_DAWN = datetime(2026, 3, 10, 6, 0)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture
def audit_repository():
    return AuditRepository()


@pytest.fixture
def analyzer(audit_repository):
    return ContentRiskAnalyzer(
        audit_ledger=AuditLedger(repository=audit_repository, clock=lambda: NEUTRAL_TIME),
        clock=lambda: NEUTRAL_TIME,
    )


class TestScenarios:
    def test_harassment_with_phone_number(self, analyzer):
        report = analyzer.analyze(
            "user_1",
            "you are stupid and worthless, call 555-123-4567",
            "linkedin",
            risk_tolerance="moderate",
        )

        assert report.harassment.score == pytest.approx(0.8)
        assert report.harassment.severity == Severity.CRITICAL
        assert report.privacy.score == pytest.approx(0.3)
        assert report.privacy.severity == Severity.MEDIUM
        assert report.professional.score == 0.0
        assert report.timing.score == 0.0
        assert report.overall_risk == pytest.approx(0.41)

    def test_clean_content_is_low_risk(self, analyzer):
        report = analyzer.analyze("user_1", "Excited to share our quarterly results!", "linkedin")

        assert report.overall_risk == 0.0
        assert report.recommendations == []
        assert report.alternatives == []


class TestHarassment:
    def test_conservative_scores_at_least_open(self, analyzer):
        content = "obviously you should watch out, loser"

        conservative = analyzer.analyze_harassment(content, RiskTolerance.CONSERVATIVE)
        moderate = analyzer.analyze_harassment(content, RiskTolerance.MODERATE)
        open_ = analyzer.analyze_harassment(content, RiskTolerance.OPEN)

        assert conservative.score >= moderate.score >= open_.score
        assert conservative.score == pytest.approx(moderate.score * 1.2)
        assert open_.score == pytest.approx(moderate.score * 0.8)

    def test_each_term_counted_once(self, analyzer):
        result = analyzer.analyze_harassment("stupid stupid STUPID", RiskTolerance.MODERATE)

        assert result.score == pytest.approx(0.4)
        assert result.triggers == ["direct:stupid"]

    def test_word_boundaries(self, analyzer):
        # "ending" and "hurtle" contain threatening terms as substrings
        result = analyzer.analyze_harassment("the ending was a hurtle", RiskTolerance.MODERATE)

        assert result.score == 0.0

    def test_threatening_terms(self, analyzer):
        result = analyzer.analyze_harassment("you'll regret this", RiskTolerance.MODERATE)

        assert result.score == pytest.approx(0.6)
        assert result.severity == Severity.HIGH


class TestPrivacy:
    def test_ssn_is_critical(self, analyzer):
        result = analyzer.analyze_privacy("my ssn 123-45-6789")

        assert result.score == pytest.approx(0.8)
        assert result.severity == Severity.CRITICAL
        assert result.exposures[0].exposure_type == "ssn"
        assert result.exposures[0].severity == Severity.CRITICAL

    def test_per_category_score_is_capped(self, analyzer):
        content = "555-123-4567 555-123-4568 555-123-4569 555-123-4570"

        result = analyzer.analyze_privacy(content)

        assert result.score == pytest.approx(1.0)
        exposure = result.exposures[0]
        assert exposure.count == 4
        assert exposure.examples == ["555-123-4567", "555-123-4568", "555-123-4569"]

    def test_self_disclosure_phrases(self, analyzer):
        result = analyzer.analyze_privacy("I live in Nairobi and I work at Acme")

        assert result.score == pytest.approx(0.6)
        assert result.triggers == ["self_disclosure", "self_disclosure"]

    def test_email_and_url(self, analyzer):
        result = analyzer.analyze_privacy("write to jane@example.com or see https://example.com/me")

        types = {e.exposure_type for e in result.exposures}
        assert "email" in types
        assert "url" in types


class TestProfessional:
    def test_language_and_topics(self, analyzer):
        result = analyzer.analyze_professional("damn, politics again")

        assert result.score == pytest.approx(0.5)
        assert result.severity == Severity.MEDIUM

    def test_hello_is_not_hell(self, analyzer):
        result = analyzer.analyze_professional("hello everyone")

        assert result.score == 0.0

    def test_oversharing(self, analyzer):
        result = analyzer.analyze_professional("my kids and my wife say hi")

        assert result.score == pytest.approx(0.2)
        assert result.severity == Severity.LOW


class TestTiming:
    def test_saturday_late_night(self, analyzer):
        result = analyzer.analyze_timing(SATURDAY_LATE)

        assert result.score == pytest.approx(0.4)
        assert result.severity == Severity.MEDIUM
        assert result.triggers == ["late_night", "weekend"]

    def test_dawn_is_late_night_and_early_morning(self, analyzer):
        result = analyzer.analyze_timing(TUESDAY_DAWN)

        assert result.score == pytest.approx(0.5)
        assert set(result.triggers) == {"late_night", "early_morning"}

    def test_configured_holiday(self):
        analyzer = ContentRiskAnalyzer(library=PatternLibrary(holidays=frozenset({"12-25"})))

        result = analyzer.analyze_timing(datetime(2026, 12, 25, 14, 0))

        assert result.score == pytest.approx(0.2)
        assert result.triggers == ["holiday"]

    def test_timing_uses_injected_clock(self):
        analyzer = ContentRiskAnalyzer(clock=lambda: SATURDAY_LATE)

        report = analyzer.analyze("user_1", "hello", "twitter")

        assert report.timing.score == pytest.approx(0.4)


class TestAggregate:
    def test_overall_is_clamped(self, analyzer):
        content = (
            "you stupid ugly worthless loser, I'll kill you, watch out. "
            "ssn 123-45-6789 card 4111 1111 1111 1111 I live in 12 Main Street. "
            "damn politics, my ex"
        )

        report = analyzer.analyze("user_1", content, "linkedin", risk_tolerance="conservative")

        assert 0.0 <= report.overall_risk <= 1.0
        assert report.overall_risk == 1.0

    def test_recommendations_sorted_by_priority(self):
        analyzer = ContentRiskAnalyzer(clock=lambda: SATURDAY_LATE)
        content = "you are stupid and pathetic. damn politics. call 555-123-4567"

        report = analyzer.analyze("user_1", content, "linkedin")

        assert [r.recommendation_type for r in report.recommendations] == [
            "harassment", "privacy", "professional", "timing",
        ]
        assert [r.priority for r in report.recommendations] == ["high", "high", "medium", "low"]
        assert report.recommendations[0].action == "rephrase"
        assert report.recommendations[1].action == "remove_personal_info"
        assert report.recommendations[2].action == "professional_tone"
        assert report.recommendations[3].action == "reschedule"

    def test_alternatives_are_substitutions(self, analyzer):
        content = "you are stupid and pathetic. damn politics. call 555-123-4567"

        report = analyzer.analyze("user_1", content, "linkedin")
        alternatives = {a.alternative_type: a.content for a in report.alternatives}

        assert "stupid" not in alternatives["harassment_free"]
        assert NEUTRAL_PLACEHOLDER in alternatives["harassment_free"]
        assert "555-123-4567" not in alternatives["privacy_safe"]
        assert REDACTION_MARKER in alternatives["privacy_safe"]
        assert PROFESSIONAL_PLACEHOLDER in alternatives["professional"]

    def test_report_to_dict(self, analyzer):
        report = analyzer.analyze("user_1", "call 555-123-4567", "linkedin", content_id="c_1")

        data = report.to_dict()

        assert data["contentId"] == "c_1"
        assert data["confidence"] == 0.8
        assert data["patternVersion"] == analyzer.library.version
        assert data["risks"]["privacy"]["exposures"][0]["type"] == "phone"


class TestAuditing:
    def test_analysis_writes_audit_entry(self, analyzer, audit_repository):
        analyzer.analyze("user_1", "you are stupid and worthless, call 555-123-4567", "linkedin")

        entries = audit_repository.find(user_id="user_1")
        assert len(entries) == 1
        entry = entries[0]
        assert entry.action_type == AuditActionType.CONTENT_ANALYSIS
        assert entry.action_details.description == "Content analyzed for linkedin"
        assert entry.risk_level == RiskLevel.MEDIUM
        assert entry.outcome == AuditOutcome.SUCCESS
        assert entry.metadata.details["patternVersion"] == analyzer.library.version

    def test_high_risk_analysis_is_warning(self, analyzer, audit_repository):
        analyzer.analyze(
            "user_1",
            "stupid ugly worthless loser idiot, I will kill and destroy you",
            "linkedin",
        )

        entry = audit_repository.find(user_id="user_1")[0]
        assert entry.risk_level == RiskLevel.HIGH
        assert entry.outcome == AuditOutcome.WARNING

    def test_audit_failure_does_not_fail_analysis(self):
        failing = MagicMock()
        failing.append.side_effect = RepositoryError("store down")
        analyzer = ContentRiskAnalyzer(
            audit_ledger=AuditLedger(repository=failing),
            clock=lambda: NEUTRAL_TIME,
        )

        report = analyzer.analyze("user_1", "you are stupid", "linkedin")

        assert report.harassment.score == pytest.approx(0.4)


class TestInputs:
    def test_empty_content_rejected(self, analyzer):
        with pytest.raises(InvalidInputError):
            analyzer.analyze("user_1", "   ", "linkedin")

    def test_missing_platform_rejected(self, analyzer):
        with pytest.raises(InvalidInputError):
            analyzer.analyze("user_1", "hello", "")

    def test_unknown_tolerance_rejected(self, analyzer):
        with pytest.raises(InvalidInputError):
            analyzer.analyze("user_1", "hello", "linkedin", risk_tolerance="reckless")

    def test_tolerance_read_from_profile(self):
        profiles = MagicMock()
        profiles.get.return_value = SimpleNamespace(
            is_active=True, risk_tolerance=RiskTolerance.CONSERVATIVE
        )
        analyzer = ContentRiskAnalyzer(profile_repository=profiles, clock=lambda: NEUTRAL_TIME)

        report = analyzer.analyze("user_1", "you are stupid", "linkedin")

        assert report.risk_tolerance == RiskTolerance.CONSERVATIVE
        assert report.harassment.score == pytest.approx(0.48)

    def test_missing_profile_defaults_to_moderate(self):
        profiles = MagicMock()
        profiles.get.return_value = None
        analyzer = ContentRiskAnalyzer(profile_repository=profiles, clock=lambda: NEUTRAL_TIME)

        report = analyzer.analyze("user_1", "hello", "linkedin")

        assert report.risk_tolerance == RiskTolerance.MODERATE
