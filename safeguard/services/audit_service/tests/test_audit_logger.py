"""Tests for AuditLedger - append-only trail with retention assignment."""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from safeguard.shared.utils import configure_pii_salt
from safeguard.shared.database import RepositoryError
from safeguard.shared.models import (
    AuditActionType,
    AuditContext,
    AuditFeature,
    AuditOutcome,
    RiskLevel,
)
from safeguard.services.audit_service import (
    AuditLedger,
    AuditMetadata,
    AuditRepository,
    ComplianceFlags,
    assign_retention_period,
    anonymize_for_analytics,
    is_compliant,
)

NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture
def ledger():
    return AuditLedger(repository=AuditRepository(), clock=lambda: NOW)


class TestRetentionAssignment:
    def test_sensitive_entry_kept_seven_years(self):
        assert assign_retention_period(True, ComplianceFlags(), RiskLevel.LOW) == 2555

    def test_audit_required_kept_seven_years(self):
        flags = ComplianceFlags(audit_required=True)
        assert assign_retention_period(False, flags, RiskLevel.LOW) == 2555

    @pytest.mark.parametrize("level", [RiskLevel.HIGH, RiskLevel.CRITICAL])
    def test_high_risk_kept_three_years(self, level):
        assert assign_retention_period(False, ComplianceFlags(), level) == 1095

    @pytest.mark.parametrize("level", [RiskLevel.LOW, RiskLevel.MEDIUM])
    def test_everything_else_kept_one_year(self, level):
        assert assign_retention_period(False, ComplianceFlags(), level) == 365

    def test_retention_is_monotonic_in_sensitivity(self):
        sensitive = assign_retention_period(True, ComplianceFlags(), RiskLevel.LOW)
        high_risk = assign_retention_period(False, ComplianceFlags(), RiskLevel.CRITICAL)
        low_risk = assign_retention_period(False, ComplianceFlags(), RiskLevel.LOW)

        assert sensitive >= high_risk >= low_risk


class TestLogAction:
    def test_log_action_creates_entry(self, ledger):
        entry = ledger.log_action(
            user_id="user_1",
            action_type=AuditActionType.CONTENT_ANALYSIS,
            description="Content analyzed for linkedin",
            context=AuditContext.CONTENT_CREATION,
            feature=AuditFeature.CONTENT_ANALYZER,
            risk_level=RiskLevel.MEDIUM,
            outcome=AuditOutcome.WARNING,
        )

        assert entry.entry_id.startswith("audit_")
        assert entry.created_at == NOW
        assert entry.retention_period == 365
        assert entry.outcome == AuditOutcome.WARNING

    def test_incoming_retention_period_is_overwritten(self, ledger):
        entry = ledger.log_action(
            user_id="user_1",
            action_type=AuditActionType.INCIDENT_REPORT,
            description="Incident reported",
            is_sensitive=True,
        )

        assert entry.retention_period == 2555

    def test_entry_is_immutable(self, ledger):
        entry = ledger.log_action(
            user_id="user_1",
            action_type=AuditActionType.OTHER,
            description="noop",
        )

        with pytest.raises(Exception):  # FrozenInstanceError
            entry.retention_period = 1

    def test_storage_failure_does_not_propagate(self):
        repository = MagicMock()
        repository.append.side_effect = RepositoryError("store down")
        ledger = AuditLedger(repository=repository, clock=lambda: NOW)

        result = ledger.log_action(
            user_id="user_1",
            action_type=AuditActionType.CONTENT_ANALYSIS,
            description="Content analyzed",
        )

        assert result is None

    def test_record_propagates_storage_failure(self, ledger):
        entry = ledger.log_action(
            user_id="user_1",
            action_type=AuditActionType.OTHER,
            description="first",
        )

        # Same entry id a second time is a duplicate
        with pytest.raises(RepositoryError):
            ledger.record(entry)


class TestQueries:
    def _log_at(self, repository, when, **kwargs):
        ledger = AuditLedger(repository=repository, clock=lambda: when)
        defaults = dict(
            user_id="user_1",
            action_type=AuditActionType.CONTENT_ANALYSIS,
            description="Content analyzed",
        )
        defaults.update(kwargs)
        return ledger.log_action(**defaults)

    def test_find_by_user_and_time_range(self):
        repository = AuditRepository()
        self._log_at(repository, NOW - timedelta(days=40))
        recent = self._log_at(repository, NOW - timedelta(days=2))
        self._log_at(repository, NOW - timedelta(days=1), user_id="user_2")

        ledger = AuditLedger(repository=repository, clock=lambda: NOW)
        found = ledger.find_by_user_and_time_range(
            "user_1", NOW - timedelta(days=30), NOW
        )

        assert [e.entry_id for e in found] == [recent.entry_id]

    def test_find_high_risk_actions_in_window(self):
        repository = AuditRepository()
        self._log_at(repository, NOW - timedelta(days=1), risk_level=RiskLevel.HIGH)
        self._log_at(repository, NOW - timedelta(days=2), risk_level=RiskLevel.CRITICAL,
                     user_id="user_2")
        self._log_at(repository, NOW - timedelta(days=1), risk_level=RiskLevel.LOW)
        self._log_at(repository, NOW - timedelta(days=10), risk_level=RiskLevel.HIGH)

        ledger = AuditLedger(repository=repository, clock=lambda: NOW)
        found = ledger.find_high_risk_actions(time_range_days=7)

        assert len(found) == 2
        assert all(e.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL) for e in found)

    def test_audit_stats_rollup(self):
        repository = AuditRepository()
        self._log_at(repository, NOW - timedelta(days=1), risk_level=RiskLevel.LOW)
        self._log_at(repository, NOW - timedelta(days=2), risk_level=RiskLevel.HIGH,
                     user_override=True, system_decision=False)
        self._log_at(repository, NOW - timedelta(days=3),
                     action_type=AuditActionType.INCIDENT_REPORT,
                     risk_level=RiskLevel.CRITICAL)

        ledger = AuditLedger(repository=repository, clock=lambda: NOW)
        stats = ledger.get_audit_stats("user_1", time_range_days=30)

        assert stats[0].action_type == AuditActionType.CONTENT_ANALYSIS
        assert stats[0].count == 2
        assert stats[0].avg_risk_level == pytest.approx(2.0)
        assert stats[0].user_overrides == 1
        assert stats[0].system_decisions == 1
        assert stats[1].action_type == AuditActionType.INCIDENT_REPORT
        assert stats[1].avg_risk_level == pytest.approx(4.0)

    def test_find_compliance_issues(self, ledger):
        ledger.log_action(user_id="u", action_type=AuditActionType.OTHER, description="plain")
        flagged = ledger.log_action(
            user_id="u",
            action_type=AuditActionType.DATA_EXPORT,
            description="export",
            compliance_flags=ComplianceFlags(gdpr_relevant=True),
        )

        issues = ledger.find_compliance_issues()

        assert [e.entry_id for e in issues] == [flagged.entry_id]


class TestAnonymization:
    def test_projection_drops_identifying_fields(self, ledger):
        entry = ledger.log_action(
            user_id="user_secret",
            action_type=AuditActionType.CONTENT_ANALYSIS,
            description="Content analyzed",
            metadata=AuditMetadata(
                ip_address="10.0.0.1",
                user_agent="Mozilla/5.0",
                session_id="sess_123",
                device_info={"type": "mobile"},
                country="KE",
                region="Nairobi County",
                city="Westlands",
            ),
            performance_metrics={"processingTime": 12.0},
        )

        projection = anonymize_for_analytics(entry)
        flat = str(projection)

        assert "user_secret" not in flat
        assert "10.0.0.1" not in flat
        assert "sess_123" not in flat
        assert "Westlands" not in flat
        assert projection["metadata"]["location"] == {"country": "KE", "region": "Nairobi County"}
        assert projection["metadata"]["device_info"] == {"type": "mobile"}
        assert projection["performance_metrics"] == {"processingTime": 12.0}

    def test_is_compliant(self, ledger):
        entry = ledger.log_action(
            user_id="user_1",
            action_type=AuditActionType.OTHER,
            description="something happened",
        )

        assert is_compliant(entry) is True
