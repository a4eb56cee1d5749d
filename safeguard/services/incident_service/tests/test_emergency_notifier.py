"""Tests for EmergencyNotifier.

Emergency notifications are events on a Kinesis stream, one per contact.
These tests verify the notifier formats and sends events and never raises.
"""
import json
from unittest.mock import MagicMock, patch

import pytest

from safeguard.shared.models import ContactMethod, ContactRelationship, EmergencyContact
from safeguard.services.incident_service import (
    EmergencyEvent,
    EmergencyNotifier,
    NotifierConfig,
)

CONTACT = EmergencyContact(
    name="Wanjiru",
    relationship=ContactRelationship.FAMILY,
    contact_method=ContactMethod.PHONE,
    contact_info="+254700000001",
    is_primary=True,
)

SUMMARY = {
    "incident_id": "inc_123",
    "incident_type": "threat",
    "severity_level": 9,
    "user_id_hash": "hash_abc",
}


class TestNotifierConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EMERGENCY_STREAM_NAME", "test-stream")
        monkeypatch.setenv("EMERGENCY_NOTIFICATIONS_ENABLED", "false")
        monkeypatch.setenv("AWS_REGION", "eu-west-1")

        config = NotifierConfig.from_env()

        assert config.stream_name == "test-stream"
        assert config.enabled is False
        assert config.region == "eu-west-1"

    def test_defaults(self, monkeypatch):
        for name in ("EMERGENCY_STREAM_NAME", "EMERGENCY_NOTIFICATIONS_ENABLED", "AWS_REGION"):
            monkeypatch.delenv(name, raising=False)

        config = NotifierConfig.from_env()

        assert config.stream_name == "safeguard-emergency-events"
        assert config.enabled is True


class TestEmergencyEvent:
    def test_event_to_kinesis_payload(self):
        event = EmergencyEvent(
            event_id="evt_123",
            user_id_hash="hash_abc",
            contact=CONTACT,
            incident_summary=SUMMARY,
        )

        payload = event.to_kinesis_payload()

        assert payload["event_type"] == "safety.emergency.activated"
        assert payload["source"] == "incident-service"
        assert payload["timestamp"].endswith("Z")
        assert payload["data"]["contact"]["contact_method"] == "phone"
        assert payload["data"]["incident"]["severity_level"] == 9

    def test_event_is_immutable(self):
        event = EmergencyEvent(event_id="evt_123", user_id_hash="hash_abc", contact=CONTACT)

        with pytest.raises(Exception):  # FrozenInstanceError
            event.user_id_hash = "other"


class TestEmergencyNotifier:
    def test_disabled_returns_false(self):
        client = MagicMock()
        notifier = EmergencyNotifier(NotifierConfig(enabled=False), kinesis_client=client)

        assert notifier.notify(CONTACT, SUMMARY) is False
        client.put_record.assert_not_called()

    def test_notify_success(self):
        client = MagicMock()
        client.put_record.return_value = {"ShardId": "shard-001", "SequenceNumber": "1"}
        notifier = EmergencyNotifier(NotifierConfig(stream_name="test-stream"), kinesis_client=client)

        assert notifier.notify(CONTACT, SUMMARY) is True

        kwargs = client.put_record.call_args.kwargs
        assert kwargs["StreamName"] == "test-stream"
        assert kwargs["PartitionKey"] == "hash_abc"
        data = json.loads(kwargs["Data"])
        assert data["data"]["incident"]["incident_id"] == "inc_123"
        assert data["data"]["contact"]["contact_info"] == "+254700000001"

    def test_publish_failure_returns_false(self):
        client = MagicMock()
        client.put_record.side_effect = Exception("Kinesis unavailable")
        notifier = EmergencyNotifier(NotifierConfig(), kinesis_client=client)

        assert notifier.notify(CONTACT, SUMMARY) is False

    def test_failure_is_logged_critical_without_contact_info(self, caplog):
        client = MagicMock()
        client.put_record.side_effect = Exception("Kinesis unavailable")
        notifier = EmergencyNotifier(NotifierConfig(), kinesis_client=client)

        with caplog.at_level("CRITICAL"):
            notifier.notify(CONTACT, SUMMARY)

        failures = [r for r in caplog.records if r.getMessage() == "EMERGENCY_NOTIFICATION_FAILED"]
        assert len(failures) == 1
        assert "+254700000001" not in str(failures[0].__dict__)

    @patch("boto3.client")
    def test_client_created_lazily(self, mock_boto_client):
        mock_kinesis = MagicMock()
        mock_kinesis.put_record.return_value = {}
        mock_boto_client.return_value = mock_kinesis
        notifier = EmergencyNotifier(NotifierConfig(region="eu-west-1"))

        assert notifier.notify(CONTACT, SUMMARY) is True
        mock_boto_client.assert_called_once_with("kinesis", region_name="eu-west-1")

    @patch("boto3.client")
    def test_client_init_failure_returns_false(self, mock_boto_client):
        mock_boto_client.side_effect = Exception("no credentials")
        notifier = EmergencyNotifier(NotifierConfig())

        assert notifier.notify(CONTACT, SUMMARY) is False
