"""Emergency notifier for the Incident Manager.

Publishes one emergency event per emergency contact to a Kinesis stream.
A downstream delivery worker turns each event into an SMS, email or
messenger notification; the engine never talks to those channels itself.

Notification is best-effort: a failed publish is logged at CRITICAL
level and reported as False, it never fails the incident report.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from safeguard.shared.models import EmergencyContact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotifierConfig:
    stream_name: str = "safeguard-emergency-events"
    enabled: bool = True
    region: str = "us-east-1"

    @classmethod
    def from_env(cls) -> "NotifierConfig":
        """Create config from environment variables.

        Environment variables:
            EMERGENCY_STREAM_NAME: Kinesis stream name
            EMERGENCY_NOTIFICATIONS_ENABLED: "false" disables publishing (local dev)
            AWS_REGION: AWS region (default us-east-1)
        """
        return cls(
            stream_name=os.getenv("EMERGENCY_STREAM_NAME", "safeguard-emergency-events"),
            enabled=os.getenv("EMERGENCY_NOTIFICATIONS_ENABLED", "true").lower() == "true",
            region=os.getenv("AWS_REGION", "us-east-1"),
        )


@dataclass(frozen=True)
class EmergencyEvent:
    """Immutable emergency event for a single contact."""
    event_id: str
    user_id_hash: str
    contact: EmergencyContact
    incident_summary: Dict[str, Any] = field(default_factory=dict)
    event_type: str = "safety.emergency.activated"
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_kinesis_payload(self) -> dict:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat() + "Z",
            "source": "incident-service",
            "data": {
                "user_id_hash": self.user_id_hash,
                "contact": {
                    "name": self.contact.name,
                    "relationship": self.contact.relationship.value,
                    "contact_method": self.contact.contact_method.value,
                    "contact_info": self.contact.contact_info,
                    "is_primary": self.contact.is_primary,
                },
                "incident": self.incident_summary,
            }
        }


class EmergencyNotifier:
    """Publishes emergency events to Kinesis.

    Failure Handling:
        - Publishing failure does NOT fail the incident report
        - Failures are logged at CRITICAL level for alerting
        - Contact details never appear in logs
    """

    def __init__(self, config: Optional[NotifierConfig] = None, kinesis_client=None):
        """Initialize notifier.

        Args:
            config: Stream settings (defaults to NotifierConfig.from_env())
            kinesis_client: Preconfigured boto3 Kinesis client; created lazily if None
        """
        self.config = config or NotifierConfig.from_env()
        self._kinesis_client = kinesis_client

        logger.info(
            "EMERGENCY_NOTIFIER_INITIALIZED",
            extra={
                "stream_name": self.config.stream_name,
                "enabled": self.config.enabled,
                "region": self.config.region,
            }
        )

    @property
    def kinesis_client(self):
        """Lazy initialization of Kinesis client."""
        if self._kinesis_client is None and self.config.enabled:
            try:
                import boto3
                self._kinesis_client = boto3.client(
                    "kinesis",
                    region_name=self.config.region,
                )
            except Exception as e:
                logger.error(
                    "KINESIS_CLIENT_INIT_FAILED",
                    extra={"error": str(e)}
                )
        return self._kinesis_client

    def notify(self, contact: EmergencyContact, incident_summary: Dict[str, Any]) -> bool:
        """Publish an emergency event for one contact.

        Args:
            contact: Emergency contact to notify
            incident_summary: Non-identifying incident summary; must carry
                user_id_hash, which is also the partition key

        Returns:
            True if published, False otherwise (never raises)
        """
        user_id_hash = incident_summary.get("user_id_hash", "")
        incident_id = incident_summary.get("incident_id")

        if not self.config.enabled:
            logger.info(
                "EMERGENCY_NOTIFICATION_SKIPPED",
                extra={"incident_id": incident_id, "reason": "publishing_disabled"}
            )
            return False

        event = EmergencyEvent(
            event_id=f"evt_{uuid.uuid4().hex[:12]}",
            user_id_hash=user_id_hash,
            contact=contact,
            incident_summary=dict(incident_summary),
        )

        try:
            if self.kinesis_client is None:
                logger.critical(
                    "EMERGENCY_NOTIFICATION_FAILED",
                    extra={
                        "event_id": event.event_id,
                        "incident_id": incident_id,
                        "user_id_hash": user_id_hash,
                        "contact_method": contact.contact_method.value,
                        "reason": "kinesis_client_unavailable",
                        "action": "MANUAL_PROCESSING_REQUIRED",
                    }
                )
                return False

            # Same user -> same shard, so a user's contacts are notified in order
            response = self.kinesis_client.put_record(
                StreamName=self.config.stream_name,
                Data=json.dumps(event.to_kinesis_payload()),
                PartitionKey=user_id_hash or event.event_id,
            )

            logger.critical(
                "EMERGENCY_NOTIFICATION_PUBLISHED",
                extra={
                    "event_id": event.event_id,
                    "incident_id": incident_id,
                    "user_id_hash": user_id_hash,
                    "contact_method": contact.contact_method.value,
                    "shard_id": response.get("ShardId"),
                    "sequence_number": response.get("SequenceNumber"),
                }
            )
            return True

        except Exception as e:
            logger.critical(
                "EMERGENCY_NOTIFICATION_FAILED",
                extra={
                    "event_id": event.event_id,
                    "incident_id": incident_id,
                    "user_id_hash": user_id_hash,
                    "contact_method": contact.contact_method.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                }
            )
            return False
