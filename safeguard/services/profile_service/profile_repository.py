"""Repositories for safety profiles and the platform user directory."""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from safeguard.shared.database import ConnectionManager, DocumentRepository, NotFoundError
from safeguard.shared.models import ProtectionLevel, SafetyProfile
from safeguard.shared.utils import to_iso, from_iso, hash_pii

logger = logging.getLogger(__name__)


class SafetyProfileRepository(DocumentRepository[SafetyProfile]):
    """One document per user, keyed by user id. Last write wins."""

    table_name = "safety_profiles"

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        super().__init__(connection_manager)

    def find_by_protection_level(self, level: ProtectionLevel) -> List[SafetyProfile]:
        return self.find(predicate=lambda p: p.is_active and p.protection_level == level)

    def _key(self, entity: SafetyProfile) -> str:
        return entity.user_id

    def _user_id(self, entity: SafetyProfile) -> Optional[str]:
        return entity.user_id

    def _created_at(self, entity: SafetyProfile) -> datetime:
        return entity.created_at

    def _to_document(self, entity: SafetyProfile) -> Dict[str, Any]:
        return entity.to_dict()

    def _from_document(self, document: Dict[str, Any]) -> SafetyProfile:
        return SafetyProfile.from_dict(document)


@dataclass(frozen=True)
class PlatformUser:
    """The slice of a platform account the safety engine reads and updates."""
    user_id: str
    integrations: Dict[str, bool] = field(default_factory=dict)    # name -> connected
    safety_score: Optional[float] = None
    last_safety_check: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def connected_integrations(self) -> List[str]:
        return sorted(name for name, connected in self.integrations.items() if connected)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "integrations": {
                name: {"connected": connected} for name, connected in self.integrations.items()
            },
            "safetySettings": {
                "safetyScore": self.safety_score,
                "lastSafetyCheck": to_iso(self.last_safety_check),
            },
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlatformUser":
        settings = data.get("safetySettings") or {}
        return cls(
            user_id=data["userId"],
            integrations={
                name: bool((value or {}).get("connected", False))
                for name, value in (data.get("integrations") or {}).items()
            },
            safety_score=settings.get("safetyScore"),
            last_safety_check=from_iso(settings.get("lastSafetyCheck")),
            created_at=from_iso(data["createdAt"]),
        )


class UserDirectory(DocumentRepository[PlatformUser]):
    """Platform users as seen by the safety engine.

    Accounts are owned by the platform; the engine only reads connected
    integrations and writes back the latest safety score.
    """

    table_name = "platform_users"

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        super().__init__(connection_manager)

    def require(self, user_id: str) -> PlatformUser:
        """Get a user or raise.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.get(user_id)
        if user is None:
            logger.warning("USER_NOT_FOUND", extra={"user_id_hash": hash_pii(user_id)})
            raise NotFoundError(f"User not found: {user_id}")
        return user

    def connected_integrations(self, user_id: str) -> List[str]:
        return self.require(user_id).connected_integrations

    def record_safety_check(self, user_id: str, score: float, checked_at: datetime) -> PlatformUser:
        user = replace(self.require(user_id), safety_score=score, last_safety_check=checked_at)
        return self.put(user)

    def _key(self, entity: PlatformUser) -> str:
        return entity.user_id

    def _user_id(self, entity: PlatformUser) -> Optional[str]:
        return entity.user_id

    def _created_at(self, entity: PlatformUser) -> datetime:
        return entity.created_at

    def _to_document(self, entity: PlatformUser) -> Dict[str, Any]:
        return entity.to_dict()

    def _from_document(self, document: Dict[str, Any]) -> PlatformUser:
        return PlatformUser.from_dict(document)
