"""Storage for safety incidents.

Incidents are never hard-deleted through the public API; deactivation
flips is_active. remove() is reserved for rolling back a report whose
follow-up writes failed.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from safeguard.shared.database import ConnectionManager, DocumentRepository
from safeguard.shared.models import IncidentStatus, SafetyIncident


class SafetyIncidentRepository(DocumentRepository[SafetyIncident]):

    table_name = "safety_incidents"

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        super().__init__(connection_manager)

    def find_active_for_user(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        status: Optional[IncidentStatus] = None,
    ) -> List[SafetyIncident]:
        return self.find(
            user_id=user_id,
            since=since,
            predicate=lambda i: i.is_active and (status is None or i.status == status),
        )

    def _key(self, entity: SafetyIncident) -> str:
        return entity.incident_id

    def _user_id(self, entity: SafetyIncident) -> Optional[str]:
        return entity.user_id

    def _created_at(self, entity: SafetyIncident) -> datetime:
        return entity.created_at

    def _to_document(self, entity: SafetyIncident) -> Dict[str, Any]:
        return entity.to_dict()

    def _from_document(self, document: Dict[str, Any]) -> SafetyIncident:
        return SafetyIncident.from_dict(document)
