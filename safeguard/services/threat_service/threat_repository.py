"""Storage for community threats, keyed by threat pattern hash."""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from safeguard.shared.database import ConnectionManager, DocumentRepository
from safeguard.shared.models import CommunityThreat


class CommunityThreatRepository(DocumentRepository[CommunityThreat]):
    """Global threats; no owning user."""

    table_name = "community_threats"

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        super().__init__(connection_manager)

    def find_published(
        self,
        predicate: Optional[Callable[[CommunityThreat], bool]] = None,
    ) -> List[CommunityThreat]:
        """Active and verified threats, optionally filtered further."""
        return self.find(predicate=lambda t: t.is_active and t.is_verified and (
            predicate is None or predicate(t)
        ))

    def _key(self, entity: CommunityThreat) -> str:
        return entity.threat_pattern_hash

    def _created_at(self, entity: CommunityThreat) -> datetime:
        return entity.first_reported

    def _to_document(self, entity: CommunityThreat) -> Dict[str, Any]:
        return entity.to_dict()

    def _from_document(self, document: Dict[str, Any]) -> CommunityThreat:
        return CommunityThreat.from_dict(document)
