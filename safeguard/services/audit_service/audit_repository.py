"""Audit repository - append-only storage of audit entries.

PostgreSQL deployments grant the service role INSERT and SELECT only on
safety_audit_logs; this class exposes no update or delete path either.
"""
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from safeguard.shared.database import ConnectionManager, DocumentRepository, RepositoryError

if TYPE_CHECKING:
    from .audit_logger import SafetyAuditEntry

logger = logging.getLogger(__name__)


class AuditRepository(DocumentRepository["SafetyAuditEntry"]):
    """Write-once repository for SafetyAuditEntry documents."""

    table_name = "safety_audit_logs"

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        super().__init__(connection_manager)

    def append(self, entry: "SafetyAuditEntry") -> "SafetyAuditEntry":
        """Append entry to immutable storage.

        Raises:
            DuplicateError: If an entry with the same id exists
            RepositoryError: If storage fails
        """
        return self.insert(entry)

    def put(self, entity):
        raise RepositoryError("Audit entries are append-only")

    def remove(self, key: str) -> bool:
        raise RepositoryError("Audit entries cannot be deleted by the engine")

    def _key(self, entity: "SafetyAuditEntry") -> str:
        return entity.entry_id

    def _user_id(self, entity: "SafetyAuditEntry") -> Optional[str]:
        return entity.user_id

    def _created_at(self, entity: "SafetyAuditEntry") -> datetime:
        return entity.created_at

    def _to_document(self, entity: "SafetyAuditEntry") -> Dict[str, Any]:
        return entity.to_document()

    def _from_document(self, document: Dict[str, Any]) -> "SafetyAuditEntry":
        from .audit_logger import SafetyAuditEntry
        return SafetyAuditEntry.from_document(document)
