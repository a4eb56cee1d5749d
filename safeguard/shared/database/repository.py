"""Document repository base class.

Every entity is stored as one JSON document keyed by a string, with the
owning user id and creation time kept in plain columns for filtering.
With a ConnectionManager the documents live in PostgreSQL JSONB tables;
without one they live in process memory (development and tests).
"""
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

import psycopg2
from psycopg2.extras import Json

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RepositoryError(Exception):
    """Store unavailable or stored data unreadable."""
    pass


class NotFoundError(RepositoryError):
    """Entity not found in the store."""
    pass


class DuplicateError(RepositoryError):
    """Entity with the same key already exists."""
    pass


class DocumentRepository(ABC, Generic[T]):
    """Abstract document repository.

    Subclasses provide the key, owner and (de)serialization of their
    entity and inherit:
    - PostgreSQL / in-memory storage
    - Error wrapping into RepositoryError
    - Logging patterns
    """

    table_name: str = ""

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        """Initialize repository.

        Args:
            connection_manager: PostgreSQL connection manager; None keeps
                documents in memory
        """
        self.connection_manager = connection_manager
        # key -> (user_id, created_at, document)
        self._memory_store: Dict[str, Tuple[Optional[str], datetime, Dict[str, Any]]] = {}

        logger.info(
            "REPOSITORY_INITIALIZED",
            extra={
                "table_name": self.table_name,
                "backend": "postgresql" if connection_manager else "memory",
            }
        )

    @abstractmethod
    def _key(self, entity: T) -> str:
        pass

    @abstractmethod
    def _to_document(self, entity: T) -> Dict[str, Any]:
        """Convert entity to a JSON-serializable document."""
        pass

    @abstractmethod
    def _from_document(self, document: Dict[str, Any]) -> T:
        """Convert a stored document back to an entity."""
        pass

    def _user_id(self, entity: T) -> Optional[str]:
        return None

    def _created_at(self, entity: T) -> datetime:
        return datetime.utcnow()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[T]:
        """Find entity by key, or None."""
        if self.connection_manager is None:
            stored = self._memory_store.get(key)
            return self._decode(stored[2]) if stored else None

        rows = self._execute(
            f"SELECT document FROM {self.table_name} WHERE key = %s",
            (key,),
            fetch=True,
        )
        return self._decode(rows[0][0]) if rows else None

    def put(self, entity: T) -> T:
        """Insert or replace entity (last write wins)."""
        key = self._key(entity)
        document = self._to_document(entity)

        if self.connection_manager is None:
            self._memory_store[key] = (
                self._user_id(entity), self._created_at(entity), self._copy(document)
            )
        else:
            self._execute(
                f"""
                INSERT INTO {self.table_name} (key, user_id, created_at, document)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (key) DO UPDATE SET
                    user_id = EXCLUDED.user_id,
                    document = EXCLUDED.document
                """,
                (key, self._user_id(entity), self._created_at(entity), Json(document)),
            )

        logger.debug("DOCUMENT_SAVED", extra={"table_name": self.table_name, "key": key})
        return entity

    def insert(self, entity: T) -> T:
        """Insert a new entity.

        Raises:
            DuplicateError: If an entity with the same key exists
        """
        key = self._key(entity)
        document = self._to_document(entity)

        if self.connection_manager is None:
            if key in self._memory_store:
                raise DuplicateError(f"{self.table_name}: key {key} already exists")
            self._memory_store[key] = (
                self._user_id(entity), self._created_at(entity), self._copy(document)
            )
        else:
            inserted = self._execute(
                f"""
                INSERT INTO {self.table_name} (key, user_id, created_at, document)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (key) DO NOTHING
                """,
                (key, self._user_id(entity), self._created_at(entity), Json(document)),
            )
            if inserted == 0:
                raise DuplicateError(f"{self.table_name}: key {key} already exists")

        logger.debug("DOCUMENT_INSERTED", extra={"table_name": self.table_name, "key": key})
        return entity

    def remove(self, key: str) -> bool:
        """Physically remove an entity. Returns False if it did not exist."""
        if self.connection_manager is None:
            removed = self._memory_store.pop(key, None) is not None
        else:
            removed = self._execute(
                f"DELETE FROM {self.table_name} WHERE key = %s",
                (key,),
            ) > 0

        logger.info(
            "DOCUMENT_REMOVED",
            extra={"table_name": self.table_name, "key": key, "removed": removed}
        )
        return removed

    def find(
        self,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        predicate: Optional[Callable[[T], bool]] = None,
    ) -> List[T]:
        """Find entities, newest first.

        Args:
            user_id: Only entities owned by this user
            since: Only entities created at or after this time
            until: Only entities created at or before this time
            predicate: Additional in-process filter on decoded entities

        Returns:
            Matching entities ordered by creation time descending
        """
        if self.connection_manager is None:
            candidates = [
                (created_at, document)
                for owner, created_at, document in self._memory_store.values()
                if (user_id is None or owner == user_id)
                and (since is None or created_at >= since)
                and (until is None or created_at <= until)
            ]
            candidates.sort(key=lambda item: item[0], reverse=True)
            documents = [document for _, document in candidates]
        else:
            query = f"SELECT document FROM {self.table_name} WHERE 1=1"
            params: List[Any] = []
            if user_id is not None:
                query += " AND user_id = %s"
                params.append(user_id)
            if since is not None:
                query += " AND created_at >= %s"
                params.append(since)
            if until is not None:
                query += " AND created_at <= %s"
                params.append(until)
            query += " ORDER BY created_at DESC"
            documents = [row[0] for row in self._execute(query, tuple(params), fetch=True)]

        entities = [self._decode(document) for document in documents]
        if predicate is not None:
            entities = [entity for entity in entities if predicate(entity)]
        return entities

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _decode(self, document: Dict[str, Any]) -> T:
        try:
            return self._from_document(self._copy(document))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(
                "MALFORMED_DOCUMENT",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Malformed document in {self.table_name}: {e}")

    @staticmethod
    def _copy(document: Dict[str, Any]) -> Dict[str, Any]:
        # Round-trip through JSON so memory and PostgreSQL behave the same
        return json.loads(json.dumps(document))

    def _execute(self, query: str, params: tuple, fetch: bool = False):
        """Run a statement; returns rows when fetch else the rowcount."""
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    result = cur.fetchall() if fetch else cur.rowcount
                conn.commit()
                return result
        except psycopg2.Error as e:
            logger.error(
                "DOCUMENT_STORE_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Document store failure on {self.table_name}: {e}")
