"""Document store access for Safeguard services.

Provides connection pooling and a document repository base class over
PostgreSQL JSONB tables, with an in-process store for development.
"""

from .connection import (
    DatabaseConfig,
    ConnectionManager,
)
from .repository import (
    DocumentRepository,
    RepositoryError,
    NotFoundError,
    DuplicateError,
)

__all__ = [
    "DatabaseConfig",
    "ConnectionManager",
    "DocumentRepository",
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
]
