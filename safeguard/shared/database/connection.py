"""PostgreSQL pool for the Safeguard document store.

One ConnectionManager is built at process start (see
services.container) and shared by every repository. It also creates the
document tables and answers the /ready probe.
"""
import json
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterable

import boto3
from psycopg2 import pool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Credentials come from AWS Secrets Manager in production,
    or from environment variables in development.
    """
    host: str
    port: int = 5432
    database: str = "safeguard"
    username: str = ""
    password: str = ""
    min_connections: int = 2
    max_connections: int = 10
    connect_timeout: int = 10
    ssl_mode: str = "require"

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create config from environment variables.

        Environment variables:
            DB_HOST: Database host
            DB_PORT: Database port (default 5432)
            DB_NAME: Database name (default safeguard)
            DB_USER: Database username
            DB_PASSWORD: Database password
            DB_MIN_CONN: Minimum pool connections (default 2)
            DB_MAX_CONN: Maximum pool connections (default 10)
            DB_SSL_MODE: SSL mode (default require)
            DB_CONNECT_TIMEOUT: Seconds to wait for a new connection (default 10)
        """
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "safeguard"),
            username=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            min_connections=int(os.getenv("DB_MIN_CONN", "2")),
            max_connections=int(os.getenv("DB_MAX_CONN", "10")),
            connect_timeout=int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
            ssl_mode=os.getenv("DB_SSL_MODE", "require"),
        )

    @classmethod
    def from_secrets_manager(cls, secret_arn: str, region: str = "us-east-1") -> "DatabaseConfig":
        """Load config from AWS Secrets Manager.

        Args:
            secret_arn: ARN of the secret containing credentials
            region: AWS region

        Returns:
            DatabaseConfig with credentials from Secrets Manager
        """
        try:
            client = boto3.client("secretsmanager", region_name=region)
            response = client.get_secret_value(SecretId=secret_arn)
            secret = json.loads(response["SecretString"])
        except Exception as e:
            logger.error(
                "SECRETS_MANAGER_LOAD_FAILED",
                extra={"error": str(e), "secret_arn": secret_arn}
            )
            raise

        return cls(
            host=secret.get("host", os.getenv("DB_HOST", "localhost")),
            port=int(secret.get("port", os.getenv("DB_PORT", "5432"))),
            database=secret.get("dbname", os.getenv("DB_NAME", "safeguard")),
            username=secret.get("username", ""),
            password=secret.get("password", ""),
        )


class ConnectionManager:
    """Manages pooled PostgreSQL connections.

    Constructed once at process start and handed to every repository.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool = None

        logger.info(
            "CONNECTION_MANAGER_CREATED",
            extra={
                "host": config.host,
                "database": config.database,
                "min_connections": config.min_connections,
                "max_connections": config.max_connections,
            }
        )

    @property
    def initialized(self) -> bool:
        return self._pool is not None

    def initialize(self) -> None:
        """Create the connection pool. Call during application startup."""
        if self._pool is not None:
            return

        try:
            self._pool = pool.ThreadedConnectionPool(
                minconn=self.config.min_connections,
                maxconn=self.config.max_connections,
                host=self.config.host,
                port=self.config.port,
                database=self.config.database,
                user=self.config.username,
                password=self.config.password,
                connect_timeout=self.config.connect_timeout,
                sslmode=self.config.ssl_mode,
            )
        except Exception as e:
            logger.error(
                "CONNECTION_POOL_INIT_FAILED",
                extra={"error": str(e)}
            )
            raise

        logger.info(
            "CONNECTION_POOL_INITIALIZED",
            extra={
                "host": self.config.host,
                "database": self.config.database,
            }
        )

    @contextmanager
    def get_connection(self):
        """Get a connection from the pool.

        Usage:
            with manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
        """
        if self._pool is None:
            self.initialize()

        conn = self._pool.getconn()
        try:
            yield conn
        except Exception:
            # Never hand an aborted transaction back to the pool
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def ensure_tables(self, table_names: Iterable[str]) -> None:
        """Create the document tables if they do not exist yet."""
        tables = list(table_names)
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                for table_name in tables:
                    cur.execute(
                        f"""
                        CREATE TABLE IF NOT EXISTS {table_name} (
                            key TEXT PRIMARY KEY,
                            user_id TEXT,
                            created_at TIMESTAMP NOT NULL,
                            document JSONB NOT NULL
                        )
                        """
                    )
                    cur.execute(
                        f"CREATE INDEX IF NOT EXISTS {table_name}_user_created_idx "
                        f"ON {table_name} (user_id, created_at DESC)"
                    )
            conn.commit()

        logger.info("DOCUMENT_TABLES_ENSURED", extra={"tables": tables})

    def health_check(self) -> Dict[str, Any]:
        """Check database connectivity."""
        if self._pool is None:
            return {
                "status": "not_initialized",
                "healthy": False,
            }

        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
        except Exception as e:
            logger.error(
                "DATABASE_HEALTH_CHECK_FAILED",
                extra={"error": str(e)}
            )
            return {
                "status": "error",
                "healthy": False,
                "error": str(e),
            }

        return {
            "status": "connected",
            "healthy": True,
            "host": self.config.host,
            "database": self.config.database,
        }

    def close(self) -> None:
        """Close all pooled connections. Call during shutdown."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("CONNECTION_POOL_CLOSED")
