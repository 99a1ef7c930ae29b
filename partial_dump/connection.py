"""
Database connection management for Partial Dump.
"""

import logging
from typing import Any, Optional, Protocol

import psycopg


class QueryExecutor(Protocol):
    """Anything that can run a query and return rows as ordered mappings."""

    def execute_query(self, query: str) -> list[dict[str, Optional[str]]]:
        ...

    def get_schema_version(self) -> Optional[str]:
        ...


class DatabaseConnection:
    """Manages PostgreSQL connections with context manager support.

    Rows are returned in PostgreSQL's own text representation, exactly as
    psql would print them, so dumps reload without any type conversion.
    """

    DEFAULT_PORT = 5432
    SCHEMA_VERSION_QUERY = "SELECT max(version) FROM schema_migrations"

    def __init__(
        self,
        database: str,
        host: Optional[str] = None,
        port: int = DEFAULT_PORT,
        user: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.database = database
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.connection = None

    def __enter__(self) -> "DatabaseConnection":
        """Context manager entry - establish connection."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close connection."""
        self.disconnect()

    @property
    def url(self) -> str:
        """Connection target for log messages. Never includes the password."""
        return f"postgres://{self.user or ''}@{self.host or '<socket>'}:{self.port}/{self.database}"

    def connect(self) -> None:
        """Establish database connection."""
        try:
            self.connection = psycopg.connect(
                dbname=self.database,
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                autocommit=True
            )
            logging.info(f"Connected to {self.url}")
        except psycopg.Error as e:
            logging.error(f"Failed to connect to database: {e}")
            raise

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection and not self.connection.closed:
            self.connection.close()
            logging.debug("Database connection closed")

    def execute_query(self, query: str) -> list[dict[str, Optional[str]]]:
        """Execute a query and return each row as a column -> text mapping."""
        logging.debug(query)
        with self.connection.cursor() as cursor:
            cursor.execute(query)
            if cursor.description is None:
                return []

            result = cursor.pgresult
            encoding = self.connection.info.encoding
            names = [column.name for column in cursor.description]
            return [
                {
                    name: self._decode(result.get_value(row, col), encoding)
                    for col, name in enumerate(names)
                }
                for row in range(result.ntuples)
            ]

    @staticmethod
    def _decode(value: Optional[bytes], encoding: str) -> Optional[str]:
        if value is None:
            return None
        return bytes(value).decode(encoding)

    def get_schema_version(self) -> Optional[str]:
        """Get the latest applied migration version."""
        rows = self.execute_query(self.SCHEMA_VERSION_QUERY)
        return rows[0]['max'] if rows else None
