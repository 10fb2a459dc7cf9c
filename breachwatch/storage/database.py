"""
Database connection and management for BreachWatch.

This module provides the Database class for managing SQLite database
connections with connection pooling, WAL mode, and thread safety.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from breachwatch.exceptions import StorageError

MEMORY_PATH = ":memory:"


class Database:
    """
    SQLite database connection manager with connection pooling.

    File databases hand out pooled connections. An in-memory database exists
    only for the connection that created it, so ":memory:" uses one shared
    connection serialized by a lock instead of a pool.

    Attributes:
        path: Path to the SQLite database file, or ":memory:".
        pool_size: Maximum number of idle connections kept in the pool.
        timeout: Busy timeout in seconds.

    Example:
        Basic usage::

            db = Database("breachwatch.db")
            db.initialize()

            with db.connection() as conn:
                rows = conn.execute("SELECT * FROM incidents").fetchall()
    """

    def __init__(
        self,
        path: str | Path = "breachwatch.db",
        pool_size: int = 5,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the database manager.

        Args:
            path: Path to the SQLite database file. Use ":memory:" for
                an in-memory database.
            pool_size: Maximum number of connections to keep in the pool.
            timeout: Busy timeout in seconds.
        """
        self.path: str | Path = MEMORY_PATH if str(path) == MEMORY_PATH else Path(path)
        self.pool_size = pool_size
        self.timeout = timeout

        self._pool: list[sqlite3.Connection] = []
        self._pool_lock = threading.Lock()
        self._shared: sqlite3.Connection | None = None
        self._shared_lock = threading.RLock()
        self._initialized = False

    @property
    def is_memory(self) -> bool:
        """Whether this is an in-memory database."""
        return self.path == MEMORY_PATH

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Create the database if needed and apply the schema.

        Raises:
            StorageError: If initialization fails.
        """
        if isinstance(self.path, Path):
            self.path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with self.connection() as conn:
                if not self.is_memory:
                    conn.execute("PRAGMA journal_mode=WAL")

                # Import schema here to avoid circular imports
                from breachwatch.storage.schema import SCHEMA_SQL

                conn.executescript(SCHEMA_SQL)
                conn.commit()

            self._initialized = True
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to initialize database: {e}",
                details={"path": str(self.path)},
            ) from e

    def _create_connection(self) -> sqlite3.Connection:
        """
        Create a new database connection with proper settings.

        Raises:
            StorageError: If connection creation fails.
        """
        try:
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.timeout,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys=ON")
            conn.execute(f"PRAGMA busy_timeout={int(self.timeout * 1000)}")
            return conn
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to create database connection: {e}",
                details={"path": str(self.path)},
            ) from e

    def _get_connection(self) -> sqlite3.Connection:
        with self._pool_lock:
            if self._pool:
                return self._pool.pop()
        return self._create_connection()

    def _return_connection(self, conn: sqlite3.Connection) -> None:
        with self._pool_lock:
            if len(self._pool) < self.pool_size:
                self._pool.append(conn)
                return
        conn.close()

    @contextmanager
    def _acquire(self) -> Iterator[sqlite3.Connection]:
        """Yield the shared memory connection or a pooled file connection."""
        if self.is_memory:
            with self._shared_lock:
                if self._shared is None:
                    self._shared = self._create_connection()
                yield self._shared
            return

        conn = self._get_connection()
        try:
            yield conn
        finally:
            self._return_connection(conn)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection.

        If an exception escapes the block, the open transaction is rolled
        back. Callers commit explicitly.

        Yields:
            A database connection.
        """
        with self._acquire() as conn:
            try:
                yield conn
            except Exception:
                conn.rollback()
                raise

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Get a connection that commits on success and rolls back on error.

        Example:
            Using the transaction context manager::

                with db.transaction() as conn:
                    conn.execute("DELETE FROM alerts WHERE incident_id = ?", (incident_id,))
        """
        with self._acquire() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute a query and return all rows as dictionaries.

        Args:
            sql: The SQL query. Must use parameterized placeholders.
            params: Query parameters as a tuple or dict.

        Raises:
            StorageError: If query execution fails.
        """
        try:
            with self.connection() as conn:
                cursor = conn.execute(sql, params or ())
                return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(
                f"Query execution failed: {e}",
                details={"sql": sql[:100]},
            ) from e

    def execute_one(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Execute a query and return the first row, or None."""
        results = self.execute(sql, params)
        return results[0] if results else None

    def execute_write(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] | None = None,
    ) -> int:
        """
        Execute an INSERT, UPDATE, or DELETE and return the affected row count.

        Raises:
            StorageError: If query execution fails.
        """
        try:
            with self.transaction() as conn:
                return conn.execute(sql, params or ()).rowcount
        except sqlite3.Error as e:
            raise StorageError(
                f"Write query failed: {e}",
                details={"sql": sql[:100]},
            ) from e

    def health_check(self) -> bool:
        """
        Check if the database is accessible.

        Returns:
            True if a trivial query succeeds, False otherwise.
        """
        try:
            with self.connection() as conn:
                conn.execute("SELECT 1")
            return True
        except (sqlite3.Error, StorageError):
            return False

    def get_schema_version(self) -> int:
        """Return the applied schema version, or 0 if not initialized."""
        try:
            result = self.execute_one(
                "SELECT MAX(version) AS version FROM schema_version"
            )
        except StorageError:
            return 0
        return int(result["version"] or 0) if result else 0

    def close(self) -> None:
        """Close every open connection."""
        with self._pool_lock:
            for conn in self._pool:
                conn.close()
            self._pool.clear()
        with self._shared_lock:
            if self._shared is not None:
                self._shared.close()
                self._shared = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Database(path={str(self.path)!r}, pool_size={self.pool_size})"
