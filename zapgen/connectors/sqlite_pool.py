"""
SQLite Connection Pool Manager

Async facade over the synchronous sqlite3 driver. Metadata and session data
live in a single SQLite file, so the "pool" owns one connection and serializes
every statement through a thread executor.
"""

import asyncio
import logging
import sqlite3
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Sequence

from zapgen.config import settings

logger = logging.getLogger(__name__)


class SqliteConnectionPool:
    """
    Async connection wrapper for SQLite with an executor-backed driver.
    """

    def __init__(
        self,
        database: str,
        *,
        executor: Executor | None = None,
        owns_executor: bool = False,
        pool_name: str = "default",
    ):
        """
        Initialize SQLite connection pool.

        Args:
            database: Path of the database file (or ":memory:")
            executor: Executor running the blocking driver calls. A private
                single-thread executor is created when omitted.
            owns_executor: Shut the executor down on close()
            pool_name: Descriptive name for logging
        """
        self.database = str(database)
        self.pool_name = pool_name

        if executor is None:
            executor = ThreadPoolExecutor(
                max_workers=max(1, int(settings.DB_EXECUTOR_MAX_WORKERS)),
                thread_name_prefix=f"sqlite-{pool_name}",
            )
            owns_executor = True
        self._executor: Executor | None = executor
        self._owns_executor: bool = bool(owns_executor)

        self._conn: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()
        self._initialized = False

        logger.info(f"[{pool_name}] SQLite pool configured: {self.database}")

    def _run_in_executor(self, func, *args):
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(self._executor, func, *args)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    async def initialize(self):
        """Open the underlying connection."""
        if self._initialized:
            return

        async with self._lock:
            # Another caller may have opened it while we waited.
            if self._initialized:
                return
            logger.info(f"[{self.pool_name}] Opening SQLite database...")
            self._conn = await self._run_in_executor(self._connect)
            self._initialized = True
        logger.info(f"[{self.pool_name}] SQLite database ready")

    def _require_connection(self) -> sqlite3.Connection:
        # Call with self._lock held.
        if self._conn is None:
            raise RuntimeError(f"[{self.pool_name}] SQLite database is closed")
        return self._conn

    async def execute_query(
        self,
        query: str,
        params: Optional[Sequence[Any]] = None,
    ) -> int:
        """
        Execute a statement that doesn't return rows (INSERT, UPDATE, DELETE).

        Args:
            query: SQL statement with `?` placeholders
            params: Statement parameters

        Returns:
            Row id of the last inserted row
        """
        await self.initialize()

        def _do_execute() -> int:
            with conn:
                cursor = conn.execute(query, tuple(params or ()))
                return int(cursor.lastrowid or 0)

        async with self._lock:
            conn = self._require_connection()
            return await self._run_in_executor(_do_execute)

    async def execute_many(
        self,
        query: str,
        args_list: Iterable[Sequence[Any]],
    ) -> None:
        """
        Execute a statement once per parameter tuple, in one transaction.

        Args:
            query: SQL statement with `?` placeholders
            args_list: Parameter tuples
        """
        await self.initialize()
        rows = [tuple(args) for args in args_list]

        def _do_execute_many() -> None:
            with conn:
                conn.executemany(query, rows)

        async with self._lock:
            conn = self._require_connection()
            await self._run_in_executor(_do_execute_many)

    async def execute_script(self, script: str) -> None:
        """Run a multi-statement SQL script (schema creation)."""
        await self.initialize()

        def _do_script() -> None:
            with conn:
                conn.executescript(script)

        async with self._lock:
            conn = self._require_connection()
            await self._run_in_executor(_do_script)

    async def fetch_all(
        self,
        query: str,
        params: Optional[Sequence[Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch all rows from a query.

        Args:
            query: SQL query to execute
            params: Query parameters

        Returns:
            List of rows as dicts keyed by column alias
        """
        await self.initialize()

        def _do_fetch() -> List[Dict[str, Any]]:
            cursor = conn.execute(query, tuple(params or ()))
            try:
                return [dict(row) for row in cursor.fetchall()]
            finally:
                cursor.close()

        async with self._lock:
            conn = self._require_connection()
            return await self._run_in_executor(_do_fetch)

    async def fetch_one(
        self,
        query: str,
        params: Optional[Sequence[Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Fetch a single row from a query.

        Returns:
            First row as a dict, or None
        """
        rows = await self.fetch_all(query, params)
        return rows[0] if rows else None

    async def fetch_val(
        self,
        query: str,
        params: Optional[Sequence[Any]] = None,
    ) -> Any:
        """
        Fetch a single value from a query.

        Returns:
            First column of the first row, or None
        """
        row = await self.fetch_one(query, params)
        if row is None:
            return None
        return next(iter(row.values()), None)

    async def is_healthy(self) -> bool:
        """
        Check if the database answers a trivial query.

        Returns:
            bool: True if the connection is usable
        """
        if not self._initialized or self._conn is None:
            return False

        try:
            result = await self.fetch_val("SELECT 1")
            return result == 1
        except sqlite3.Error as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def close(self):
        """Close the connection and any owned executor."""
        async with self._lock:
            if self._conn is not None:
                logger.info(f"[{self.pool_name}] Closing SQLite database...")
                conn = self._conn
                self._conn = None
                self._initialized = False
                await self._run_in_executor(conn.close)
                logger.info(f"[{self.pool_name}] SQLite database closed")

        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
            self._owns_executor = False


# Global connection pool instance
_default_pool: Optional[SqliteConnectionPool] = None


def get_default_pool() -> SqliteConnectionPool:
    """
    Get or create the default SQLite connection pool.

    Returns:
        SqliteConnectionPool: Default pool instance
    """
    global _default_pool

    if _default_pool is None:
        _default_pool = SqliteConnectionPool(
            settings.DATABASE_PATH,
            pool_name="default",
        )

    return _default_pool


async def close_default_pool():
    """Close the default connection pool."""
    global _default_pool
    if _default_pool is not None:
        await _default_pool.close()
        _default_pool = None
