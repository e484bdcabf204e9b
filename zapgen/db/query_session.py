"""
Session queries: session rows and their key/value configuration.
"""

from __future__ import annotations

import time
from typing import Any, Optional
from uuid import uuid4

from zapgen.connectors.sqlite_pool import SqliteConnectionPool


async def create_session(db: SqliteConnectionPool, session_key: Optional[str] = None) -> int:
    """
    Create a new user session.

    Returns:
        The new session id
    """
    return await db.execute_query(
        "INSERT INTO SESSION (SESSION_KEY, CREATION_TIME) VALUES (?, ?)",
        [session_key or uuid4().hex, int(time.time() * 1000)],
    )


async def get_session_info(db: SqliteConnectionPool, session_id: int) -> Optional[dict[str, Any]]:
    return await db.fetch_one(
        """
        SELECT SESSION_ID AS session_id, SESSION_KEY AS session_key, CREATION_TIME AS creation_time
        FROM SESSION WHERE SESSION_ID = ?
        """,
        [session_id],
    )


async def get_session_key_value(db: SqliteConnectionPool, session_id: int, key: str) -> Optional[str]:
    """Value stored under `key` for the session, or None."""
    return await db.fetch_val(
        "SELECT VALUE FROM SESSION_KEY_VALUE WHERE SESSION_REF = ? AND KEY = ?",
        [session_id, str(key)],
    )


async def update_session_key_value(
    db: SqliteConnectionPool, session_id: int, key: str, value: Any
) -> None:
    await db.execute_query(
        "INSERT OR REPLACE INTO SESSION_KEY_VALUE (SESSION_REF, KEY, VALUE) VALUES (?, ?, ?)",
        [session_id, str(key), None if value is None else str(value)],
    )


async def get_all_session_key_values(db: SqliteConnectionPool, session_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        "SELECT KEY AS key, VALUE AS value FROM SESSION_KEY_VALUE WHERE SESSION_REF = ? ORDER BY KEY",
        [session_id],
    )


async def delete_session(db: SqliteConnectionPool, session_id: int) -> None:
    """Delete a session; its packages, key/values and endpoint configuration go with it."""
    await db.execute_query("DELETE FROM SESSION WHERE SESSION_ID = ?", [session_id])
