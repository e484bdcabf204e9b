"""
Database bootstrap: open the SQLite pool and load the schema.
"""

import logging
from pathlib import Path
from typing import Optional

from zapgen.config import settings
from zapgen.connectors.sqlite_pool import SqliteConnectionPool

logger = logging.getLogger(__name__)


async def init_database_and_load_schema(
    database: str,
    schema_file: Optional[str] = None,
    zap_version: Optional[str] = None,
    *,
    pool_name: str = "default",
) -> SqliteConnectionPool:
    """
    Open a database and make sure the schema exists.

    Args:
        database: SQLite file path or ":memory:"
        schema_file: Schema script, defaults to the bundled schema.sql
        zap_version: Version recorded in the SETTING table

    Returns:
        Initialized connection pool
    """
    schema_path = Path(schema_file or settings.SCHEMA_FILE)
    db = SqliteConnectionPool(database, pool_name=pool_name)
    await db.initialize()
    await load_schema(db, schema_path)
    await db.execute_query(
        "INSERT OR REPLACE INTO SETTING (CATEGORY, KEY, VALUE) VALUES ('APP', 'VERSION', ?)",
        [zap_version or settings.ZAP_VERSION],
    )
    logger.info(f"Database {database} ready (schema: {schema_path.name})")
    return db


async def load_schema(db: SqliteConnectionPool, schema_path: Path) -> None:
    """Run the schema script against an open pool."""
    script = schema_path.read_text(encoding="utf-8")
    await db.execute_script(script)


async def select_version(db: SqliteConnectionPool) -> Optional[str]:
    return await db.fetch_val(
        "SELECT VALUE FROM SETTING WHERE CATEGORY = 'APP' AND KEY = 'VERSION'"
    )


async def close_database(db: SqliteConnectionPool) -> None:
    await db.close()
