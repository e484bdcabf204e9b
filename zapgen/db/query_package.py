"""
Package queries: loaded files, their options and session assignments.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from zapgen.connectors.sqlite_pool import SqliteConnectionPool

_PACKAGE_COLUMNS = """
    PACKAGE_ID AS id,
    PARENT_PACKAGE_REF AS parent_id,
    PATH AS path,
    TYPE AS type,
    CRC AS crc,
    VERSION AS version,
    DESCRIPTION AS description
"""

_OPTION_COLUMNS = """
    OPTION_ID AS id,
    PACKAGE_REF AS package_ref,
    OPTION_CATEGORY AS option_category,
    OPTION_CODE AS option_code,
    OPTION_LABEL AS option_label
"""


async def get_package_by_path(db: SqliteConnectionPool, path: str) -> Optional[dict[str, Any]]:
    return await db.fetch_one(
        f"SELECT {_PACKAGE_COLUMNS} FROM PACKAGE WHERE PATH = ?", [str(path)]
    )


async def get_package_by_id(db: SqliteConnectionPool, package_id: int) -> Optional[dict[str, Any]]:
    return await db.fetch_one(
        f"SELECT {_PACKAGE_COLUMNS} FROM PACKAGE WHERE PACKAGE_ID = ?", [package_id]
    )


async def get_packages_by_type(db: SqliteConnectionPool, package_type: str) -> list[dict[str, Any]]:
    """Packages of one type, oldest first."""
    return await db.fetch_all(
        f"SELECT {_PACKAGE_COLUMNS} FROM PACKAGE WHERE TYPE = ? ORDER BY PACKAGE_ID",
        [str(package_type)],
    )


async def get_all_packages(db: SqliteConnectionPool) -> list[dict[str, Any]]:
    return await db.fetch_all(f"SELECT {_PACKAGE_COLUMNS} FROM PACKAGE ORDER BY PACKAGE_ID")


async def get_packages_by_parent(db: SqliteConnectionPool, parent_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"SELECT {_PACKAGE_COLUMNS} FROM PACKAGE WHERE PARENT_PACKAGE_REF = ? ORDER BY PACKAGE_ID",
        [parent_id],
    )


async def insert_path_crc(
    db: SqliteConnectionPool,
    path: str,
    crc: int,
    package_type: str,
    *,
    parent_id: Optional[int] = None,
    version: Optional[str] = None,
    description: Optional[str] = None,
) -> int:
    """
    Register a loaded file as a package.

    Returns:
        The new package id
    """
    return await db.execute_query(
        """
        INSERT INTO PACKAGE (PATH, CRC, TYPE, PARENT_PACKAGE_REF, VERSION, DESCRIPTION)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [str(path), crc, str(package_type), parent_id, version, description],
    )


async def update_path_crc(db: SqliteConnectionPool, path: str, crc: int) -> None:
    await db.execute_query("UPDATE PACKAGE SET CRC = ? WHERE PATH = ?", [crc, str(path)])


async def insert_session_package(
    db: SqliteConnectionPool,
    session_id: int,
    package_id: int,
    required: bool = False,
) -> int:
    """Assign a package to a session. Re-assigning the same package is a no-op."""
    return await db.execute_query(
        """
        INSERT OR IGNORE INTO SESSION_PACKAGE (SESSION_REF, PACKAGE_REF, REQUIRED, ENABLED)
        VALUES (?, ?, ?, 1)
        """,
        [session_id, package_id, 1 if required else 0],
    )


async def get_session_packages_by_type(
    db: SqliteConnectionPool, session_id: int, package_type: str
) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_PACKAGE_COLUMNS}
        FROM PACKAGE
        INNER JOIN SESSION_PACKAGE ON SESSION_PACKAGE.PACKAGE_REF = PACKAGE.PACKAGE_ID
        WHERE SESSION_PACKAGE.SESSION_REF = ?
          AND SESSION_PACKAGE.ENABLED = 1
          AND PACKAGE.TYPE = ?
        ORDER BY PACKAGE.PACKAGE_ID
        """,
        [session_id, str(package_type)],
    )


async def insert_options_key_value_pairs(
    db: SqliteConnectionPool,
    package_id: int,
    category: str,
    pairs: Iterable[tuple[str, str]],
) -> None:
    """Store `(code, label)` options of one category for a package."""
    await db.execute_many(
        """
        INSERT OR REPLACE INTO PACKAGE_OPTION
            (PACKAGE_REF, OPTION_CATEGORY, OPTION_CODE, OPTION_LABEL)
        VALUES (?, ?, ?, ?)
        """,
        [(package_id, category, str(code), str(label)) for code, label in pairs],
    )


async def select_all_options_values(
    db: SqliteConnectionPool, package_id: int, category: str
) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_OPTION_COLUMNS}
        FROM PACKAGE_OPTION
        WHERE PACKAGE_REF = ? AND OPTION_CATEGORY = ?
        ORDER BY OPTION_ID
        """,
        [package_id, category],
    )


async def select_specific_option_value(
    db: SqliteConnectionPool, package_id: int, category: str, code: str
) -> Optional[dict[str, Any]]:
    return await db.fetch_one(
        f"""
        SELECT {_OPTION_COLUMNS}
        FROM PACKAGE_OPTION
        WHERE PACKAGE_REF = ? AND OPTION_CATEGORY = ? AND OPTION_CODE = ?
        """,
        [package_id, category, str(code)],
    )
